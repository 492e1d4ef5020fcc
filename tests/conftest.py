"""Shared fixtures: an initialized project in a temp dir."""

from __future__ import annotations

import pytest

from ppp.workspace import init_project, open_workspace


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for var in ("PPP_PROJECT_ROOT", "PPP_KEYWORDS_CMD", "PPP_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def project_dir(tmp_path):
    """Temp project root with .ppp/ initialized."""
    root = tmp_path.resolve()
    init_project(root, "demo")
    return root


@pytest.fixture
def ppp_dir(project_dir):
    return project_dir / ".ppp"


@pytest.fixture
def ws(project_dir):
    """Workspace with no external keyword generator configured."""
    return open_workspace(project_dir)
