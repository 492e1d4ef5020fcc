"""Shared constants — env var names, on-disk layout, resolvers.

Single source of truth for where a project's .ppp/ tree lives.
"""

from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Env var names
# ---------------------------------------------------------------------------

ENV_PROJECT_ROOT = "PPP_PROJECT_ROOT"
ENV_KEYWORDS_CMD = "PPP_KEYWORDS_CMD"
ENV_LOG_LEVEL = "PPP_LOG_LEVEL"

# ---------------------------------------------------------------------------
# On-disk layout
# ---------------------------------------------------------------------------

PPP_DIR_NAME = ".ppp"
DB_FILE_NAME = "database.yml"
BACKUP_SUFFIX = ".backup"
CONFIG_FILE_NAME = "config.yml"
ARCHIVE_DIR_NAME = "_archived"
SPEC_FILE_NAME = "spec.md"
RELEASE_FILE_NAME = "Release.md"

# Pre-database counter file, migrated on init
LEGACY_COUNTERS_FILE = ".counters.json"

DB_VERSION = "1.0.0"

DEFAULT_KEYWORDS_TIMEOUT_SEC = 30
DEFAULT_LOG_LEVEL = "WARNING"


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_project_root(project_dir: str | Path | None = None) -> Path:
    """Resolve the project root: explicit arg > PPP_PROJECT_ROOT > cwd."""
    if project_dir:
        return Path(project_dir).expanduser().resolve()
    explicit = os.getenv(ENV_PROJECT_ROOT)
    if explicit:
        return Path(explicit).expanduser().resolve()
    return Path.cwd().resolve()


def resolve_ppp_dir(project_dir: str | Path | None = None) -> Path:
    """Resolve the project-local .ppp directory."""
    return resolve_project_root(project_dir) / PPP_DIR_NAME
