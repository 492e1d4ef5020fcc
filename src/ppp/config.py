"""Per-project configuration.

Defaults, overlaid by ``.ppp/config.yml``, overlaid by environment
variables. Loaded once per command and passed down explicitly.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ppp.defaults import (
    CONFIG_FILE_NAME,
    DB_FILE_NAME,
    DEFAULT_KEYWORDS_TIMEOUT_SEC,
    DEFAULT_LOG_LEVEL,
    ENV_KEYWORDS_CMD,
    ENV_LOG_LEVEL,
    PPP_DIR_NAME,
    RELEASE_FILE_NAME,
    resolve_project_root,
)
from ppp.errors import ConfigError


@dataclass(frozen=True)
class PppConfig:
    project_root: Path
    keywords_command: tuple[str, ...] = ()
    keywords_timeout_sec: int = DEFAULT_KEYWORDS_TIMEOUT_SEC
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def ppp_dir(self) -> Path:
        return self.project_root / PPP_DIR_NAME

    @property
    def db_path(self) -> Path:
        return self.ppp_dir / DB_FILE_NAME

    @property
    def release_path(self) -> Path:
        return self.ppp_dir / RELEASE_FILE_NAME


def _split_command(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(str(part) for part in raw)
    return tuple(shlex.split(str(raw)))


def load_config(project_dir: str | Path | None = None) -> PppConfig:
    """Build the config for a project. A missing config.yml means defaults."""
    root = resolve_project_root(project_dir)
    cfg_path = root / PPP_DIR_NAME / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if cfg_path.exists():
        try:
            loaded = yaml.safe_load(cfg_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {cfg_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"Top-level config in {cfg_path} must be a YAML mapping")
        raw = loaded

    command = os.getenv(ENV_KEYWORDS_CMD) or raw.get("keywords_command")
    log_level = os.getenv(ENV_LOG_LEVEL) or raw.get("log_level") or DEFAULT_LOG_LEVEL

    try:
        timeout = int(raw.get("keywords_timeout_sec", DEFAULT_KEYWORDS_TIMEOUT_SEC))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"keywords_timeout_sec must be an integer: {exc}") from exc

    return PppConfig(
        project_root=root,
        keywords_command=_split_command(command),
        keywords_timeout_sec=timeout,
        log_level=str(log_level).upper(),
    )
