"""Workspace — one project's config, store, resolver and keyword source.

Operations take a Workspace instead of reaching for module globals, so a
test can point everything at a temp directory and swap the keyword
generator for the deterministic fallback.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ppp.config import PppConfig, load_config
from ppp.defaults import LEGACY_COUNTERS_FILE
from ppp.errors import DatabaseCorrupt, FilesystemOperationFailed
from ppp.folders import FolderResolver
from ppp.fs import archive_stamp
from ppp.keywords import KeywordGenerator, command_generator, generate_keywords
from ppp.release import ReleaseFile
from ppp.store import MetadataStore

log = logging.getLogger(__name__)


@dataclass
class Workspace:
    config: PppConfig
    store: MetadataStore
    folders: FolderResolver
    release: ReleaseFile
    keyword_generator: KeywordGenerator | None = None

    @property
    def root(self) -> Path:
        return self.config.project_root

    @property
    def ppp_dir(self) -> Path:
        return self.config.ppp_dir

    def keywords_for(self, name: str) -> str:
        return generate_keywords(name, self.keyword_generator)


def open_workspace(
    project_dir: str | Path | None = None,
    config: PppConfig | None = None,
    keyword_generator: KeywordGenerator | None = None,
) -> Workspace:
    """Wire up a workspace. The configured keyword command is used unless one is passed."""
    config = config or load_config(project_dir)
    store = MetadataStore(config.db_path)
    if keyword_generator is None and config.keywords_command:
        keyword_generator = command_generator(config.keywords_command, config.keywords_timeout_sec)
    return Workspace(
        config=config,
        store=store,
        folders=FolderResolver(config.ppp_dir, store),
        release=ReleaseFile(config.release_path),
        keyword_generator=keyword_generator,
    )


def _migrate_legacy_counters(ws: Workspace) -> bool:
    legacy_path = ws.ppp_dir / LEGACY_COUNTERS_FILE
    if not legacy_path.exists():
        return False
    try:
        legacy = json.loads(legacy_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise DatabaseCorrupt(f"Cannot read legacy counters {legacy_path}: {exc}") from exc
    if not isinstance(legacy, dict):
        raise DatabaseCorrupt(f"Legacy counters {legacy_path} must hold a JSON object")

    ws.store.merge_legacy_counters(legacy)
    try:
        legacy_path.rename(legacy_path.with_name(f"{LEGACY_COUNTERS_FILE}.backup-{archive_stamp()}"))
    except OSError as exc:
        raise FilesystemOperationFailed(f"Cannot retire {legacy_path}: {exc}") from exc
    log.info("migrated legacy counters from %s", legacy_path)
    return True


def init_project(
    project_dir: str | Path | None = None,
    project_name: str | None = None,
) -> dict[str, Any]:
    """Create .ppp/, the database and Release.md. Safe to re-run."""
    ws = open_workspace(project_dir)
    already = ws.store.exists()
    try:
        ws.ppp_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemOperationFailed(f"Cannot create {ws.ppp_dir}: {exc}") from exc

    db = ws.store.initialize(project_name or ws.root.name)
    migrated = _migrate_legacy_counters(ws)
    ws.release.ensure(db["release"], ws.store.list_sprints(), ws.store.get_active_sprint())
    return {
        "status": "already_initialized" if already else "initialized",
        "project": db["project"]["name"],
        "ppp_dir": str(ws.ppp_dir),
        "database": str(ws.store.db_path),
        "migrated_counters": migrated,
    }
