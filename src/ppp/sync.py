"""Projection of metadata onto the .ppp/ folder tree.

Every helper here is idempotent: it reads the current metadata and makes
folders, spec files, sprint links and Release.md agree with it. The
issue and sprint operations call these after each metadata write, and
``sync_project`` replays all of them to repair a tree that drifted or a
write that was interrupted between the database and the filesystem.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from ppp.content import ChildLink, spec_path, sync_issue_spec, sync_sprint_spec
from ppp.defaults import SPEC_FILE_NAME
from ppp.errors import FilesystemOperationFailed, PppError
from ppp.workspace import Workspace

log = logging.getLogger(__name__)

Issues = dict[str, dict[str, Any]]


def subtree_ids(issues: Issues, root_id: str) -> list[str]:
    """``root_id`` and all its descendants, parents before children."""
    by_parent: dict[str, list[str]] = {}
    for issue in issues.values():
        parent = issue.get("parent_id")
        if parent:
            by_parent.setdefault(parent, []).append(issue["id"])
    out: list[str] = []
    stack = [root_id]
    while stack:
        current = stack.pop()
        if current in out:
            continue
        out.append(current)
        stack.extend(sorted(by_parent.get(current, []), reverse=True))
    return out


def child_links(ws: Workspace, issue_id: str, folder: Path, issues: Issues) -> list[ChildLink]:
    """Children of an issue with links relative to its folder."""
    children = sorted((i for i in issues.values() if i.get("parent_id") == issue_id), key=lambda i: i["id"])
    links: list[ChildLink] = []
    for child in children:
        child_folder = ws.folders.resolve(child["id"], issues)
        if child_folder is None:
            log.warning("no folder for %s; listed as not found under %s", child["id"], issue_id)
            links.append((child, None))
            continue
        rel = os.path.relpath(child_folder / SPEC_FILE_NAME, folder)
        links.append((child, Path(rel).as_posix()))
    return links


def refresh_issue(
    ws: Workspace,
    issue_id: str,
    description: str | None = None,
    children: bool = False,
    issues: Issues | None = None,
) -> Path:
    """Ensure the issue's folder and rewrite its Details (and optionally Children)."""
    issues = issues if issues is not None else ws.store.issues()
    folder = ws.folders.ensure(issue_id, issues)
    links = child_links(ws, issue_id, folder, issues) if children else None
    sync_issue_spec(folder, issues[issue_id], description=description, children=links)
    return folder


def refresh_parent(ws: Workspace, issue: dict[str, Any], issues: Issues | None = None) -> None:
    """Regenerate the Children section of an issue's parent, if it has one."""
    parent_id = issue.get("parent_id")
    if not parent_id:
        return
    issues = issues if issues is not None else ws.store.issues()
    if parent_id not in issues:
        log.warning("parent %s of %s missing from metadata", parent_id, issue["id"])
        return
    refresh_issue(ws, parent_id, children=True, issues=issues)


def refresh_sprint(ws: Workspace, sprint_id: str, issues: Issues | None = None) -> Path:
    """Rebuild a sprint folder's links and spec, and its Release.md row."""
    sprint = ws.store.require_sprint(sprint_id)
    issues = issues if issues is not None else ws.store.issues()
    folder = ws.folders.sprint_dir(sprint["id"])
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemOperationFailed(f"Cannot create {folder}: {exc}") from exc

    ws.folders.prune_dangling(sprint["id"])
    for member in sprint["issues"]:
        if member in issues:
            ws.folders.link_issue(sprint["id"], member, issues)
    entries = list(ws.folders.link_names(sprint["id"], sprint["issues"], issues).items())
    sync_sprint_spec(folder, sprint, entries)
    ws.release.upsert_sprint(sprint)
    return folder


def refresh_sprints_of(ws: Workspace, issue_ids: list[str], issues: Issues | None = None) -> list[str]:
    """Refresh every sprint holding one of ``issue_ids``. Returns sprint ids."""
    issues = issues if issues is not None else ws.store.issues()
    sprint_ids = sorted({issues[i]["sprint_id"] for i in issue_ids if i in issues and issues[i].get("sprint_id")})
    for sprint_id in sprint_ids:
        refresh_sprint(ws, sprint_id, issues)
    return sprint_ids


def sync_project(ws: Workspace) -> dict[str, Any]:
    """Replay the whole filesystem projection from metadata.

    Issue failures are collected rather than raised so one bad folder
    does not stop the rest of the tree from being repaired.
    """
    issues = ws.store.issues()
    created: list[str] = []
    failed: dict[str, str] = {}

    roots = sorted(i["id"] for i in issues.values() if not i.get("parent_id") or i["parent_id"] not in issues)
    ordered = [issue_id for root in roots for issue_id in subtree_ids(issues, root)]
    for issue_id in ordered:
        had_spec = False
        folder = ws.folders.resolve(issue_id, issues)
        if folder is not None:
            had_spec = spec_path(folder).exists()
        try:
            refresh_issue(ws, issue_id, children=True, issues=issues)
        except PppError as exc:
            log.warning("sync failed for %s: %s", issue_id, exc)
            failed[issue_id] = str(exc)
            continue
        if not had_spec:
            created.append(issue_id)

    sprints = ws.store.list_sprints()
    for sprint in sprints:
        refresh_sprint(ws, sprint["id"], issues)
    ws.release.ensure(ws.store.release(), sprints, ws.store.get_active_sprint())

    return {
        "issues": len(ordered),
        "sprints": len(sprints),
        "created": created,
        "failed": failed,
    }
