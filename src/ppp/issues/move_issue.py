"""Reparent a task, story or bug; its folder moves with it."""

from __future__ import annotations

import logging
from typing import Any

from ppp.errors import HierarchyViolation
from ppp.folders import match_segment, own_segment
from ppp.issues._helpers import canonical_id, with_folder
from ppp.store import check_parent
from ppp.sync import refresh_issue, refresh_sprints_of, subtree_ids
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def move_issue(ws: Workspace, issue_id: str, new_parent_id: str) -> dict[str, Any]:
    """Move an issue under a new parent, keeping its id.

    Features cannot move: their id encodes their depth. The destination
    must not already hold a folder with the same segment, or resolution
    would become ambiguous.
    """
    issue = ws.store.require_issue(canonical_id(issue_id))
    issue_id = issue["id"]
    if issue["type"] == "feature":
        raise HierarchyViolation(f"Feature '{issue_id}' cannot be moved; its id fixes its place in the tree.")
    new_parent = ws.store.require_issue(canonical_id(new_parent_id))
    old_parent_id = issue.get("parent_id")
    if new_parent["id"] == old_parent_id:
        return with_folder(issue, ws.folders.resolve(issue_id))
    check_parent(issue["type"], new_parent)

    old_folder = ws.folders.resolve(issue_id)
    destination = ws.folders.ensure(new_parent["id"])
    if match_segment(destination, own_segment(issue_id)) is not None:
        raise HierarchyViolation(
            f"'{new_parent['id']}' already holds a {own_segment(issue_id)} folder; cannot move '{issue_id}' there."
        )

    moved = ws.store.reparent_issue(issue_id, new_parent["id"])
    if old_folder is not None:
        ws.folders.move(old_folder, destination / old_folder.name)
    log.info("moved %s from %s to %s", issue_id, old_parent_id, new_parent["id"])

    issues = ws.store.issues()
    folder = refresh_issue(ws, issue_id, issues=issues)
    for parent_id in (old_parent_id, new_parent["id"]):
        if parent_id and parent_id in issues:
            refresh_issue(ws, parent_id, children=True, issues=issues)
    refresh_sprints_of(ws, subtree_ids(issues, issue_id), issues)
    return with_folder(moved, folder)
