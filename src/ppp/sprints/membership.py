"""Assign issues to sprints and take them out again."""

from __future__ import annotations

import logging
from typing import Any

from ppp.ids import normalize_id, normalize_sprint_id
from ppp.sprints._helpers import check_editable
from ppp.sync import refresh_issue, refresh_sprint
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def add_issue_to_sprint(ws: Workspace, issue_id: str, sprint_id: str) -> dict[str, Any]:
    """Put an issue in a sprint, moving it out of any sprint it was in."""
    issue = ws.store.require_issue(normalize_id(issue_id))
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    check_editable(sprint)

    previous = ws.store.add_issue_to_sprint(issue["id"], sprint["id"])
    issues = ws.store.issues()
    folder = ws.folders.ensure(issue["id"], issues)
    if previous:
        ws.folders.unlink_issue(previous, issue["id"], folder)
        if ws.store.get_sprint(previous) is not None:
            refresh_sprint(ws, previous, issues)
        log.info("moved %s from %s to %s", issue["id"], previous, sprint["id"])

    refresh_sprint(ws, sprint["id"], issues)
    refresh_issue(ws, issue["id"], issues=issues)
    link = ws.folders.find_link(sprint["id"], folder)
    return {
        "issue_id": issue["id"],
        "sprint_id": sprint["id"],
        "previous_sprint": previous,
        "link": str(link) if link is not None else None,
    }


def remove_issue_from_sprint(ws: Workspace, issue_id: str, sprint_id: str) -> dict[str, Any]:
    issue = ws.store.require_issue(normalize_id(issue_id))
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    check_editable(sprint)

    ws.store.remove_issue_from_sprint(issue["id"], sprint["id"])
    ws.folders.unlink_issue(sprint["id"], issue["id"])
    issues = ws.store.issues()
    refresh_sprint(ws, sprint["id"], issues)
    refresh_issue(ws, issue["id"], issues=issues)
    return {"issue_id": issue["id"], "sprint_id": sprint["id"], "status": "removed"}
