"""Sprint state transitions: activate, complete, archive.

At most one sprint is active. Activating a sprint completes every other
sprint that is still active.
"""

from __future__ import annotations

import logging
from typing import Any

from ppp.fs import today
from ppp.ids import normalize_sprint_id
from ppp.sprints._helpers import check_transition, velocity, with_folder
from ppp.sync import refresh_issue, refresh_sprint
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def _complete(ws: Workspace, sprint: dict[str, Any]) -> dict[str, Any]:
    issues = ws.store.issues()
    completed = ws.store.update_sprint(
        sprint["id"],
        {"status": "completed", "end_date": today(), "velocity": velocity(sprint, issues)},
    )
    if ws.store.release().get("current_sprint") == sprint["id"]:
        ws.store.set_current_sprint(None)
        ws.release.set_current(None)
    refresh_sprint(ws, sprint["id"])
    log.info("completed sprint %s (velocity %s)", sprint["id"], completed["velocity"])
    return completed


def activate_sprint(ws: Workspace, sprint_id: str) -> dict[str, Any]:
    """Make a planned sprint the active one; its issues move to in_progress."""
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    check_transition(sprint, "active")

    completed = [_complete(ws, other) for other in ws.store.list_sprints("active") if other["id"] != sprint["id"]]

    active = ws.store.update_sprint(sprint["id"], {"status": "active", "start_date": today()})
    ws.store.set_current_sprint(sprint["id"])
    changed = ws.store.set_issue_status_bulk(sprint["issues"], "in_progress")

    issues = ws.store.issues()
    for issue_id in changed:
        refresh_issue(ws, issue_id, issues=issues)
    folder = refresh_sprint(ws, sprint["id"], issues)
    ws.release.set_current(active)
    log.info("activated sprint %s", sprint["id"])

    result = with_folder(active, folder)
    result["completed_sprint"] = completed[0]["id"] if completed else None
    result["completed_sprints"] = [s["id"] for s in completed]
    result["issues_started"] = changed
    return result


def complete_sprint(ws: Workspace, sprint_id: str) -> dict[str, Any]:
    """Close the active sprint, recording its end date and velocity."""
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    check_transition(sprint, "completed")
    completed = _complete(ws, sprint)
    return with_folder(completed, ws.folders.sprint_dir(completed["id"]))


def archive_sprint(ws: Workspace, sprint_id: str) -> dict[str, Any]:
    """Mark a completed sprint archived. Its folder stays in place."""
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    check_transition(sprint, "archived")
    archived = ws.store.update_sprint(sprint["id"], {"status": "archived"})
    folder = refresh_sprint(ws, sprint["id"])
    return with_folder(archived, folder)
