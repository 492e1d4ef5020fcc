"""Sprint listings and lookups."""

from __future__ import annotations

from typing import Any

from ppp.errors import ValidationError
from ppp.ids import normalize_sprint_id
from ppp.models import SPRINT_STATUSES
from ppp.sprints._helpers import with_folder
from ppp.workspace import Workspace


def list_sprints(ws: Workspace, status: str | None = None) -> list[dict[str, Any]]:
    if status is not None and status not in SPRINT_STATUSES:
        raise ValidationError(f"Invalid sprint status '{status}'. Valid: {', '.join(SPRINT_STATUSES)}")
    return ws.store.list_sprints(status)


def get_sprint(ws: Workspace, sprint_id: str) -> dict[str, Any]:
    """Sprint metadata with a short summary of each member issue."""
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    issues = ws.store.issues()
    result = with_folder(sprint, ws.folders.sprint_dir(sprint["id"]))
    result["issue_summaries"] = [
        {"id": i, "name": issues[i]["name"], "status": issues[i]["status"]}
        for i in sprint["issues"]
        if i in issues
    ]
    return result


def get_active_sprint(ws: Workspace) -> dict[str, Any] | None:
    return ws.store.get_active_sprint()
