"""Delete a sprint and archive its folder."""

from __future__ import annotations

import logging
from typing import Any

from ppp.ids import normalize_sprint_id
from ppp.sync import refresh_issue
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def delete_sprint(ws: Workspace, sprint_id: str) -> dict[str, Any]:
    """Drop the sprint from metadata; members keep existing without a sprint."""
    sprint = ws.store.require_sprint(normalize_sprint_id(sprint_id))
    sprint_id = sprint["id"]
    was_current = ws.store.release().get("current_sprint") == sprint_id

    ws.store.delete_sprint(sprint_id)

    folder = ws.folders.sprint_dir(sprint_id)
    archived = ws.folders.archive(folder, sprint_id) if folder.exists() else None
    ws.release.remove_sprint(sprint_id)
    if was_current:
        ws.release.set_current(None)

    issues = ws.store.issues()
    for issue_id in sprint["issues"]:
        if issue_id in issues:
            refresh_issue(ws, issue_id, issues=issues)
    log.info("deleted sprint %s", sprint_id)
    return {
        "id": sprint_id,
        "status": "deleted",
        "archived_to": str(archived) if archived is not None else None,
        "released_issues": list(sprint["issues"]),
    }
