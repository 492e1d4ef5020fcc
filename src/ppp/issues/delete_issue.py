"""Delete a childless issue and archive its folder."""

from __future__ import annotations

import logging
from typing import Any

from ppp.errors import IssueHasChildren
from ppp.issues._helpers import canonical_id
from ppp.sync import refresh_parent, refresh_sprint
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def delete_issue(ws: Workspace, issue_id: str) -> dict[str, Any]:
    """Remove the issue from metadata and move its folder into _archived/.

    The folder is resolved before the record goes away; without the
    record its parent chain can no longer be walked.
    """
    issue = ws.store.require_issue(canonical_id(issue_id))
    issue_id = issue["id"]
    if issue.get("children"):
        raise IssueHasChildren(f"Issue '{issue_id}' has children ({', '.join(issue['children'])}); delete them first.")

    folder = ws.folders.resolve(issue_id)
    sprint_id = issue.get("sprint_id")
    if sprint_id:
        ws.folders.unlink_issue(sprint_id, issue_id, folder)

    ws.store.delete_issue(issue_id)

    archived = None
    if folder is not None:
        archived = ws.folders.archive(folder, issue_id)
    else:
        log.warning("no folder for %s; nothing to archive", issue_id)

    issues = ws.store.issues()
    if sprint_id and ws.store.get_sprint(sprint_id) is not None:
        refresh_sprint(ws, sprint_id, issues)
    refresh_parent(ws, issue, issues)
    return {
        "id": issue_id,
        "status": "deleted",
        "archived_to": str(archived) if archived is not None else None,
    }
