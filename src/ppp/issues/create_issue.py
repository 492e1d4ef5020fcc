"""Create a feature, story, task or bug."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ppp.errors import ParentNotFound
from ppp.fs import now_iso
from ppp.issues._helpers import canonical_id, require_name, with_folder
from ppp.models import DEFAULT_PRIORITY, VALID_PRIORITIES, VALID_TYPES, new_issue_record, normalize_labels, validate_choice
from ppp.store import check_parent
from ppp.sync import refresh_issue, refresh_parent
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def create_issue(
    ws: Workspace,
    issue_type: str,
    name: str,
    parent_id: str | None = None,
    description: str = "",
    priority: str = DEFAULT_PRIORITY,
    assignee: str | None = None,
    reporter: str | None = None,
    labels: str | Iterable[str] | None = None,
) -> dict[str, Any]:
    """Mint an id, record the issue, then build its folder and spec.md.

    All validation happens before the counter is touched. Metadata is
    written before the folder so an interrupted create leaves a record
    that ``sync_project`` can project, never an orphan folder.
    """
    validate_choice(issue_type, VALID_TYPES, "type")
    validate_choice(priority, VALID_PRIORITIES, "priority")
    name = require_name(name)

    parent = None
    if parent_id:
        parent_id = canonical_id(parent_id)
        parent = ws.store.get_issue(parent_id)
        if parent is None:
            raise ParentNotFound(f"Parent issue '{parent_id}' not found.")
        parent_id = parent["id"]
    check_parent(issue_type, parent)

    keywords = ws.keywords_for(name)
    issue_id = ws.store.mint_issue_id(issue_type, parent_id)
    record = new_issue_record(
        issue_id,
        issue_type,
        name,
        keywords,
        now_iso(),
        parent_id=parent_id,
        priority=priority,
        assignee=assignee or None,
        reporter=reporter or None,
        labels=normalize_labels(labels),
    )
    issue = ws.store.create_issue(record)
    log.info("created %s %s (%s)", issue_type, issue_id, keywords)

    issues = ws.store.issues()
    folder = refresh_issue(ws, issue_id, description=description or None, issues=issues)
    refresh_parent(ws, issue, issues)
    return with_folder(issue, folder)
