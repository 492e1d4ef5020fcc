"""Patch an issue's fields; renames carry the folder along."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ppp.errors import ValidationError
from ppp.issues._helpers import canonical_id, require_name, with_folder
from ppp.models import VALID_PRIORITIES, VALID_STATUSES, normalize_labels, validate_choice
from ppp.sync import refresh_issue, refresh_parent, refresh_sprints_of, subtree_ids
from ppp.workspace import Workspace

log = logging.getLogger(__name__)


def update_issue(
    ws: Workspace,
    issue_id: str,
    name: str | None = None,
    description: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    assignee: str | None = None,
    reporter: str | None = None,
    labels: str | Iterable[str] | None = None,
) -> dict[str, Any]:
    """Update metadata, reconcile the folder, then resync spec.md.

    A new name regenerates the keywords; when they change the folder is
    renamed, and sprint links under it are re-pointed along with the
    parent's Children section. Custom spec sections are untouched.
    """
    fields = (name, description, status, priority, assignee, reporter, labels)
    if all(value is None for value in fields):
        raise ValidationError(
            "Provide at least one field to update: name, description, status, priority, assignee, reporter, labels."
        )
    if status is not None:
        validate_choice(status, VALID_STATUSES, "status")
    if priority is not None:
        validate_choice(priority, VALID_PRIORITIES, "priority")
    if name is not None:
        name = require_name(name)

    current = ws.store.require_issue(canonical_id(issue_id))
    issue_id = current["id"]

    patch: dict[str, Any] = {}
    if name is not None and name != current["name"]:
        patch["name"] = name
        patch["keywords"] = ws.keywords_for(name)
    if status is not None:
        patch["status"] = status
    if priority is not None:
        patch["priority"] = priority
    if assignee is not None:
        patch["assignee"] = assignee or None
    if reporter is not None:
        patch["reporter"] = reporter or None
    if labels is not None:
        patch["labels"] = normalize_labels(labels)

    issue = ws.store.update_issue(issue_id, patch) if patch else current
    issues = ws.store.issues()
    folder = refresh_issue(ws, issue_id, description=description, issues=issues)

    renamed = patch.get("keywords", current["keywords"]) != current["keywords"]
    if renamed:
        log.info("renamed %s: %s -> %s", issue_id, current["keywords"], patch["keywords"])
        refresh_parent(ws, issue, issues)
        refresh_sprints_of(ws, subtree_ids(issues, issue_id), issues)
    elif "name" in patch:
        refresh_parent(ws, issue, issues)
    return with_folder(issue, folder)
