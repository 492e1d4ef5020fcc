"""Record shapes, vocabularies and the issue filter.

Records are plain dicts so they round-trip through YAML unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ppp.errors import ValidationError

# ---------------------------------------------------------------------------
# Vocabulary constants
# ---------------------------------------------------------------------------

VALID_TYPES = {"feature", "story", "task", "bug"}
VALID_STATUSES = {"new", "in_progress", "done", "blocked", "cancelled"}
VALID_PRIORITIES = {"high", "medium", "low"}

SPRINT_STATUSES = ("planned", "active", "completed", "archived")
SPRINT_TRANSITIONS: dict[str, set[str]] = {
    "planned": {"active"},
    "active": {"completed"},
    "completed": {"archived"},
    "archived": set(),
}
# Sprints that still accept membership changes
EDITABLE_SPRINT_STATUSES = {"planned", "active"}

DEFAULT_STATUS = "new"
DEFAULT_PRIORITY = "medium"


def validate_choice(value: str, valid: Iterable[str], field: str) -> str:
    if value not in valid:
        raise ValidationError(f"Invalid {field} '{value}'. Valid: {', '.join(sorted(valid))}")
    return value


def normalize_labels(labels: str | Iterable[str] | None) -> list[str]:
    """Accept ``"a, b"`` or ``["a", "b"]``; return a sorted de-duplicated list."""
    if labels is None:
        return []
    if isinstance(labels, str):
        labels = labels.split(",")
    return sorted({label.strip() for label in labels if label and label.strip()})


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


def new_issue_record(
    issue_id: str,
    issue_type: str,
    name: str,
    keywords: str,
    now: str,
    parent_id: str | None = None,
    priority: str = DEFAULT_PRIORITY,
    assignee: str | None = None,
    reporter: str | None = None,
    labels: Iterable[str] = (),
) -> dict[str, Any]:
    return {
        "id": issue_id,
        "type": issue_type,
        "name": name,
        "keywords": keywords,
        "status": DEFAULT_STATUS,
        "priority": priority,
        "assignee": assignee,
        "reporter": reporter,
        "labels": list(labels),
        "parent_id": parent_id,
        "sprint_id": None,
        "children": [],
        "created_at": now,
        "updated_at": now,
    }


def new_sprint_record(
    sprint_id: str,
    name: str,
    now: str,
    start_date: str,
    description: str = "",
) -> dict[str, Any]:
    return {
        "id": sprint_id,
        "name": name,
        "description": description,
        "status": "planned",
        "start_date": start_date,
        "end_date": None,
        "velocity": 0,
        "issues": [],
        "created_at": now,
        "updated_at": now,
    }


def feature_bill_entry(issue: dict[str, Any], layer: int) -> dict[str, Any]:
    """Condensed feature view kept alongside the full issue record."""
    return {
        "id": issue["id"],
        "name": issue["name"],
        "status": issue["status"],
        "assignee": issue.get("assignee"),
        "layer": layer,
        "parent_id": issue.get("parent_id"),
        "children": list(issue.get("children") or []),
    }


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IssueFilter:
    """Conjunctive issue filter; ``None`` fields match everything.

    Labels match when the issue carries any of them (case-insensitive).
    """

    parent_id: str | None = None
    type: str | None = None
    status: str | None = None
    assignee: str | None = None
    labels: tuple[str, ...] = ()
    sprint_id: str | None = None

    def __post_init__(self) -> None:
        if self.type is not None:
            validate_choice(self.type, VALID_TYPES, "type")
        if self.status is not None:
            validate_choice(self.status, VALID_STATUSES, "status")

    @property
    def is_empty(self) -> bool:
        return not any((self.parent_id, self.type, self.status, self.assignee, self.labels, self.sprint_id))

    def matches(self, issue: dict[str, Any]) -> bool:
        if self.parent_id is not None and issue.get("parent_id") != self.parent_id:
            return False
        if self.type is not None and issue.get("type") != self.type:
            return False
        if self.status is not None and issue.get("status") != self.status:
            return False
        if self.assignee is not None and issue.get("assignee") != self.assignee:
            return False
        if self.sprint_id is not None and issue.get("sprint_id") != self.sprint_id:
            return False
        if self.labels:
            have = {label.lower() for label in issue.get("labels") or []}
            if not have.intersection(label.lower() for label in self.labels):
                return False
        return True
