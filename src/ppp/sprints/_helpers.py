"""Shared helpers for sprint operations."""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any

from ppp.errors import InvalidSprintTransition, ValidationError
from ppp.models import EDITABLE_SPRINT_STATUSES, SPRINT_TRANSITIONS


def check_transition(sprint: dict[str, Any], target: str) -> None:
    """planned -> active -> completed -> archived, one step at a time."""
    if target not in SPRINT_TRANSITIONS.get(sprint["status"], set()):
        raise InvalidSprintTransition(f"Sprint '{sprint['id']}' is {sprint['status']}; cannot move to {target}.")


def check_editable(sprint: dict[str, Any]) -> None:
    if sprint["status"] not in EDITABLE_SPRINT_STATUSES:
        raise InvalidSprintTransition(
            f"Sprint '{sprint['id']}' is {sprint['status']}; issues can only be changed in planned or active sprints."
        )


def check_date(value: str, field: str) -> str:
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {field} '{value}'. Expected YYYY-MM-DD.") from None
    return value


def velocity(sprint: dict[str, Any], issues: dict[str, dict[str, Any]]) -> int:
    """Number of member issues that are done."""
    return sum(1 for issue_id in sprint["issues"] if issues.get(issue_id, {}).get("status") == "done")


def with_folder(sprint: dict[str, Any], folder: Path | None) -> dict[str, Any]:
    return {**sprint, "folder_path": str(folder) if folder is not None else None}
