"""Shared helpers for issue operations."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ppp.errors import ValidationError
from ppp.ids import normalize_id, parse_id


def require_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError("Issue name cannot be empty.")
    return name.strip()


def canonical_id(issue_id: str) -> str:
    """Normalize and validate a user-supplied issue id."""
    issue_id = normalize_id(issue_id)
    parse_id(issue_id)
    return issue_id


def with_folder(issue: dict[str, Any], folder: Path | None) -> dict[str, Any]:
    return {**issue, "folder_path": str(folder) if folder is not None else None}
