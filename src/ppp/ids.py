"""Hierarchical issue ids and sprint ids.

Issue ids are a type prefix followed by one or more two-digit groups:
``F01`` (top feature), ``F0102`` (sub-feature), ``T010203`` (task under
F0102), ``B0101`` (bug under F01). Each group is one level of depth.
Sprint ids are ``S`` followed by a zero-padded number: ``S01``.
"""

from __future__ import annotations

import re

from ppp.errors import InvalidIdFormat, ValidationError

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

FEATURE_PREFIX = "F"
TASK_PREFIX = "T"
BUG_PREFIX = "B"

MAX_FEATURE_LEVEL = 3
MAX_GROUP = 99

# Stories are filed as tasks; both share the T prefix
TYPE_TO_PREFIX: dict[str, str] = {
    "feature": FEATURE_PREFIX,
    "story": TASK_PREFIX,
    "task": TASK_PREFIX,
    "bug": BUG_PREFIX,
}

_ISSUE_ID_RE = re.compile(r"^([FTB])((?:\d{2})+)$")
_SPRINT_ID_RE = re.compile(r"^(?:S|SPRINT)?[-_ ]?(\d+)$")


# ---------------------------------------------------------------------------
# Issue ids
# ---------------------------------------------------------------------------


def normalize_id(raw: str) -> str:
    """Canonical form of a user-supplied id: trimmed and upper-cased."""
    return raw.strip().upper()


def parse_id(issue_id: str) -> tuple[str, str]:
    """Split an issue id into ``(prefix, digits)``.

    Raises InvalidIdFormat when the id has no known prefix, an odd digit
    count, or a feature id deeper than three levels.
    """
    m = _ISSUE_ID_RE.match(issue_id or "")
    if not m:
        raise InvalidIdFormat(f"Invalid issue id '{issue_id}'. Expected F/T/B followed by two-digit groups.")
    prefix, digits = m.group(1), m.group(2)
    if prefix == FEATURE_PREFIX and len(digits) > 2 * MAX_FEATURE_LEVEL:
        raise InvalidIdFormat(f"Invalid feature id '{issue_id}': features nest at most {MAX_FEATURE_LEVEL} levels.")
    return prefix, digits


def level_of(issue_id: str) -> int:
    """Depth of an id: one per two-digit group."""
    _, digits = parse_id(issue_id)
    return len(digits) // 2


def parent_of(issue_id: str) -> str | None:
    """Id-derived parent: drop the last group and re-prefix with F.

    Level-1 ids have no parent. This is the structural parent only; a task
    filed under another task records its real parent in metadata.
    """
    _, digits = parse_id(issue_id)
    if len(digits) == 2:
        return None
    return FEATURE_PREFIX + digits[:-2]


def level_segment(issue_id: str, level: int) -> str:
    """Prefix plus the two-digit group at ``level`` (1-based): F0102, 2 -> F02."""
    prefix, digits = parse_id(issue_id)
    depth = len(digits) // 2
    if level < 1 or level > depth:
        raise InvalidIdFormat(f"Level {level} out of range for '{issue_id}' (depth {depth}).")
    return prefix + digits[2 * (level - 1): 2 * level]


def ancestor_feature_id(issue_id: str, level: int) -> str:
    """Feature id formed by the first ``level`` groups of ``issue_id``."""
    _, digits = parse_id(issue_id)
    return FEATURE_PREFIX + digits[: 2 * level]


def next_child_id(parent_id: str | None, n: int, prefix: str) -> str:
    """Build the id of the ``n``-th child of ``parent_id`` with ``prefix``.

    With no parent the result is a top-level id (``F07``).
    """
    if n < 1 or n > MAX_GROUP:
        raise InvalidIdFormat(f"Counter value {n} does not fit a two-digit group.")
    if parent_id is None:
        return f"{prefix}{n:02d}"
    _, digits = parse_id(parent_id)
    return f"{prefix}{digits}{n:02d}"


def prefix_for_type(issue_type: str) -> str:
    try:
        return TYPE_TO_PREFIX[issue_type]
    except KeyError:
        valid = ", ".join(sorted(TYPE_TO_PREFIX))
        raise ValidationError(f"Invalid issue type '{issue_type}'. Valid: {valid}") from None


# ---------------------------------------------------------------------------
# Sprint ids
# ---------------------------------------------------------------------------


def format_sprint_id(n: int) -> str:
    return f"S{n:02d}"


def normalize_sprint_id(raw: str) -> str:
    """Accept ``S01``, ``s1``, ``01``, ``1`` or ``Sprint-01`` and return ``S01``."""
    m = _SPRINT_ID_RE.match((raw or "").strip().upper())
    if not m or int(m.group(1)) < 1:
        raise InvalidIdFormat(f"Invalid sprint id '{raw}'. Expected S01, 01 or 1.")
    return format_sprint_id(int(m.group(1)))


def sprint_number(sprint_id: str) -> int:
    return int(normalize_sprint_id(sprint_id)[1:])
