"""Per-parent id counters.

Counters live inside the database metadata block::

    counters:
      features: {level1: 3, level2: {F01: 2}, level3: {F0102: 1}}
      tasks: {F0102: 4}
      bugs: {F01: 1}
      sprints: 2

Each counter only grows. Ids are never recycled, even after deletes.
"""

from __future__ import annotations

from typing import Any

from ppp.errors import HierarchyViolation, InvalidIdFormat, ValidationError
from ppp.ids import (
    BUG_PREFIX,
    FEATURE_PREFIX,
    MAX_FEATURE_LEVEL,
    TASK_PREFIX,
    format_sprint_id,
    level_of,
    next_child_id,
    parse_id,
    prefix_for_type,
)


def empty_counters() -> dict[str, Any]:
    return {
        "features": {"level1": 0, "level2": {}, "level3": {}},
        "tasks": {},
        "bugs": {},
        "sprints": 0,
    }


class CounterStore:
    """Mutates a counters mapping in place; the caller persists it."""

    def __init__(self, data: dict[str, Any]) -> None:
        defaults = empty_counters()
        for key, value in defaults.items():
            data.setdefault(key, value)
        for key, value in defaults["features"].items():
            data["features"].setdefault(key, value)
        self.data = data

    def _bump(self, bucket: dict[str, int], key: str) -> int:
        bucket[key] = int(bucket.get(key, 0)) + 1
        return bucket[key]

    def next_feature_id(self, parent_id: str | None) -> str:
        features = self.data["features"]
        if parent_id is None:
            features["level1"] = int(features.get("level1", 0)) + 1
            return next_child_id(None, features["level1"], FEATURE_PREFIX)
        level = level_of(parent_id) + 1
        if level > MAX_FEATURE_LEVEL:
            raise HierarchyViolation(f"Feature '{parent_id}' is at the maximum depth; it cannot hold sub-features.")
        n = self._bump(features.setdefault(f"level{level}", {}), parent_id)
        return next_child_id(parent_id, n, FEATURE_PREFIX)

    def _bump_shared(self, bucket: dict[str, int], parent_id: str) -> int:
        """Bump a task or bug counter past every parent with the same digits.

        F0101 and T0101 both mint children numbered T0101NN, so their counters
        share one sequence.
        """
        _, digits = parse_id(parent_id)
        highest = 0
        for key, value in bucket.items():
            try:
                _, key_digits = parse_id(str(key))
            except InvalidIdFormat:
                continue
            if key_digits == digits:
                highest = max(highest, int(value))
        bucket[parent_id] = highest + 1
        return bucket[parent_id]

    def next_task_id(self, parent_id: str) -> str:
        n = self._bump_shared(self.data["tasks"], parent_id)
        return next_child_id(parent_id, n, TASK_PREFIX)

    def next_bug_id(self, parent_id: str) -> str:
        n = self._bump_shared(self.data["bugs"], parent_id)
        return next_child_id(parent_id, n, BUG_PREFIX)

    def next_issue_id(self, issue_type: str, parent_id: str | None) -> str:
        prefix = prefix_for_type(issue_type)
        if prefix == FEATURE_PREFIX:
            return self.next_feature_id(parent_id)
        if parent_id is None:
            raise ValidationError(f"A {issue_type} needs a parent issue.")
        if prefix == TASK_PREFIX:
            return self.next_task_id(parent_id)
        return self.next_bug_id(parent_id)

    def next_sprint_id(self) -> str:
        self.data["sprints"] = int(self.data.get("sprints", 0)) + 1
        return format_sprint_id(self.data["sprints"])

    def merge_legacy(self, legacy: dict[str, Any]) -> None:
        """Fold a pre-database counter file in, keeping the higher value of each."""
        features = legacy.get("features") or {}
        mine = self.data["features"]
        mine["level1"] = max(int(mine.get("level1", 0)), int(features.get("level1", 0) or 0))
        for level in ("level2", "level3"):
            for key, value in (features.get(level) or {}).items():
                mine[level][key] = max(int(mine[level].get(key, 0)), int(value))
        for bucket in ("tasks", "bugs"):
            for key, value in (legacy.get(bucket) or {}).items():
                self.data[bucket][key] = max(int(self.data[bucket].get(key, 0)), int(value))
        self.data["sprints"] = max(int(self.data.get("sprints", 0)), int(legacy.get("sprints", 0) or 0))
