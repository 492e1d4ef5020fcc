"""Metadata Store — the YAML database at .ppp/database.yml.

The database is the single source of truth for issues, sprints, the
parent/child graph and id counters. Every mutation is a full
load-modify-save cycle; a rolling ``.backup`` copy of the previous file is
written before each save. Reads are cached and invalidated by the file's
mtime, so an edit made behind our back is picked up on the next call.
"""

from __future__ import annotations

import copy
import logging
import shutil
from pathlib import Path
from typing import Any

import yaml

from ppp.defaults import BACKUP_SUFFIX, DB_VERSION
from ppp.errors import (
    DatabaseCorrupt,
    DatabaseNotFound,
    FilesystemOperationFailed,
    HierarchyViolation,
    IssueHasChildren,
    IssueNotFound,
    ParentNotFound,
    SprintNotFound,
    ValidationError,
)
from ppp.fs import archive_stamp, atomic_write_file, now_iso
from ppp.ids import FEATURE_PREFIX, MAX_FEATURE_LEVEL, level_of, normalize_id, normalize_sprint_id, parse_id
from ppp.models import IssueFilter, feature_bill_entry
from ppp.store.counters import CounterStore, empty_counters

log = logging.getLogger(__name__)

REQUIRED_KEYS = ("metadata", "issues", "sprints")

# Fields a caller may patch through update_issue
ISSUE_MUTABLE_FIELDS = {
    "name", "keywords", "status", "priority", "assignee", "reporter", "labels",
}
SPRINT_MUTABLE_FIELDS = {
    "name", "description", "status", "start_date", "end_date", "velocity",
}


def empty_database(project_name: str, now: str) -> dict[str, Any]:
    return {
        "project": {"name": project_name, "description": ""},
        "release": {
            "name": f"{project_name} release",
            "description": "",
            "start_date": now[:10],
            "end_date": None,
            "current_sprint": None,
            "sprints": [],
        },
        "feature_bill": {},
        "issues": {},
        "sprints": {},
        "metadata": {
            "version": DB_VERSION,
            "created": now,
            "updated": now,
            "counters": empty_counters(),
        },
    }


def _find_key(mapping: dict[str, Any], key: str) -> str | None:
    """Case-insensitive key lookup; canonical keys are upper-case."""
    if key in mapping:
        return key
    upper = key.upper()
    if upper in mapping:
        return upper
    lowered = key.lower()
    for existing in mapping:
        if existing.lower() == lowered:
            return existing
    return None


def check_parent(issue_type: str, parent: dict[str, Any] | None) -> None:
    """Enforce which issue types may sit under which.

    Features nest under features up to three levels. Stories, tasks and
    bugs need a feature or task parent.
    """
    if parent is None:
        if issue_type != "feature":
            raise HierarchyViolation(f"A {issue_type} must have a parent issue.")
        return
    prefix, _ = parse_id(parent["id"])
    if issue_type == "feature":
        if prefix != FEATURE_PREFIX:
            raise HierarchyViolation(f"Features can only be nested under features, not '{parent['id']}'.")
        if level_of(parent["id"]) >= MAX_FEATURE_LEVEL:
            raise HierarchyViolation(
                f"Feature '{parent['id']}' is at level {MAX_FEATURE_LEVEL}; sub-features are not allowed."
            )
        return
    if parent.get("type") not in {"feature", "story", "task"}:
        raise HierarchyViolation(f"A {issue_type} must sit under a feature or task, not '{parent['id']}'.")


class MetadataStore:
    """Typed access to the YAML database file."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._cache: dict[str, Any] | None = None
        self._stamp: tuple[int, int] | None = None

    # ------------------------------------------------------------------
    # File lifecycle
    # ------------------------------------------------------------------

    @property
    def backup_path(self) -> Path:
        return self.db_path.with_name(self.db_path.name + BACKUP_SUFFIX)

    def exists(self) -> bool:
        return self.db_path.exists()

    def initialize(self, project_name: str) -> dict[str, Any]:
        """Create an empty database. Returns the existing one if present."""
        if self.exists():
            return self.load()
        db = empty_database(project_name, now_iso())
        self.save(db)
        log.info("initialized database at %s", self.db_path)
        return self.load()

    def load(self) -> dict[str, Any]:
        """Return a private copy of the database, re-reading on mtime change."""
        try:
            st = self.db_path.stat()
        except FileNotFoundError:
            raise DatabaseNotFound(f"No database at {self.db_path}. Run 'ppp init' first.") from None
        stamp = (st.st_mtime_ns, st.st_size)
        if self._cache is None or stamp != self._stamp:
            self._cache = self._read()
            self._stamp = stamp
        return copy.deepcopy(self._cache)

    def _read(self) -> dict[str, Any]:
        try:
            data = yaml.safe_load(self.db_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise DatabaseCorrupt(f"Cannot parse {self.db_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise DatabaseCorrupt(f"{self.db_path} must hold a YAML mapping")
        missing = [key for key in REQUIRED_KEYS if not isinstance(data.get(key), dict)]
        if missing:
            raise DatabaseCorrupt(f"{self.db_path} is missing sections: {', '.join(missing)}")

        # Older files predate these blocks
        template = empty_database(str((data.get("project") or {}).get("name") or "project"), now_iso())
        for key in ("project", "release", "feature_bill"):
            if not isinstance(data.get(key), dict):
                data[key] = template[key]
        data["release"].setdefault("sprints", [])
        data["release"].setdefault("current_sprint", None)
        data["metadata"].setdefault("version", DB_VERSION)
        CounterStore(data["metadata"].setdefault("counters", empty_counters()))
        return data

    def save(self, db: dict[str, Any]) -> None:
        """Persist the database, keeping the previous file as ``.backup``."""
        db["metadata"]["updated"] = now_iso()
        text = yaml.dump(db, default_flow_style=False, sort_keys=True, allow_unicode=True)
        try:
            if self.db_path.exists():
                shutil.copy2(self.db_path, self.backup_path)
        except OSError as exc:
            raise FilesystemOperationFailed(f"Cannot back up {self.db_path}: {exc}") from exc
        atomic_write_file(self.db_path, text)
        st = self.db_path.stat()
        self._cache = copy.deepcopy(db)
        self._stamp = (st.st_mtime_ns, st.st_size)

    def backup(self) -> Path:
        """Write a timestamped snapshot next to the database."""
        if not self.exists():
            raise DatabaseNotFound(f"No database at {self.db_path}.")
        target = self.db_path.with_name(f"{self.db_path.name}{BACKUP_SUFFIX}-{archive_stamp()}")
        try:
            shutil.copy2(self.db_path, target)
        except OSError as exc:
            raise FilesystemOperationFailed(f"Cannot back up {self.db_path}: {exc}") from exc
        return target

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def mint_issue_id(self, issue_type: str, parent_id: str | None) -> str:
        """Reserve and persist the next id for a child of ``parent_id``.

        Ids already present in the issue map are skipped, so sibling
        counters that share digits never hand out a duplicate.
        """
        db = self.load()
        parent = None
        if parent_id is not None:
            key = _find_key(db["issues"], parent_id)
            if key is None:
                raise ParentNotFound(f"Parent issue '{parent_id}' not found.")
            parent = db["issues"][key]
            parent_id = key
        check_parent(issue_type, parent)

        counters = CounterStore(db["metadata"]["counters"])
        issue_id = counters.next_issue_id(issue_type, parent_id)
        while issue_id in db["issues"]:
            log.warning("id %s already taken, skipping", issue_id)
            issue_id = counters.next_issue_id(issue_type, parent_id)
        self.save(db)
        return issue_id

    def mint_sprint_id(self) -> str:
        db = self.load()
        counters = CounterStore(db["metadata"]["counters"])
        sprint_id = counters.next_sprint_id()
        while sprint_id in db["sprints"]:
            sprint_id = counters.next_sprint_id()
        self.save(db)
        return sprint_id

    def merge_legacy_counters(self, legacy: dict[str, Any]) -> None:
        db = self.load()
        CounterStore(db["metadata"]["counters"]).merge_legacy(legacy)
        self.save(db)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def issues(self) -> dict[str, dict[str, Any]]:
        return self.load()["issues"]

    def get_issue(self, issue_id: str) -> dict[str, Any] | None:
        issues = self.issues()
        key = _find_key(issues, issue_id)
        return issues[key] if key else None

    def require_issue(self, issue_id: str) -> dict[str, Any]:
        issue = self.get_issue(issue_id)
        if issue is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        return issue

    def list_issues(self, flt: IssueFilter | None = None) -> list[dict[str, Any]]:
        issues = sorted(self.issues().values(), key=lambda i: i["id"])
        if flt is None or flt.is_empty:
            return issues
        return [issue for issue in issues if flt.matches(issue)]

    def children_of(self, issue_id: str) -> list[dict[str, Any]]:
        issues = self.issues()
        return sorted((i for i in issues.values() if i.get("parent_id") == issue_id), key=lambda i: i["id"])

    def create_issue(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a new issue and link it into its parent's children list."""
        db = self.load()
        issue_id = normalize_id(record["id"])
        if issue_id in db["issues"]:
            raise ValidationError(f"Issue '{issue_id}' already exists.")
        parent_id = record.get("parent_id")
        parent = None
        if parent_id is not None:
            key = _find_key(db["issues"], parent_id)
            if key is None:
                raise ParentNotFound(f"Parent issue '{parent_id}' not found.")
            parent = db["issues"][key]
        check_parent(record["type"], parent)

        record = dict(record, id=issue_id)
        db["issues"][issue_id] = record
        if parent is not None:
            record["parent_id"] = parent["id"]
            if issue_id not in parent["children"]:
                parent["children"].append(issue_id)
                parent["children"].sort()
            parent["updated_at"] = record["updated_at"]
            self._sync_feature_bill(db, parent["id"])
        self._sync_feature_bill(db, issue_id)
        self.save(db)
        return copy.deepcopy(record)

    def update_issue(self, issue_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        unknown = set(patch) - ISSUE_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        db = self.load()
        key = _find_key(db["issues"], issue_id)
        if key is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        issue = db["issues"][key]
        issue.update(patch)
        issue["updated_at"] = now_iso()
        self._sync_feature_bill(db, key)
        self.save(db)
        return copy.deepcopy(issue)

    def delete_issue(self, issue_id: str) -> dict[str, Any]:
        """Remove a childless issue and every reference to it."""
        db = self.load()
        key = _find_key(db["issues"], issue_id)
        if key is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        issue = db["issues"][key]
        if issue.get("children"):
            raise IssueHasChildren(
                f"Issue '{key}' has children ({', '.join(issue['children'])}); delete them first."
            )

        parent = db["issues"].get(issue.get("parent_id") or "")
        if parent is not None and key in parent["children"]:
            parent["children"].remove(key)
            parent["updated_at"] = now_iso()
            self._sync_feature_bill(db, parent["id"])
        sprint = db["sprints"].get(issue.get("sprint_id") or "")
        if sprint is not None and key in sprint["issues"]:
            sprint["issues"].remove(key)
            sprint["updated_at"] = now_iso()

        del db["issues"][key]
        db["feature_bill"].pop(key, None)
        self.save(db)
        return issue

    def reparent_issue(self, issue_id: str, new_parent_id: str) -> dict[str, Any]:
        """Move an issue under a different parent, keeping its id."""
        db = self.load()
        key = _find_key(db["issues"], issue_id)
        if key is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        parent_key = _find_key(db["issues"], new_parent_id)
        if parent_key is None:
            raise ParentNotFound(f"Parent issue '{new_parent_id}' not found.")
        issue, new_parent = db["issues"][key], db["issues"][parent_key]
        check_parent(issue["type"], new_parent)

        # Walk up from the new parent; meeting the issue means a cycle
        cursor: dict[str, Any] | None = new_parent
        while cursor is not None:
            if cursor["id"] == key:
                raise HierarchyViolation(f"Cannot move '{key}' under its own descendant '{parent_key}'.")
            cursor = db["issues"].get(cursor.get("parent_id") or "")

        now = now_iso()
        old_parent = db["issues"].get(issue.get("parent_id") or "")
        if old_parent is not None and key in old_parent["children"]:
            old_parent["children"].remove(key)
            old_parent["updated_at"] = now
            self._sync_feature_bill(db, old_parent["id"])
        if key not in new_parent["children"]:
            new_parent["children"].append(key)
            new_parent["children"].sort()
        new_parent["updated_at"] = now
        issue["parent_id"] = parent_key
        issue["updated_at"] = now
        self._sync_feature_bill(db, parent_key)
        self._sync_feature_bill(db, key)
        self.save(db)
        return copy.deepcopy(issue)

    def _sync_feature_bill(self, db: dict[str, Any], issue_id: str) -> None:
        issue = db["issues"].get(issue_id)
        if issue is None or issue.get("type") != "feature":
            return
        db["feature_bill"][issue_id] = feature_bill_entry(issue, level_of(issue_id))

    # ------------------------------------------------------------------
    # Sprints
    # ------------------------------------------------------------------

    def _sprint_key(self, db: dict[str, Any], sprint_id: str) -> str:
        key = _find_key(db["sprints"], normalize_sprint_id(sprint_id))
        if key is None:
            raise SprintNotFound(f"Sprint '{sprint_id}' not found.")
        return key

    def get_sprint(self, sprint_id: str) -> dict[str, Any] | None:
        sprints = self.load()["sprints"]
        key = _find_key(sprints, normalize_sprint_id(sprint_id))
        return sprints[key] if key else None

    def require_sprint(self, sprint_id: str) -> dict[str, Any]:
        db = self.load()
        return db["sprints"][self._sprint_key(db, sprint_id)]

    def list_sprints(self, status: str | None = None) -> list[dict[str, Any]]:
        sprints = sorted(self.load()["sprints"].values(), key=lambda s: s["id"])
        if status is not None:
            sprints = [s for s in sprints if s.get("status") == status]
        return sprints

    def get_active_sprint(self) -> dict[str, Any] | None:
        for sprint in self.list_sprints():
            if sprint.get("status") == "active":
                return sprint
        return None

    def create_sprint(self, record: dict[str, Any]) -> dict[str, Any]:
        db = self.load()
        if record["id"] in db["sprints"]:
            raise ValidationError(f"Sprint '{record['id']}' already exists.")
        db["sprints"][record["id"]] = record
        if record["id"] not in db["release"]["sprints"]:
            db["release"]["sprints"].append(record["id"])
        self.save(db)
        return copy.deepcopy(record)

    def update_sprint(self, sprint_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        unknown = set(patch) - SPRINT_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update sprint fields: {', '.join(sorted(unknown))}")
        db = self.load()
        sprint = db["sprints"][self._sprint_key(db, sprint_id)]
        sprint.update(patch)
        sprint["updated_at"] = now_iso()
        self.save(db)
        return copy.deepcopy(sprint)

    def delete_sprint(self, sprint_id: str) -> dict[str, Any]:
        """Remove a sprint; member issues lose their sprint assignment."""
        db = self.load()
        key = self._sprint_key(db, sprint_id)
        sprint = db["sprints"].pop(key)
        now = now_iso()
        for issue in db["issues"].values():
            if issue.get("sprint_id") == key:
                issue["sprint_id"] = None
                issue["updated_at"] = now
        if key in db["release"]["sprints"]:
            db["release"]["sprints"].remove(key)
        if db["release"].get("current_sprint") == key:
            db["release"]["current_sprint"] = None
        self.save(db)
        return sprint

    def add_issue_to_sprint(self, issue_id: str, sprint_id: str) -> str | None:
        """Assign an issue to a sprint. Returns the sprint it was taken from, if any."""
        db = self.load()
        key = _find_key(db["issues"], issue_id)
        if key is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        sprint_key = self._sprint_key(db, sprint_id)
        issue, sprint = db["issues"][key], db["sprints"][sprint_key]
        now = now_iso()

        previous = issue.get("sprint_id")
        if previous and previous != sprint_key:
            old = db["sprints"].get(previous)
            if old is not None and key in old["issues"]:
                old["issues"].remove(key)
                old["updated_at"] = now
        if key not in sprint["issues"]:
            sprint["issues"].append(key)
            sprint["issues"].sort()
        sprint["updated_at"] = now
        issue["sprint_id"] = sprint_key
        issue["updated_at"] = now
        self.save(db)
        return previous if previous != sprint_key else None

    def remove_issue_from_sprint(self, issue_id: str, sprint_id: str) -> None:
        db = self.load()
        key = _find_key(db["issues"], issue_id)
        if key is None:
            raise IssueNotFound(f"Issue '{issue_id}' not found.")
        sprint_key = self._sprint_key(db, sprint_id)
        issue, sprint = db["issues"][key], db["sprints"][sprint_key]
        if key not in sprint["issues"] and issue.get("sprint_id") != sprint_key:
            raise ValidationError(f"Issue '{key}' is not in sprint '{sprint_key}'.")
        now = now_iso()
        if key in sprint["issues"]:
            sprint["issues"].remove(key)
        sprint["updated_at"] = now
        if issue.get("sprint_id") == sprint_key:
            issue["sprint_id"] = None
            issue["updated_at"] = now
        self.save(db)

    def set_issue_status_bulk(self, issue_ids: list[str], status: str) -> list[str]:
        """Set status on several issues in one save. Returns ids that changed."""
        db = self.load()
        now = now_iso()
        changed: list[str] = []
        for issue_id in issue_ids:
            issue = db["issues"].get(issue_id)
            if issue is None or issue.get("status") == status:
                continue
            issue["status"] = status
            issue["updated_at"] = now
            self._sync_feature_bill(db, issue_id)
            changed.append(issue_id)
        if changed:
            self.save(db)
        return changed

    def set_current_sprint(self, sprint_id: str | None) -> None:
        db = self.load()
        db["release"]["current_sprint"] = sprint_id
        self.save(db)

    def release(self) -> dict[str, Any]:
        return self.load()["release"]
