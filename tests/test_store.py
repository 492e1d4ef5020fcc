"""Tests for the YAML metadata store and id counters."""

from __future__ import annotations

import pytest
import yaml

from ppp.errors import (
    DatabaseCorrupt,
    DatabaseNotFound,
    HierarchyViolation,
    IssueHasChildren,
    IssueNotFound,
    ParentNotFound,
    SprintNotFound,
)
from ppp.fs import now_iso
from ppp.models import IssueFilter, new_issue_record, new_sprint_record
from ppp.store import CounterStore, MetadataStore
from ppp.store.counters import empty_counters


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path):
    s = MetadataStore(tmp_path / "database.yml")
    s.initialize("demo")
    return s


def _add(store, issue_type, name, parent_id=None, **fields):
    issue_id = store.mint_issue_id(issue_type, parent_id)
    record = new_issue_record(issue_id, issue_type, name, name.lower().replace(" ", "_"), now_iso(), parent_id=parent_id)
    record.update(fields)
    return store.create_issue(record)


def _add_sprint(store):
    sprint_id = store.mint_sprint_id()
    return store.create_sprint(new_sprint_record(sprint_id, f"Sprint {sprint_id}", now_iso(), "2026-01-05"))


# ---------------------------------------------------------------------------
# File lifecycle
# ---------------------------------------------------------------------------


class TestLoadSave:
    def test_missing_database(self, tmp_path):
        with pytest.raises(DatabaseNotFound):
            MetadataStore(tmp_path / "nope.yml").load()

    def test_unparseable_yaml(self, tmp_path):
        path = tmp_path / "database.yml"
        path.write_text("issues: [unclosed\n")
        with pytest.raises(DatabaseCorrupt):
            MetadataStore(path).load()

    def test_missing_sections(self, tmp_path):
        path = tmp_path / "database.yml"
        path.write_text("issues: {}\n")
        with pytest.raises(DatabaseCorrupt):
            MetadataStore(path).load()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "database.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(DatabaseCorrupt):
            MetadataStore(path).load()

    def test_initialize_layout(self, store):
        db = store.load()
        assert db["project"]["name"] == "demo"
        assert db["metadata"]["version"] == "1.0.0"
        assert db["metadata"]["counters"] == empty_counters()
        assert db["issues"] == {} and db["sprints"] == {}

    def test_initialize_is_idempotent(self, store):
        _add(store, "feature", "Auth")
        store.initialize("other")
        assert store.get_issue("F01") is not None
        assert store.load()["project"]["name"] == "demo"

    def test_save_writes_backup(self, store):
        before = store.db_path.read_text()
        _add(store, "feature", "Auth")
        assert store.backup_path.exists()
        assert store.backup_path.read_text() != store.db_path.read_text()
        assert before != store.db_path.read_text()

    def test_file_is_plain_yaml(self, store):
        _add(store, "feature", "Auth")
        data = yaml.safe_load(store.db_path.read_text())
        assert data["issues"]["F01"]["name"] == "Auth"

    def test_load_returns_private_copy(self, store):
        db = store.load()
        db["issues"]["F99"] = {"id": "F99"}
        assert "F99" not in store.load()["issues"]

    def test_external_edit_is_picked_up(self, store):
        store.load()
        data = yaml.safe_load(store.db_path.read_text())
        data["project"]["name"] = "renamed-behind-our-back"
        store.db_path.write_text(yaml.dump(data))
        assert store.load()["project"]["name"] == "renamed-behind-our-back"

    def test_legacy_file_gets_missing_blocks(self, tmp_path):
        path = tmp_path / "database.yml"
        path.write_text("metadata: {}\nissues: {}\nsprints: {}\n")
        db = MetadataStore(path).load()
        assert db["release"]["sprints"] == []
        assert db["feature_bill"] == {}
        assert db["metadata"]["counters"]["sprints"] == 0

    def test_timestamped_backup(self, store):
        target = store.backup()
        assert target.exists()
        assert target.name.startswith("database.yml.backup-")


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------


class TestCounters:
    def test_mint_sequence(self, store):
        assert _add(store, "feature", "A")["id"] == "F01"
        assert _add(store, "feature", "B")["id"] == "F02"
        assert _add(store, "feature", "A1", parent_id="F01")["id"] == "F0101"
        assert _add(store, "task", "T", parent_id="F0101")["id"] == "T010101"
        assert _add(store, "story", "S", parent_id="F0101")["id"] == "T010102"
        assert _add(store, "bug", "B", parent_id="F01")["id"] == "B0101"

    def test_counters_persisted(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        counters = store.load()["metadata"]["counters"]
        assert counters["features"]["level1"] == 1
        assert counters["tasks"] == {"F01": 1}

    def test_ids_never_reused(self, store):
        _add(store, "feature", "A")
        store.delete_issue("F01")
        assert _add(store, "feature", "B")["id"] == "F02"

    def test_deleted_id_not_reused_through_shared_digits(self, store):
        _add(store, "feature", "A")
        _add(store, "feature", "A1", parent_id="F01")
        assert _add(store, "task", "Under feature", parent_id="F0101")["id"] == "T010101"
        assert _add(store, "task", "Under F01", parent_id="F01")["id"] == "T0101"
        store.delete_issue("T010101")
        assert _add(store, "task", "Under task", parent_id="T0101")["id"] == "T010102"

    def test_bug_counters_share_digits(self, store):
        _add(store, "feature", "A")
        _add(store, "feature", "A1", parent_id="F01")
        _add(store, "task", "T", parent_id="F01")
        assert _add(store, "bug", "B1", parent_id="F0101")["id"] == "B010101"
        assert _add(store, "bug", "B2", parent_id="T0101")["id"] == "B010102"

    def test_taken_ids_are_skipped(self, store):
        db = store.load()
        db["issues"]["F01"] = new_issue_record("F01", "feature", "Manual", "manual", now_iso())
        store.save(db)
        assert store.mint_issue_id("feature", None) == "F02"

    def test_sprint_ids(self, store):
        assert _add_sprint(store)["id"] == "S01"
        assert _add_sprint(store)["id"] == "S02"

    def test_merge_legacy_keeps_higher(self):
        data = empty_counters()
        data["features"]["level1"] = 5
        counters = CounterStore(data)
        counters.merge_legacy({"features": {"level1": 3, "level2": {"F01": 4}}, "tasks": {"F01": 2}, "sprints": 7})
        assert data["features"]["level1"] == 5
        assert data["features"]["level2"] == {"F01": 4}
        assert data["tasks"] == {"F01": 2}
        assert data["sprints"] == 7


# ---------------------------------------------------------------------------
# Hierarchy rules
# ---------------------------------------------------------------------------


class TestHierarchy:
    def test_task_needs_parent(self, store):
        with pytest.raises(HierarchyViolation):
            store.mint_issue_id("task", None)

    def test_missing_parent(self, store):
        with pytest.raises(ParentNotFound):
            store.mint_issue_id("task", "F09")

    def test_feature_under_task(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        with pytest.raises(HierarchyViolation):
            store.mint_issue_id("feature", "T0101")

    def test_feature_depth_limit(self, store):
        _add(store, "feature", "A")
        _add(store, "feature", "B", parent_id="F01")
        _add(store, "feature", "C", parent_id="F0101")
        with pytest.raises(HierarchyViolation):
            store.mint_issue_id("feature", "F010101")

    def test_task_under_task(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        assert _add(store, "task", "Sub", parent_id="T0101")["parent_id"] == "T0101"

    def test_bug_under_bug(self, store):
        _add(store, "feature", "A")
        _add(store, "bug", "B", parent_id="F01")
        with pytest.raises(HierarchyViolation):
            store.mint_issue_id("bug", "B0101")

    def test_failed_validation_leaves_counters(self, store):
        before = store.load()["metadata"]["counters"]
        with pytest.raises(HierarchyViolation):
            store.mint_issue_id("task", None)
        assert store.load()["metadata"]["counters"] == before


# ---------------------------------------------------------------------------
# Issue CRUD
# ---------------------------------------------------------------------------


class TestIssues:
    def test_children_tracked(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        assert store.get_issue("F01")["children"] == ["T0101"]
        assert [i["id"] for i in store.children_of("F01")] == ["T0101"]

    def test_case_insensitive_lookup(self, store):
        _add(store, "feature", "A")
        assert store.get_issue("f01")["id"] == "F01"

    def test_require_missing(self, store):
        with pytest.raises(IssueNotFound):
            store.require_issue("F42")

    def test_update(self, store):
        _add(store, "feature", "A")
        updated = store.update_issue("F01", {"status": "done"})
        assert updated["status"] == "done"
        assert store.load()["feature_bill"]["F01"]["status"] == "done"

    def test_delete_with_children(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        with pytest.raises(IssueHasChildren):
            store.delete_issue("F01")

    def test_delete_unlinks_everywhere(self, store):
        _add(store, "feature", "A")
        _add(store, "feature", "B", parent_id="F01")
        _add_sprint(store)
        store.add_issue_to_sprint("F0101", "S01")
        store.delete_issue("F0101")
        db = store.load()
        assert db["issues"]["F01"]["children"] == []
        assert db["sprints"]["S01"]["issues"] == []
        assert "F0101" not in db["feature_bill"]
        assert db["feature_bill"]["F01"]["children"] == []

    def test_feature_bill(self, store):
        _add(store, "feature", "A", assignee="sam")
        _add(store, "feature", "B", parent_id="F01")
        _add(store, "task", "T", parent_id="F01")
        bill = store.load()["feature_bill"]
        assert set(bill) == {"F01", "F0101"}
        assert bill["F01"] == {
            "id": "F01",
            "name": "A",
            "status": "new",
            "assignee": "sam",
            "layer": 1,
            "parent_id": None,
            "children": ["F0101", "T0101"],
        }
        assert bill["F0101"]["layer"] == 2

    def test_list_with_filter(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01", labels=["ui"])
        _add(store, "bug", "B", parent_id="F01")
        assert [i["id"] for i in store.list_issues(IssueFilter(type="bug"))] == ["B0101"]
        assert [i["id"] for i in store.list_issues(IssueFilter(labels=("UI",)))] == ["T0101"]
        assert [i["id"] for i in store.list_issues(IssueFilter(parent_id="F01"))] == ["B0101", "T0101"]

    def test_reparent_rejects_cycle(self, store):
        _add(store, "feature", "A")
        _add(store, "task", "T", parent_id="F01")
        _add(store, "task", "Sub", parent_id="T0101")
        with pytest.raises(HierarchyViolation):
            store.reparent_issue("T0101", "T010101")


# ---------------------------------------------------------------------------
# Sprints
# ---------------------------------------------------------------------------


class TestSprints:
    def test_create_registers_with_release(self, store):
        _add_sprint(store)
        assert store.release()["sprints"] == ["S01"]

    def test_lookup_accepts_short_forms(self, store):
        _add_sprint(store)
        assert store.get_sprint("1")["id"] == "S01"
        assert store.require_sprint("s01")["id"] == "S01"

    def test_missing_sprint(self, store):
        with pytest.raises(SprintNotFound):
            store.require_sprint("S07")

    def test_reassignment_moves_issue(self, store):
        _add(store, "feature", "A")
        _add_sprint(store)
        _add_sprint(store)
        assert store.add_issue_to_sprint("F01", "S01") is None
        assert store.add_issue_to_sprint("F01", "S02") == "S01"
        db = store.load()
        assert db["sprints"]["S01"]["issues"] == []
        assert db["sprints"]["S02"]["issues"] == ["F01"]
        assert db["issues"]["F01"]["sprint_id"] == "S02"

    def test_remove_issue(self, store):
        _add(store, "feature", "A")
        _add_sprint(store)
        store.add_issue_to_sprint("F01", "S01")
        store.remove_issue_from_sprint("F01", "S01")
        assert store.get_issue("F01")["sprint_id"] is None
        assert store.get_sprint("S01")["issues"] == []

    def test_delete_clears_references(self, store):
        _add(store, "feature", "A")
        _add_sprint(store)
        store.add_issue_to_sprint("F01", "S01")
        store.update_sprint("S01", {"status": "active"})
        store.set_current_sprint("S01")
        store.delete_sprint("S01")
        db = store.load()
        assert db["issues"]["F01"]["sprint_id"] is None
        assert db["release"]["sprints"] == []
        assert db["release"]["current_sprint"] is None

    def test_active_sprint(self, store):
        _add_sprint(store)
        assert store.get_active_sprint() is None
        store.update_sprint("S01", {"status": "active"})
        assert store.get_active_sprint()["id"] == "S01"
