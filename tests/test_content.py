"""Tests for spec.md parsing, rendering and section-preserving merges."""

from __future__ import annotations

from ppp.content import (
    COMMENTS,
    DESCRIPTION,
    ISSUE_DETAILS,
    SpecDocument,
    append_comment,
    build_issue_spec,
    merge_issue_spec,
    merge_sprint_spec,
    read_issue_content,
    render_children,
)

ISSUE = {
    "id": "F01",
    "type": "feature",
    "name": "User authentication",
    "status": "new",
    "priority": "high",
    "assignee": None,
    "reporter": "kim",
    "labels": ["auth", "security"],
    "parent_id": None,
    "sprint_id": None,
    "created_at": "2026-01-05T10:00:00",
    "updated_at": "2026-01-05T10:00:00",
}

CUSTOM = """## Acceptance Criteria

- [ ] users can log in
- [x] passwords are hashed

```markdown
## not a heading, just an example
```"""


def _issue(**changes):
    return {**ISSUE, **changes}


class TestSpecDocument:
    def test_parse_sections(self):
        doc = SpecDocument.parse("# Title\n\nintro line\n\n## One\n\nbody one\n\n## Two\n\nbody two\n")
        assert doc.title == "Title"
        assert doc.preamble == "intro line"
        assert [(s.heading, s.body) for s in doc.sections] == [("One", "body one"), ("Two", "body two")]

    def test_round_trip(self):
        text = "# Title\n\nintro\n\n## One\n\nbody\n\n## Empty\n\n## Two\n\n- a\n- b\n"
        assert SpecDocument.parse(text).render() == text

    def test_fenced_headings_are_body(self):
        doc = SpecDocument.parse("# T\n\n" + CUSTOM + "\n")
        assert [s.heading for s in doc.sections] == ["Acceptance Criteria"]
        assert "## not a heading" in doc.sections[0].body

    def test_set_inserts_after_anchor(self):
        doc = SpecDocument.parse("# T\n\n## A\n\n## C\n")
        doc.set("B", "b", after=("A",))
        assert [s.heading for s in doc.sections] == ["A", "B", "C"]


class TestIssueSpec:
    def test_build_layout(self):
        text = build_issue_spec(ISSUE, description="Let users sign in.")
        doc = SpecDocument.parse(text)
        assert doc.title == "User authentication"
        assert [s.heading for s in doc.sections] == [ISSUE_DETAILS, DESCRIPTION, COMMENTS]
        details = doc.get(ISSUE_DETAILS)
        assert "- **ID**: F01" in details
        assert "- **Assignee**: Unassigned" in details
        assert "- **Reporter**: kim" in details
        assert "- **Labels**: auth, security" in details
        assert "- **Parent**: None" in details
        assert doc.get(DESCRIPTION) == "Let users sign in."

    def test_default_description(self):
        assert "No description provided." in build_issue_spec(ISSUE)

    def test_merge_preserves_custom_sections(self):
        original = build_issue_spec(ISSUE).rstrip("\n") + "\n\n" + CUSTOM + "\n"
        merged = merge_issue_spec(original, _issue(status="done", sprint_id="S02"))
        assert CUSTOM in merged
        details = SpecDocument.parse(merged).get(ISSUE_DETAILS)
        assert "- **Status**: done" in details
        assert "- **Sprint**: S02" in details

    def test_merge_keeps_user_description(self):
        original = build_issue_spec(ISSUE, description="Hand-written\n\nwith two paragraphs")
        merged = merge_issue_spec(original, _issue(priority="low"))
        assert SpecDocument.parse(merged).get(DESCRIPTION) == "Hand-written\n\nwith two paragraphs"

    def test_merge_replaces_description_when_given(self):
        merged = merge_issue_spec(build_issue_spec(ISSUE), ISSUE, description="New text")
        assert SpecDocument.parse(merged).get(DESCRIPTION) == "New text"

    def test_merge_keeps_preamble_and_order(self):
        text = "# Old title\n\nfree text on top\n\n## Notes\n\nmine\n\n## Issue Details\n\nstale\n"
        doc = SpecDocument.parse(merge_issue_spec(text, ISSUE))
        assert doc.title == "User authentication"
        assert doc.preamble == "free text on top"
        assert [s.heading for s in doc.sections] == ["Notes", ISSUE_DETAILS, DESCRIPTION, COMMENTS]
        assert doc.get("Notes") == "mine"

    def test_merge_is_stable(self):
        once = merge_issue_spec(build_issue_spec(ISSUE) + "\n" + CUSTOM, ISSUE)
        assert merge_issue_spec(once, ISSUE) == once

    def test_children_section(self):
        child = {"id": "T0101", "name": "Login form"}
        gone = {"id": "T0102", "name": "Lost"}
        merged = merge_issue_spec(build_issue_spec(ISSUE), ISSUE, children=[(child, "T01-login_form/spec.md"), (gone, None)])
        body = SpecDocument.parse(merged).get("Children")
        assert body == "- [T0101 Login form](T01-login_form/spec.md)\n- T0102 Lost (not found)"

    def test_empty_children_drops_section(self):
        with_children = merge_issue_spec(build_issue_spec(ISSUE), ISSUE, children=[({"id": "T0101", "name": "x"}, "a/spec.md")])
        without = merge_issue_spec(with_children, ISSUE, children=[])
        assert SpecDocument.parse(without).index("Children") is None

    def test_render_children_empty(self):
        assert render_children([]) == ""


class TestComments:
    def test_append_and_read(self):
        text = append_comment(build_issue_spec(ISSUE, description="Desc"), "kim", "2026-01-06", "First!")
        text = append_comment(text, "lee", "2026-01-07", "Second\nline two")
        content = read_issue_content(text)
        assert content["description"] == "Desc"
        assert content["comments"] == [
            {"author": "kim", "date": "2026-01-06", "content": "First!"},
            {"author": "lee", "date": "2026-01-07", "content": "Second\nline two"},
        ]

    def test_comments_survive_merge(self):
        text = append_comment(build_issue_spec(ISSUE), "kim", "2026-01-06", "Keep me")
        merged = merge_issue_spec(text, _issue(status="blocked"))
        assert read_issue_content(merged)["comments"][0]["content"] == "Keep me"

    def test_default_description_reads_empty(self):
        assert read_issue_content(build_issue_spec(ISSUE))["description"] == ""


class TestSprintSpec:
    SPRINT = {
        "id": "S01",
        "name": "Sprint 01",
        "description": "",
        "status": "planned",
        "start_date": "2026-01-05",
        "end_date": None,
        "velocity": 0,
        "issues": ["T0101", "T0102"],
    }

    def test_issue_checklist(self):
        text = merge_sprint_spec("", self.SPRINT, [("T0101", "T0101-login_form"), ("T0102", None)])
        body = SpecDocument.parse(text).get("Issues")
        assert body == "- [ ] [T0101-login_form](T0101-login_form/spec.md)\n- [ ] T0102 (not found)"

    def test_custom_sections_kept(self):
        first = merge_sprint_spec("", self.SPRINT, [])
        edited = first + "\n## Retro\n\nwent well\n"
        again = merge_sprint_spec(edited, {**self.SPRINT, "status": "active"}, [])
        doc = SpecDocument.parse(again)
        assert doc.get("Retro") == "went well"
        assert "- **Status**: active" in doc.get("Sprint Details")

    def test_description_edits_kept(self):
        first = merge_sprint_spec("", {**self.SPRINT, "description": "Ship login"}, [])
        assert SpecDocument.parse(first).get("Description") == "Ship login"
        edited = first.replace("Ship login", "Ship login and signup")
        again = merge_sprint_spec(edited, {**self.SPRINT, "description": "Ship login"}, [("T0101", "T0101-login_form")])
        doc = SpecDocument.parse(again)
        assert doc.get("Description") == "Ship login and signup"
        assert "T0101-login_form" in doc.get("Issues")
