"""Content Synchronizer — spec.md files for issues and sprints.

A spec file is parsed into a title, a free-form preamble and an ordered
list of ``## `` sections. Only the machine-owned sections (the Details
block, and Children / Issues when explicitly refreshed) are regenerated;
every other section is written back exactly as it was read.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from ppp.defaults import SPEC_FILE_NAME
from ppp.fs import atomic_write_file, read_text_file

log = logging.getLogger(__name__)

ISSUE_DETAILS = "Issue Details"
SPRINT_DETAILS = "Sprint Details"
DESCRIPTION = "Description"
COMMENTS = "Comments"
CHILDREN = "Children"
SPRINT_ISSUES = "Issues"

NO_DESCRIPTION = "No description provided."

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_COMMENT_RE = re.compile(r"^### (.+?) - (\S+)\s*$")


def _trim_blank_lines(lines: list[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


# ---------------------------------------------------------------------------
# Section model
# ---------------------------------------------------------------------------


@dataclass
class Section:
    heading: str
    body: str = ""


@dataclass
class SpecDocument:
    title: str = ""
    preamble: str = ""
    sections: list[Section] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "SpecDocument":
        """Split markdown into title, preamble and ``## `` sections.

        Headings inside fenced code blocks are treated as body text.
        """
        doc = cls()
        preamble: list[str] = []
        body: list[str] = []
        current: Section | None = None
        in_fence = False

        for line in text.splitlines():
            if _FENCE_RE.match(line):
                in_fence = not in_fence
            elif not in_fence and line.startswith("## "):
                if current is not None:
                    current.body = _trim_blank_lines(body)
                current = Section(line[3:].strip())
                doc.sections.append(current)
                body = []
                continue
            elif not in_fence and current is None and not doc.title and line.startswith("# "):
                doc.title = line[2:].strip()
                continue
            (body if current is not None else preamble).append(line)

        if current is not None:
            current.body = _trim_blank_lines(body)
        doc.preamble = _trim_blank_lines(preamble)
        return doc

    def render(self) -> str:
        parts: list[str] = []
        if self.title:
            parts.append(f"# {self.title}")
        if self.preamble:
            parts.append(self.preamble)
        for section in self.sections:
            parts.append(f"## {section.heading}" + (f"\n\n{section.body}" if section.body else ""))
        return "\n\n".join(parts) + "\n"

    def index(self, heading: str) -> int | None:
        for i, section in enumerate(self.sections):
            if section.heading == heading:
                return i
        return None

    def get(self, heading: str) -> str | None:
        i = self.index(heading)
        return self.sections[i].body if i is not None else None

    def set(
        self,
        heading: str,
        body: str,
        after: Sequence[str] = (),
        before: Sequence[str] = (),
        first: bool = False,
    ) -> None:
        """Replace a section's body in place, or insert it.

        New sections go after the first existing heading in ``after``,
        else before the first in ``before``, else at the top when ``first``,
        else at the end.
        """
        i = self.index(heading)
        if i is not None:
            self.sections[i].body = body
            return
        section = Section(heading, body)
        for anchor in after:
            j = self.index(anchor)
            if j is not None:
                self.sections.insert(j + 1, section)
                return
        for anchor in before:
            j = self.index(anchor)
            if j is not None:
                self.sections.insert(j, section)
                return
        if first:
            self.sections.insert(0, section)
        else:
            self.sections.append(section)

    def remove(self, heading: str) -> None:
        i = self.index(heading)
        if i is not None:
            del self.sections[i]


# ---------------------------------------------------------------------------
# Issue specs
# ---------------------------------------------------------------------------

ChildLink = tuple[dict[str, Any], str | None]


def render_issue_details(issue: dict[str, Any]) -> str:
    labels = issue.get("labels") or []
    rows = [
        ("ID", issue["id"]),
        ("Type", issue["type"]),
        ("Status", issue["status"]),
        ("Priority", issue["priority"]),
        ("Assignee", issue.get("assignee") or "Unassigned"),
        ("Reporter", issue.get("reporter") or "Unknown"),
        ("Labels", ", ".join(labels) if labels else "None"),
        ("Parent", issue.get("parent_id") or "None"),
        ("Sprint", issue.get("sprint_id") or "None"),
        ("Created", issue.get("created_at", "")),
        ("Updated", issue.get("updated_at", "")),
    ]
    return "\n".join(f"- **{label}**: {value}" for label, value in rows)


def render_children(children: Sequence[ChildLink]) -> str:
    """One line per child; unresolved folders are marked ``(not found)``."""
    lines = []
    for child, link in children:
        label = f"{child['id']} {child['name']}"
        lines.append(f"- [{label}]({link})" if link else f"- {label} (not found)")
    return "\n".join(lines)


def merge_issue_spec(
    existing: str,
    issue: dict[str, Any],
    description: str | None = None,
    children: Sequence[ChildLink] | None = None,
) -> str:
    """Regenerate the Details block of an issue spec, keeping everything else.

    ``description`` rewrites the Description section; ``children`` rewrites
    the Children section (an empty list drops it). ``None`` leaves either alone.
    """
    doc = SpecDocument.parse(existing)
    doc.title = issue["name"]
    doc.set(ISSUE_DETAILS, render_issue_details(issue), first=True)
    if description is not None or doc.index(DESCRIPTION) is None:
        doc.set(DESCRIPTION, description or NO_DESCRIPTION, after=(ISSUE_DETAILS,))
    if doc.index(COMMENTS) is None:
        doc.set(COMMENTS, "", before=(CHILDREN,))
    if children is not None:
        if children:
            doc.set(CHILDREN, render_children(children))
        else:
            doc.remove(CHILDREN)
    return doc.render()


def build_issue_spec(
    issue: dict[str, Any],
    description: str | None = None,
    children: Sequence[ChildLink] | None = None,
) -> str:
    return merge_issue_spec("", issue, description=description or NO_DESCRIPTION, children=children)


def parse_comments(body: str) -> list[dict[str, str]]:
    comments: list[dict[str, str]] = []
    current: dict[str, str] | None = None
    lines: list[str] = []
    for line in body.splitlines():
        m = _COMMENT_RE.match(line)
        if m:
            if current is not None:
                current["content"] = _trim_blank_lines(lines)
                comments.append(current)
            current = {"author": m.group(1), "date": m.group(2)}
            lines = []
        elif current is not None:
            lines.append(line)
    if current is not None:
        current["content"] = _trim_blank_lines(lines)
        comments.append(current)
    return comments


def read_issue_content(text: str) -> dict[str, Any]:
    """Description and comments as a reader of the spec file sees them."""
    doc = SpecDocument.parse(text)
    description = doc.get(DESCRIPTION) or ""
    if description == NO_DESCRIPTION:
        description = ""
    return {
        "description": description,
        "comments": parse_comments(doc.get(COMMENTS) or ""),
        "sections": [s.heading for s in doc.sections],
    }


def append_comment(existing: str, author: str, date: str, content: str) -> str:
    doc = SpecDocument.parse(existing)
    entry = f"### {author} - {date}\n\n{content.strip()}"
    body = doc.get(COMMENTS)
    doc.set(COMMENTS, f"{body}\n\n{entry}" if body else entry, before=(CHILDREN,))
    return doc.render()


# ---------------------------------------------------------------------------
# Sprint specs
# ---------------------------------------------------------------------------

SprintEntry = tuple[str, str | None]


def render_sprint_details(sprint: dict[str, Any]) -> str:
    rows = [
        ("ID", sprint["id"]),
        ("Status", sprint["status"]),
        ("Start Date", sprint.get("start_date") or "TBD"),
        ("End Date", sprint.get("end_date") or "TBD"),
        ("Issues", len(sprint.get("issues") or [])),
        ("Velocity", sprint.get("velocity") or 0),
        ("Created", sprint.get("created_at", "")),
        ("Updated", sprint.get("updated_at", "")),
    ]
    return "\n".join(f"- **{label}**: {value}" for label, value in rows)


def render_sprint_issues(entries: Sequence[SprintEntry]) -> str:
    """Checklist of member issues linking through the sprint's symlinks."""
    lines = []
    for issue_id, link_name in entries:
        if link_name:
            lines.append(f"- [ ] [{link_name}]({link_name}/{SPEC_FILE_NAME})")
        else:
            lines.append(f"- [ ] {issue_id} (not found)")
    return "\n".join(lines) or "No issues assigned."


def merge_sprint_spec(existing: str, sprint: dict[str, Any], entries: Sequence[SprintEntry]) -> str:
    doc = SpecDocument.parse(existing)
    doc.title = sprint.get("name") or sprint["id"]
    doc.set(SPRINT_DETAILS, render_sprint_details(sprint), first=True)
    if doc.index(DESCRIPTION) is None:
        doc.set(DESCRIPTION, sprint.get("description") or NO_DESCRIPTION, after=(SPRINT_DETAILS,))
    doc.set(SPRINT_ISSUES, render_sprint_issues(entries), after=(DESCRIPTION,))
    return doc.render()


# ---------------------------------------------------------------------------
# Disk IO
# ---------------------------------------------------------------------------


def spec_path(folder: Path) -> Path:
    return folder / SPEC_FILE_NAME


def write_if_changed(path: Path, content: str) -> bool:
    if read_text_file(path) == content:
        return False
    atomic_write_file(path, content)
    log.debug("wrote %s", path)
    return True


def sync_issue_spec(
    folder: Path,
    issue: dict[str, Any],
    description: str | None = None,
    children: Sequence[ChildLink] | None = None,
) -> Path:
    """Create or update ``<folder>/spec.md`` for an issue."""
    path = spec_path(folder)
    existing = read_text_file(path)
    if existing:
        content = merge_issue_spec(existing, issue, description=description, children=children)
    else:
        content = build_issue_spec(issue, description=description, children=children)
    write_if_changed(path, content)
    return path


def sync_sprint_spec(folder: Path, sprint: dict[str, Any], entries: Sequence[SprintEntry]) -> Path:
    path = spec_path(folder)
    write_if_changed(path, merge_sprint_spec(read_text_file(path), sprint, entries))
    return path
