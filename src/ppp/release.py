"""Release.md — the release overview and its sprint rollup table.

The file is a regular section document: ``Release Goal``, ``Current
Sprint`` and ``Sprint List``. Only the table rows and the current sprint
line are rewritten; any text the user adds around them stays put.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable

from ppp.content import SpecDocument, write_if_changed
from ppp.errors import InvalidIdFormat
from ppp.fs import read_text_file
from ppp.ids import normalize_sprint_id

log = logging.getLogger(__name__)

TITLE = "Release Overview"
GOAL = "Release Goal"
CURRENT = "Current Sprint"
SPRINT_LIST = "Sprint List"

NO_ACTIVE_SPRINT = "No active sprint."
DEFAULT_GOAL = "Define the goal of this release."

COLUMNS = ["Sprint", "Name", "Status", "Start Date", "End Date", "Issues", "Velocity"]
# Header written before sprint ids had their own column
LEGACY_COLUMNS = ["Sprint", "Status", "Start Date", "End Date", "Issues", "Velocity"]

_SEPARATOR_RE = re.compile(r"^\|[\s\-:|]+\|$")


def _cells(line: str) -> list[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def _format_row(cells: Iterable[Any]) -> str:
    return "| " + " | ".join(str(c) for c in cells) + " |"


def sprint_row(sprint: dict[str, Any]) -> list[str]:
    return [
        sprint["id"],
        sprint.get("name") or sprint["id"],
        sprint["status"],
        sprint.get("start_date") or "TBD",
        sprint.get("end_date") or "TBD",
        str(len(sprint.get("issues") or [])),
        str(sprint.get("velocity") or 0),
    ]


def _migrate_legacy_row(cells: list[str]) -> list[str]:
    name = cells[0]
    digits = re.findall(r"\d+", name)
    try:
        sprint_id = normalize_sprint_id(digits[-1]) if digits else name
    except InvalidIdFormat:
        sprint_id = name
    return [sprint_id, name] + cells[1:]


class SprintTable:
    """Rows of the Sprint List table keyed by sprint id, plus surrounding text."""

    def __init__(self, body: str) -> None:
        lines = body.splitlines()
        start = next((i for i, line in enumerate(lines) if line.strip().startswith("| Sprint")), None)
        self.rows: dict[str, list[str]] = {}
        if start is None:
            self.before, self.after = lines, []
            return

        end = start + 1
        while end < len(lines) and lines[end].strip().startswith("|"):
            end += 1
        legacy = _cells(lines[start]) == LEGACY_COLUMNS
        if legacy:
            log.info("migrating legacy Release.md sprint table")
        for line in lines[start + 1:end]:
            if _SEPARATOR_RE.match(line.strip()):
                continue
            cells = _cells(line)
            if legacy:
                cells = _migrate_legacy_row(cells)
            self.rows[cells[0]] = cells
        self.before, self.after = lines[:start], lines[end:]

    def upsert(self, sprint: dict[str, Any]) -> None:
        self.rows[sprint["id"]] = sprint_row(sprint)

    def remove(self, sprint_id: str) -> bool:
        return self.rows.pop(sprint_id, None) is not None

    def render(self) -> str:
        table = [_format_row(COLUMNS), _format_row("-" * len(c) for c in COLUMNS)]
        table.extend(_format_row(self.rows[key]) for key in sorted(self.rows))
        before = "\n".join(self.before).strip("\n")
        after = "\n".join(self.after).strip("\n")
        return "\n\n".join(part for part in (before, "\n".join(table), after) if part)


def current_sprint_text(sprint: dict[str, Any] | None) -> str:
    if sprint is None:
        return NO_ACTIVE_SPRINT
    started = sprint.get("start_date") or "TBD"
    return f"**{sprint['id']}**: {sprint.get('name') or sprint['id']} (started {started})"


def build_release(release: dict[str, Any], sprints: Iterable[dict[str, Any]], active: dict[str, Any] | None) -> str:
    table = SprintTable("")
    for sprint in sprints:
        table.upsert(sprint)
    doc = SpecDocument(title=TITLE)
    doc.set(GOAL, release.get("description") or DEFAULT_GOAL)
    doc.set(CURRENT, current_sprint_text(active))
    doc.set(SPRINT_LIST, table.render())
    return doc.render()


class ReleaseFile:
    """Read-modify-write access to a project's Release.md."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> SpecDocument:
        doc = SpecDocument.parse(read_text_file(self.path))
        if not doc.title:
            doc.title = TITLE
        if doc.index(GOAL) is None:
            doc.set(GOAL, DEFAULT_GOAL, first=True)
        if doc.index(CURRENT) is None:
            doc.set(CURRENT, NO_ACTIVE_SPRINT, after=(GOAL,))
        return doc

    def _patch_table(self, action: str, sprint: dict[str, Any]) -> None:
        doc = self._load()
        table = SprintTable(doc.get(SPRINT_LIST) or "")
        if action == "remove":
            table.remove(sprint["id"])
        else:
            table.upsert(sprint)
        doc.set(SPRINT_LIST, table.render(), after=(CURRENT,))
        write_if_changed(self.path, doc.render())

    def ensure(self, release: dict[str, Any], sprints: Iterable[dict[str, Any]], active: dict[str, Any] | None) -> None:
        """Create the file if missing; otherwise migrate and refresh every row."""
        if not self.path.exists():
            write_if_changed(self.path, build_release(release, sprints, active))
            return
        doc = self._load()
        table = SprintTable(doc.get(SPRINT_LIST) or "")
        for sprint in sprints:
            table.upsert(sprint)
        doc.set(SPRINT_LIST, table.render(), after=(CURRENT,))
        doc.set(CURRENT, current_sprint_text(active))
        write_if_changed(self.path, doc.render())

    def upsert_sprint(self, sprint: dict[str, Any]) -> None:
        self._patch_table("upsert", sprint)

    def remove_sprint(self, sprint_id: str) -> None:
        self._patch_table("remove", {"id": sprint_id})

    def set_current(self, sprint: dict[str, Any] | None) -> None:
        doc = self._load()
        doc.set(CURRENT, current_sprint_text(sprint), after=(GOAL,))
        write_if_changed(self.path, doc.render())

    def rows(self) -> dict[str, list[str]]:
        return SprintTable(SpecDocument.parse(read_text_file(self.path)).get(SPRINT_LIST) or "").rows
