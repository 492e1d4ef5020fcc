"""Sprints — time-boxed groups of issues.

Each sprint has a folder under .ppp/ holding symlinks to its issues'
folders and a spec.md checklist, plus a row in Release.md.
"""

from .create_sprint import create_sprint
from .delete_sprint import delete_sprint
from .lifecycle import activate_sprint, archive_sprint, complete_sprint
from .list_sprints import get_active_sprint, get_sprint, list_sprints
from .membership import add_issue_to_sprint, remove_issue_from_sprint

__all__: list[str] = [
    "activate_sprint",
    "add_issue_to_sprint",
    "archive_sprint",
    "complete_sprint",
    "create_sprint",
    "delete_sprint",
    "get_active_sprint",
    "get_sprint",
    "list_sprints",
    "remove_issue_from_sprint",
]
