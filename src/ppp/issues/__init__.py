"""Issues — features, stories, tasks and bugs.

Metadata lives in .ppp/database.yml; each issue is mirrored as a folder
with a spec.md nested under its parent's folder.
"""

from .comments import add_comment
from .create_issue import create_issue
from .delete_issue import delete_issue
from .get_issue import get_issue
from .list_issues import list_issues, list_issues_hierarchical
from .move_issue import move_issue
from .update_issue import update_issue

__all__: list[str] = [
    "add_comment",
    "create_issue",
    "delete_issue",
    "get_issue",
    "list_issues",
    "list_issues_hierarchical",
    "move_issue",
    "update_issue",
]
