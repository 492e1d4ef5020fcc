"""Fetch a single issue with its spec.md content."""

from __future__ import annotations

from typing import Any

from ppp.content import read_issue_content, spec_path
from ppp.fs import read_text_file
from ppp.issues._helpers import canonical_id, with_folder
from ppp.workspace import Workspace


def get_issue(ws: Workspace, issue_id: str) -> dict[str, Any]:
    """Return metadata plus description, comments and resolved folder."""
    issue = ws.store.require_issue(canonical_id(issue_id))
    folder = ws.folders.resolve(issue["id"])
    result = with_folder(issue, folder)
    content = read_issue_content(read_text_file(spec_path(folder))) if folder is not None else {}
    result["description"] = content.get("description", "")
    result["comments"] = content.get("comments", [])
    return result
