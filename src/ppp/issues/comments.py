"""Append comments to an issue's spec.md."""

from __future__ import annotations

from typing import Any

from ppp.content import append_comment, spec_path, write_if_changed
from ppp.errors import ValidationError
from ppp.fs import read_text_file, today
from ppp.issues._helpers import canonical_id
from ppp.sync import refresh_issue
from ppp.workspace import Workspace


def add_comment(ws: Workspace, issue_id: str, content: str, author: str | None = None) -> dict[str, Any]:
    if not content or not content.strip():
        raise ValidationError("Comment cannot be empty.")
    issue = ws.store.require_issue(canonical_id(issue_id))
    folder = refresh_issue(ws, issue["id"])
    path = spec_path(folder)
    author = author or "anonymous"
    date = today()
    write_if_changed(path, append_comment(read_text_file(path), author, date, content))
    return {"id": issue["id"], "author": author, "date": date, "content": content.strip()}
