"""Flat and hierarchical issue listings."""

from __future__ import annotations

from typing import Any

from ppp.issues._helpers import canonical_id
from ppp.models import IssueFilter
from ppp.workspace import Workspace


def list_issues(ws: Workspace, flt: IssueFilter | None = None) -> list[dict[str, Any]]:
    """Issues matching the filter, ordered by id."""
    return ws.store.list_issues(flt)


def list_issues_hierarchical(
    ws: Workspace,
    root_id: str | None = None,
    flt: IssueFilter | None = None,
) -> list[dict[str, Any]]:
    """Depth-first listing with a ``depth`` field on each entry.

    The filter decides which issues are emitted, never which are visited,
    so a matching grandchild under a non-matching parent still shows up.
    An explicit root is always emitted. Without a root, every issue whose
    parent is absent from metadata starts its own tree.
    """
    issues = ws.store.issues()
    by_parent: dict[str | None, list[dict[str, Any]]] = {}
    for issue in issues.values():
        parent = issue.get("parent_id")
        if parent not in issues:
            parent = None
        by_parent.setdefault(parent, []).append(issue)
    for siblings in by_parent.values():
        siblings.sort(key=lambda i: i["id"])

    out: list[dict[str, Any]] = []
    seen: set[str] = set()

    def visit(issue: dict[str, Any], depth: int, forced: bool) -> None:
        if issue["id"] in seen:
            return
        seen.add(issue["id"])
        if forced or flt is None or flt.matches(issue):
            out.append({**issue, "depth": depth})
        for child in by_parent.get(issue["id"], []):
            visit(child, depth + 1, False)

    if root_id is not None:
        root = ws.store.require_issue(canonical_id(root_id))
        visit(issues[root["id"]], 0, True)
    else:
        for top in by_parent.get(None, []):
            visit(top, 0, False)
    return out
