"""CLI output formatting — JSON by default, indented text with --human."""

from __future__ import annotations

import json
import sys
from typing import Any

import click


def output(data: dict[str, Any], human: bool = False) -> None:
    """Print result as JSON (default) or human-readable text. Errors exit 1."""
    if "error" in data:
        click.echo(json.dumps(data, indent=2, default=str), err=True)
        sys.exit(1)
    if not human:
        click.echo(json.dumps(data, indent=2, default=str))
        return
    if "issues" in data and isinstance(data["issues"], list):
        click.echo(format_issue_lines(data["issues"]))
    elif "sprints" in data and isinstance(data["sprints"], list):
        click.echo(format_sprint_lines(data["sprints"]))
    else:
        for k, v in data.items():
            if isinstance(v, (list, dict)):
                click.echo(f"{k}: {json.dumps(v, indent=2, default=str)}")
            else:
                click.echo(f"{k}: {v}")


def format_issue_lines(issues: list[dict[str, Any]]) -> str:
    """One line per issue, indented by ``depth`` when present."""
    if not issues:
        return "No issues found."
    lines = []
    for issue in issues:
        indent = "  " * int(issue.get("depth", 0))
        sprint = f" ({issue['sprint_id']})" if issue.get("sprint_id") else ""
        lines.append(f"{indent}{issue['id']:<10} [{issue['status']}] {issue['name']}{sprint}")
    return "\n".join(lines)


def format_sprint_lines(sprints: list[dict[str, Any]]) -> str:
    if not sprints:
        return "No sprints found."
    return "\n".join(
        f"{s['id']:<5} {s['status']:<10} {s.get('start_date') or 'TBD'} -> {s.get('end_date') or 'TBD'}"
        f"  {len(s.get('issues') or [])} issues  {s['name']}"
        for s in sprints
    )
