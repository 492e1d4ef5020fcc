"""Click CLI entrypoint — `ppp <group> <command>`.

Every call is stateless: it opens the project's workspace, runs one
operation and prints the result. JSON output by default, --human for text.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable

import click

from ppp.defaults import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL
from ppp.errors import PppError
from ppp.models import SPRINT_STATUSES, VALID_PRIORITIES, VALID_STATUSES, VALID_TYPES, IssueFilter
from ppp.output import output
from ppp.workspace import Workspace, open_workspace


class _ClickHandler(logging.Handler):
    """Route log records to stderr through click, looked up at emit time."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("ppp")
    for handler in list(logger.handlers):
        if isinstance(handler, _ClickHandler):
            logger.removeHandler(handler)
    handler = _ClickHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    level = "DEBUG" if verbose else (os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
    logger.setLevel(level)


def _run(ctx: click.Context, op: Callable[[Workspace], Any], key: str | None = None) -> None:
    """Open the workspace, run ``op`` and print its result.

    List results are wrapped as ``{key: [...], "count": n}``.
    """
    try:
        ws = open_workspace(ctx.obj["project_dir"])
        if not ctx.obj["verbose"] and not os.getenv(ENV_LOG_LEVEL):
            logging.getLogger("ppp").setLevel(ws.config.log_level)
        result = op(ws)
    except PppError as exc:
        result = {"error": str(exc), "code": exc.code}
    if isinstance(result, list):
        result = {key or "items": result, "count": len(result)}
    elif result is None:
        result = {key or "result": None}
    output(result, ctx.obj["human"])


@click.group()
@click.version_option(package_name="ppp-cli")
@click.option("-C", "--project-dir", type=click.Path(file_okay=False), default=None,
              help="Project root (default: $PPP_PROJECT_ROOT or cwd)")
@click.option("--human", is_flag=True, help="Human-readable output instead of JSON")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def cli(ctx: click.Context, project_dir: str | None, human: bool, verbose: bool) -> None:
    """ppp — hierarchical backlog and sprint tracking in .ppp/."""
    ctx.ensure_object(dict)
    ctx.obj["project_dir"] = project_dir
    ctx.obj["human"] = human
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# =========================================================================
# Project
# =========================================================================

@cli.command()
@click.option("--name", default=None, help="Project name (default: directory name)")
@click.pass_context
def init(ctx: click.Context, name: str | None) -> None:
    """Create .ppp/ with an empty database and Release.md."""
    from ppp.workspace import init_project
    try:
        result = init_project(ctx.obj["project_dir"], name)
    except PppError as exc:
        result = {"error": str(exc), "code": exc.code}
    output(result, ctx.obj["human"])


@cli.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Rebuild folders, spec files, sprint links and Release.md from the database."""
    from ppp.sync import sync_project
    _run(ctx, sync_project)


@cli.command()
@click.pass_context
def backup(ctx: click.Context) -> None:
    """Write a timestamped copy of the database."""
    _run(ctx, lambda ws: {"backup": str(ws.store.backup())})


@cli.command()
@click.argument("name")
@click.option("--local", is_flag=True, help="Skip the external generator")
@click.pass_context
def keywords(ctx: click.Context, name: str, local: bool) -> None:
    """Preview the folder keywords generated for an issue name."""
    from ppp.keywords import generate_keywords

    def _op(ws: Workspace) -> dict[str, Any]:
        generator = None if local else ws.keyword_generator
        return {"name": name, "keywords": generate_keywords(name, generator)}

    _run(ctx, _op)


# =========================================================================
# Issues
# =========================================================================

@cli.group()
def issue() -> None:
    """Create, update and browse issues."""


@issue.command("create")
@click.argument("issue_type", type=click.Choice(sorted(VALID_TYPES)))
@click.argument("name")
@click.option("--parent", "parent_id", default=None, help="Parent issue id (required except for features)")
@click.option("--description", default="")
@click.option("--priority", type=click.Choice(sorted(VALID_PRIORITIES)), default="medium")
@click.option("--assignee", default=None)
@click.option("--reporter", default=None)
@click.option("--labels", default=None, help="Comma-separated labels")
@click.pass_context
def issue_create(
    ctx: click.Context,
    issue_type: str,
    name: str,
    parent_id: str | None,
    description: str,
    priority: str,
    assignee: str | None,
    reporter: str | None,
    labels: str | None,
) -> None:
    """Create an issue."""
    from ppp.issues import create_issue
    _run(ctx, lambda ws: create_issue(
        ws, issue_type, name, parent_id=parent_id, description=description,
        priority=priority, assignee=assignee, reporter=reporter, labels=labels,
    ))


@issue.command("update")
@click.argument("issue_id")
@click.option("--name", default=None)
@click.option("--description", default=None)
@click.option("--status", type=click.Choice(sorted(VALID_STATUSES)), default=None)
@click.option("--priority", type=click.Choice(sorted(VALID_PRIORITIES)), default=None)
@click.option("--assignee", default=None, help="Empty string clears")
@click.option("--reporter", default=None)
@click.option("--labels", default=None, help="Comma-separated; replaces existing labels")
@click.pass_context
def issue_update(
    ctx: click.Context,
    issue_id: str,
    name: str | None,
    description: str | None,
    status: str | None,
    priority: str | None,
    assignee: str | None,
    reporter: str | None,
    labels: str | None,
) -> None:
    """Update fields on an issue. A new name renames its folder."""
    from ppp.issues import update_issue
    _run(ctx, lambda ws: update_issue(
        ws, issue_id, name=name, description=description, status=status,
        priority=priority, assignee=assignee, reporter=reporter, labels=labels,
    ))


@issue.command("delete")
@click.argument("issue_id")
@click.pass_context
def issue_delete(ctx: click.Context, issue_id: str) -> None:
    """Delete a childless issue; its folder moves to _archived/."""
    from ppp.issues import delete_issue
    _run(ctx, lambda ws: delete_issue(ws, issue_id))


@issue.command("show")
@click.argument("issue_id")
@click.pass_context
def issue_show(ctx: click.Context, issue_id: str) -> None:
    """Show one issue with its description and comments."""
    from ppp.issues import get_issue
    _run(ctx, lambda ws: get_issue(ws, issue_id))


@issue.command("list")
@click.argument("root_id", required=False)
@click.option("--parent", "parent_id", default=None, help="Only direct children of this issue")
@click.option("--type", "issue_type", type=click.Choice(sorted(VALID_TYPES)), default=None)
@click.option("--status", type=click.Choice(sorted(VALID_STATUSES)), default=None)
@click.option("--assignee", default=None)
@click.option("--labels", default=None, help="Comma-separated; any match")
@click.option("--sprint", "sprint_id", default=None)
@click.option("--flat", is_flag=True, help="Plain list instead of a tree")
@click.pass_context
def issue_list(
    ctx: click.Context,
    root_id: str | None,
    parent_id: str | None,
    issue_type: str | None,
    status: str | None,
    assignee: str | None,
    labels: str | None,
    sprint_id: str | None,
    flat: bool,
) -> None:
    """List issues as a tree (optionally under ROOT_ID) or flat."""
    from ppp.ids import normalize_id, normalize_sprint_id
    from ppp.issues import list_issues, list_issues_hierarchical
    from ppp.models import normalize_labels

    def _op(ws: Workspace) -> list[dict[str, Any]]:
        flt = IssueFilter(
            parent_id=normalize_id(parent_id) if parent_id else None,
            type=issue_type,
            status=status,
            assignee=assignee,
            labels=tuple(normalize_labels(labels)),
            sprint_id=normalize_sprint_id(sprint_id) if sprint_id else None,
        )
        if flat:
            return list_issues(ws, flt)
        return list_issues_hierarchical(ws, root_id, flt)

    _run(ctx, _op, key="issues")


@issue.command("move")
@click.argument("issue_id")
@click.argument("new_parent_id")
@click.pass_context
def issue_move(ctx: click.Context, issue_id: str, new_parent_id: str) -> None:
    """Move a task, story or bug under a different parent."""
    from ppp.issues import move_issue
    _run(ctx, lambda ws: move_issue(ws, issue_id, new_parent_id))


@issue.command("comment")
@click.argument("issue_id")
@click.argument("text")
@click.option("--author", default=None)
@click.pass_context
def issue_comment(ctx: click.Context, issue_id: str, text: str, author: str | None) -> None:
    """Append a comment to an issue's spec.md."""
    from ppp.issues import add_comment
    _run(ctx, lambda ws: add_comment(ws, issue_id, text, author=author))


# =========================================================================
# Sprints
# =========================================================================

@cli.group()
def sprint() -> None:
    """Plan, run and close sprints. Ids accept S01, 01 or 1."""


@sprint.command("create")
@click.option("--name", default=None, help="Default: Sprint NN")
@click.option("--description", default="")
@click.option("--start-date", default=None, help="YYYY-MM-DD (default: today)")
@click.pass_context
def sprint_create(ctx: click.Context, name: str | None, description: str, start_date: str | None) -> None:
    """Create a planned sprint."""
    from ppp.sprints import create_sprint
    _run(ctx, lambda ws: create_sprint(ws, name=name, description=description, start_date=start_date))


@sprint.command("list")
@click.option("--status", type=click.Choice(SPRINT_STATUSES), default=None)
@click.pass_context
def sprint_list(ctx: click.Context, status: str | None) -> None:
    """List sprints."""
    from ppp.sprints import list_sprints
    _run(ctx, lambda ws: list_sprints(ws, status), key="sprints")


@sprint.command("show")
@click.argument("sprint_id")
@click.pass_context
def sprint_show(ctx: click.Context, sprint_id: str) -> None:
    """Show a sprint and its issues."""
    from ppp.sprints import get_sprint
    _run(ctx, lambda ws: get_sprint(ws, sprint_id))


@sprint.command("active")
@click.pass_context
def sprint_active(ctx: click.Context) -> None:
    """Show the active sprint, if any."""
    from ppp.sprints import get_active_sprint
    _run(ctx, lambda ws: get_active_sprint(ws), key="active_sprint")


@sprint.command("activate")
@click.argument("sprint_id")
@click.pass_context
def sprint_activate(ctx: click.Context, sprint_id: str) -> None:
    """Activate a planned sprint, completing the current one."""
    from ppp.sprints import activate_sprint
    _run(ctx, lambda ws: activate_sprint(ws, sprint_id))


@sprint.command("complete")
@click.argument("sprint_id")
@click.pass_context
def sprint_complete(ctx: click.Context, sprint_id: str) -> None:
    """Complete the active sprint."""
    from ppp.sprints import complete_sprint
    _run(ctx, lambda ws: complete_sprint(ws, sprint_id))


@sprint.command("archive")
@click.argument("sprint_id")
@click.pass_context
def sprint_archive(ctx: click.Context, sprint_id: str) -> None:
    """Archive a completed sprint."""
    from ppp.sprints import archive_sprint
    _run(ctx, lambda ws: archive_sprint(ws, sprint_id))


@sprint.command("delete")
@click.argument("sprint_id")
@click.pass_context
def sprint_delete(ctx: click.Context, sprint_id: str) -> None:
    """Delete a sprint; its folder moves to _archived/."""
    from ppp.sprints import delete_sprint
    _run(ctx, lambda ws: delete_sprint(ws, sprint_id))


@sprint.command("add")
@click.argument("sprint_id")
@click.argument("issue_ids", nargs=-1, required=True)
@click.pass_context
def sprint_add(ctx: click.Context, sprint_id: str, issue_ids: tuple[str, ...]) -> None:
    """Add issues to a sprint."""
    from ppp.sprints import add_issue_to_sprint
    _run(ctx, lambda ws: [add_issue_to_sprint(ws, i, sprint_id) for i in issue_ids], key="assigned")


@sprint.command("remove")
@click.argument("sprint_id")
@click.argument("issue_ids", nargs=-1, required=True)
@click.pass_context
def sprint_remove(ctx: click.Context, sprint_id: str, issue_ids: tuple[str, ...]) -> None:
    """Take issues out of a sprint."""
    from ppp.sprints import remove_issue_from_sprint
    _run(ctx, lambda ws: [remove_issue_from_sprint(ws, i, sprint_id) for i in issue_ids], key="removed")
