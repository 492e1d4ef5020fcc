"""Folder Path Resolver — where each issue lives on disk.

Issue folders nest by hierarchy under .ppp/ and are named
``<segment>-<keywords>``, where the segment is the type prefix plus the
issue's own two-digit group (``F01-user_auth/F02-login_form/T01-validate``).
Resolution walks the metadata parent chain and matches folders by
segment prefix only, so keyword drift never breaks a lookup.

Sprint folders (.ppp/S01/) hold symlinks to member issue folders. Links
are identified by their resolved target, never by their name.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Iterable

from ppp.defaults import ARCHIVE_DIR_NAME
from ppp.errors import FilesystemOperationFailed, IssueNotFound, ParentFolderMissing, ParentNotFound
from ppp.fs import archive_name
from ppp.ids import ancestor_feature_id, level_of, level_segment
from ppp.keywords import EMPTY_SLUG, fallback_keywords
from ppp.store import MetadataStore

log = logging.getLogger(__name__)

Issues = dict[str, dict[str, Any]]


def own_segment(issue_id: str) -> str:
    """Prefix plus the last two-digit group: T010203 -> T03."""
    return level_segment(issue_id, level_of(issue_id))


def folder_name(issue: dict[str, Any]) -> str:
    keywords = issue.get("keywords") or fallback_keywords(issue.get("name") or "") or EMPTY_SLUG
    return f"{own_segment(issue['id'])}-{keywords}"


def match_segment(directory: Path, segment: str) -> Path | None:
    """First child dir (by name) whose name starts with ``<segment>-``, ignoring case."""
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return None
    prefix = f"{segment}-".upper()
    for name in names:
        if name.upper().startswith(prefix) and (directory / name).is_dir():
            return directory / name
    return None


class FolderResolver:
    """Maps issue ids to folders under a project's .ppp/ directory."""

    def __init__(self, ppp_dir: str | Path, store: MetadataStore) -> None:
        self.ppp_dir = Path(ppp_dir)
        self.store = store

    @property
    def archive_dir(self) -> Path:
        return self.ppp_dir / ARCHIVE_DIR_NAME

    def _issues(self, issues: Issues | None) -> Issues:
        return issues if issues is not None else self.store.issues()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def chain(self, issue_id: str, issues: Issues | None = None) -> list[str] | None:
        """Ancestor ids root-first, ending with ``issue_id``; None if broken."""
        issues = self._issues(issues)
        ids: list[str] = []
        cursor: str | None = issue_id
        while cursor is not None:
            issue = issues.get(cursor)
            if issue is None or cursor in ids:
                return None
            ids.append(cursor)
            cursor = issue.get("parent_id")
        ids.reverse()
        return ids

    def resolve(self, issue_id: str, issues: Issues | None = None) -> Path | None:
        """Find an issue's current folder, or None if any step is missing."""
        ids = self.chain(issue_id, issues)
        if ids is None:
            return None
        current = self.ppp_dir
        for chain_id in ids:
            found = match_segment(current, own_segment(chain_id))
            if found is None:
                return None
            current = found
        return current

    def generate(self, issue: dict[str, Any], issues: Issues | None = None) -> Path:
        """Desired folder path for an issue given its current keywords.

        Raises ParentFolderMissing when the parent's folder cannot be found.
        """
        issues = self._issues(issues)
        parent_id = issue.get("parent_id")
        if parent_id:
            parent_path = self.resolve(parent_id, issues)
            if parent_path is None:
                raise ParentFolderMissing(f"Folder for parent '{parent_id}' of '{issue['id']}' not found.")
            return parent_path / folder_name(issue)

        depth = level_of(issue["id"])
        path = self.ppp_dir
        # Parentless deep ids nest under id-derived ancestors
        for level in range(1, depth):
            segment = level_segment(issue["id"], level)
            existing = self.resolve(ancestor_feature_id(issue["id"], level), issues)
            path = path / (existing.name if existing is not None else f"{segment}-folder")
        return path / folder_name(issue)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, issue: dict[str, Any], issues: Issues | None = None) -> Path:
        """Make the folder match the issue's desired name; create it if absent.

        A rename never clobbers: when the desired path is taken the current
        folder is kept and a warning is logged.
        """
        issues = self._issues(issues)
        current = self.resolve(issue["id"], issues)
        try:
            desired = self.generate(issue, issues)
        except ParentFolderMissing:
            if current is not None:
                return current
            raise

        if current is None:
            try:
                desired.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise FilesystemOperationFailed(f"Cannot create {desired}: {exc}") from exc
            log.debug("created %s", desired)
            return desired
        if current == desired:
            return current
        # Case-only differences keep the user's spelling
        if current.parent == desired.parent and current.name.lower() == desired.name.lower():
            return current
        if desired.exists():
            log.warning("cannot rename %s to %s: target exists, keeping current folder", current, desired)
            return current
        try:
            current.rename(desired)
        except OSError as exc:
            raise FilesystemOperationFailed(f"Cannot rename {current} to {desired}: {exc}") from exc
        log.info("renamed %s -> %s", current.name, desired.name)
        return desired

    def ensure(self, issue_id: str, issues: Issues | None = None) -> Path:
        """Reconcile an issue's folder and every ancestor folder, root first."""
        issues = self._issues(issues)
        ids = self.chain(issue_id, issues)
        if ids is None:
            if issue_id not in issues:
                raise IssueNotFound(f"Issue '{issue_id}' not found.")
            raise ParentNotFound(f"Parent chain of '{issue_id}' is broken.")
        path = self.ppp_dir
        for chain_id in ids:
            path = self.reconcile(issues[chain_id], issues)
        return path

    def move(self, source: Path, destination: Path) -> Path:
        if destination.exists():
            raise FilesystemOperationFailed(f"Cannot move {source}: {destination} already exists")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(destination))
        except OSError as exc:
            raise FilesystemOperationFailed(f"Cannot move {source} to {destination}: {exc}") from exc
        return destination

    def archive(self, path: Path, name: str | None = None) -> Path:
        """Move a folder into _archived/ under a timestamped name."""
        target = self.archive_dir / archive_name(name or path.name)
        self.move(path, target)
        log.info("archived %s -> %s", path, target.name)
        return target

    # ------------------------------------------------------------------
    # Sprint folders and links
    # ------------------------------------------------------------------

    def sprint_dir(self, sprint_id: str) -> Path:
        return self.ppp_dir / sprint_id

    def find_link(self, sprint_id: str, target: Path) -> Path | None:
        """The link in a sprint folder whose resolved target is ``target``."""
        sprint_dir = self.sprint_dir(sprint_id)
        if not sprint_dir.is_dir():
            return None
        wanted = os.path.realpath(target)
        for entry in sorted(sprint_dir.iterdir()):
            if entry.is_symlink() and os.path.realpath(entry) == wanted:
                return entry
        return None

    def link_issue(self, sprint_id: str, issue_id: str, issues: Issues | None = None) -> Path | None:
        """Ensure the sprint folder holds a link to the issue's folder."""
        folder = self.resolve(issue_id, issues)
        if folder is None:
            log.warning("no folder for %s; sprint %s link skipped", issue_id, sprint_id)
            return None
        existing = self.find_link(sprint_id, folder)
        if existing is not None:
            return existing

        sprint_dir = self.sprint_dir(sprint_id)
        _, _, keywords = folder.name.partition("-")
        link = sprint_dir / f"{issue_id}-{keywords}"
        try:
            sprint_dir.mkdir(parents=True, exist_ok=True)
            if link.is_symlink():
                link.unlink()
            elif link.exists():
                raise FilesystemOperationFailed(f"Cannot link {issue_id}: {link} exists and is not a link")
            os.symlink(os.path.relpath(folder, sprint_dir), link, target_is_directory=True)
        except OSError as exc:
            raise FilesystemOperationFailed(f"Cannot link {issue_id} into {sprint_id}: {exc}") from exc
        return link

    def unlink_issue(self, sprint_id: str, issue_id: str, folder: Path | None = None) -> bool:
        """Remove an issue's link from a sprint folder.

        Matches by target when the folder is known; otherwise only dangling
        links carrying the issue id are removed.
        """
        folder = folder if folder is not None else self.resolve(issue_id)
        victims: list[Path] = []
        if folder is not None:
            found = self.find_link(sprint_id, folder)
            if found is not None:
                victims.append(found)
        sprint_dir = self.sprint_dir(sprint_id)
        if sprint_dir.is_dir():
            for entry in sorted(sprint_dir.iterdir()):
                if entry.is_symlink() and entry.name.startswith(f"{issue_id}-") and not entry.exists():
                    victims.append(entry)
        for victim in victims:
            try:
                victim.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise FilesystemOperationFailed(f"Cannot remove link {victim}: {exc}") from exc
        return bool(victims)

    def prune_dangling(self, sprint_id: str) -> list[str]:
        """Drop links whose target no longer exists. Returns removed names."""
        sprint_dir = self.sprint_dir(sprint_id)
        removed: list[str] = []
        if not sprint_dir.is_dir():
            return removed
        for entry in sorted(sprint_dir.iterdir()):
            if entry.is_symlink() and not entry.exists():
                try:
                    entry.unlink()
                except OSError as exc:
                    raise FilesystemOperationFailed(f"Cannot remove link {entry}: {exc}") from exc
                removed.append(entry.name)
        if removed:
            log.info("pruned dangling links in %s: %s", sprint_id, ", ".join(removed))
        return removed

    def link_names(self, sprint_id: str, issue_ids: Iterable[str], issues: Issues | None = None) -> dict[str, str | None]:
        """Link name for each issue in a sprint folder; None when missing."""
        issues = self._issues(issues)
        names: dict[str, str | None] = {}
        for issue_id in issue_ids:
            folder = self.resolve(issue_id, issues)
            link = self.find_link(sprint_id, folder) if folder is not None else None
            names[issue_id] = link.name if link is not None else None
        return names
