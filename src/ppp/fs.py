"""Filesystem helpers — atomic writes, timestamps, archive naming."""

from __future__ import annotations

import datetime
import os
import tempfile
from pathlib import Path

from ppp.errors import FilesystemOperationFailed

# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def now_iso() -> str:
    """Current timestamp in ISO 8601 format, second precision."""
    return datetime.datetime.now().isoformat(timespec="seconds")


def today() -> str:
    """Current date as YYYY-MM-DD."""
    return datetime.date.today().isoformat()


def archive_stamp() -> str:
    """Filesystem-safe timestamp: 2026-02-19T14-30-22-123456."""
    return datetime.datetime.now().isoformat().replace(":", "-").replace(".", "-")


# ---------------------------------------------------------------------------
# File IO
# ---------------------------------------------------------------------------


def atomic_write_file(path: str | Path, content: str) -> Path:
    """Write content to path atomically (write-to-temp, then rename).

    Returns the final path. OS failures surface as FilesystemOperationFailed.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    except OSError as exc:
        raise FilesystemOperationFailed(f"Cannot write {path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException as exc:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        if isinstance(exc, OSError):
            raise FilesystemOperationFailed(f"Cannot write {path}: {exc}") from exc
        raise
    return path


def read_text_file(path: str | Path | None) -> str:
    """Read a text file, returning empty string if missing or None."""
    if not path or not os.path.exists(path):
        return ""
    with open(path, encoding="utf-8") as f:
        return f.read()


def archive_name(name: str) -> str:
    """Name a folder gets when moved into _archived/."""
    return f"{name}-archived-{archive_stamp()}"
