"""
Post backups and atomic writes.

Before a post is edited or deleted from the CLI, the file is copied to
``.hugopub/backups/posts/<stem>_<YYYYmmdd_HHMMSS>.md``. Retention keeps the
newest ``keep_count`` copies regardless of age and drops anything else older
than ``keep_days``.
"""

from __future__ import annotations

import contextlib
import os
import re
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
STAMP_FORMAT = "%Y%m%d_%H%M%S"
BACKUP_NAME_RE = re.compile(r"^(?P<post>.+)_(?P<stamp>\d{8}_\d{6})\.md$")


@dataclass(frozen=True)
class PostBackup:
    """One backup copy of a post file."""

    path: Path
    post_name: str
    created: datetime
    size: int

    @property
    def age_days(self) -> float:
        return (datetime.now() - self.created) / timedelta(days=1)

    @property
    def size_label(self) -> str:
        if self.size < 1024:
            return f"{self.size} B"
        if self.size < 1024**2:
            return f"{self.size / 1024:.1f} KB"
        return f"{self.size / 1024**2:.1f} MB"


def parse_backup_name(name: str) -> tuple[str, datetime] | None:
    """Split ``<stem>_<stamp>.md`` into the post stem and its timestamp."""
    match = BACKUP_NAME_RE.match(name)
    if match is None:
        return None
    try:
        created = datetime.strptime(match["stamp"], STAMP_FORMAT)
    except ValueError:
        return None
    return match["post"], created


def list_backups(backup_dir: Path, post_name: str | None = None) -> list[PostBackup]:
    """Backups in ``backup_dir``, newest first, optionally for one post stem."""
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []

    found = []
    for path in backup_dir.glob("*.md"):
        parsed = parse_backup_name(path.name)
        if parsed is None:
            continue
        name, created = parsed
        if post_name is not None and name != post_name:
            continue
        found.append(PostBackup(path, name, created, path.stat().st_size))

    found.sort(key=lambda b: b.created, reverse=True)
    return found


def backup_post(post_path: Path, backup_dir: Path, now: datetime | None = None) -> Path:
    """Copy a post file into ``backup_dir`` under a timestamped name.

    Raises:
        FileNotFoundError: If the post file does not exist.
    """
    post_path = Path(post_path)
    if not post_path.is_file():
        raise FileNotFoundError(f"No post file to back up: {post_path}")

    stamp = (now or datetime.now()).strftime(STAMP_FORMAT)
    target = Path(backup_dir) / f"{post_path.stem}_{stamp}{post_path.suffix}"
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(post_path, target)
    return target


def expired_backups(
    backups: Iterable[PostBackup],
    keep_count: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
    now: datetime | None = None,
) -> list[PostBackup]:
    """Select the backups the retention policy would remove.

    ``backups`` must be ordered newest first, as :func:`list_backups` returns
    them. The newest ``keep_count`` always survive; of the rest, only those
    older than ``keep_days`` expire (all of them when ``keep_days`` is None).
    """
    cutoff = None
    if keep_days is not None:
        cutoff = (now or datetime.now()) - timedelta(days=keep_days)
    return [
        backup
        for index, backup in enumerate(backups)
        if index >= keep_count and (cutoff is None or backup.created < cutoff)
    ]


def prune_backups(
    backup_dir: Path,
    keep_count: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> list[Path]:
    """Delete expired backups and return their paths."""
    removed = []
    for backup in expired_backups(list_backups(backup_dir), keep_count, keep_days):
        backup.path.unlink(missing_ok=True)
        removed.append(backup.path)
    return removed


def safe_write_text(file_path: Path, text: str) -> None:
    """Replace ``file_path`` with ``text`` in one atomic step.

    The text goes to a hidden temp file next to the target, is flushed to
    disk, and is then renamed over the target. Newlines are written as given.

    Raises:
        OSError: If the write or rename fails. The temp file is removed
            and the target is left untouched.
    """
    file_path = Path(file_path)
    fd, temp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", suffix=".tmp", dir=file_path.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        temp_path.replace(file_path)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise
