"""
Title collision detection.

Two titles collide when their normalized forms are equal (lower-cased,
trimmed, internal whitespace collapsed) or when they derive the same slug,
compared case-insensitively. A stored post's slug is taken both from its
filename and from its title, so posts written by other tools are covered.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from hugopub.posts.slugs import normalize_title, slug_from_filename, slug_key, slugify


class TitledEntries(Protocol):
    def entries_with_titles(self) -> Iterable[tuple[Path, str]]: ...


@dataclass(frozen=True)
class DuplicateCheck:
    """Outcome of a duplicate check."""

    is_duplicate: bool
    conflicting_path: Path | None = None


def titles_collide(candidate: str, stored_title: str, stored_path: Path) -> bool:
    """True if ``candidate`` is equivalent to a stored post's title."""
    if normalize_title(candidate) == normalize_title(stored_title):
        return True
    key = slug_key(slugify(candidate))
    return key in (
        slug_key(slug_from_filename(stored_path.name)),
        slug_key(slugify(stored_title)),
    )


class DuplicateDetector:
    """Checks candidate titles against the posts of a repository."""

    def __init__(self, repository: TitledEntries):
        self.repository = repository

    def check(self, title: str, exclude: str | None = None) -> DuplicateCheck:
        """Check whether ``title`` collides with an existing post.

        Args:
            title: Candidate title
            exclude: Original title of the post being edited; entries matching
                it are skipped so a post never collides with itself.
        """
        for path, stored_title in self.repository.entries_with_titles():
            if exclude is not None and titles_collide(exclude, stored_title, path):
                continue
            if titles_collide(title, stored_title, path):
                return DuplicateCheck(True, path)
        return DuplicateCheck(False)
