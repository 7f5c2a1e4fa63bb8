"""Post, summary and page types."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from hugopub.core.config import DEFAULT_AUTHOR
from hugopub.posts.slugs import post_filename, slugify


def clean_tags(values: Iterable[object]) -> list[str]:
    """Trim each tag and drop empty ones, preserving order."""
    tags = []
    for value in values:
        text = str(value).strip()
        if text:
            tags.append(text)
    return tags


@dataclass
class FrontMatter:
    """Structured header of a post document."""

    title: str = ""
    date: date | None = None
    description: str = ""
    author: str = DEFAULT_AUTHOR
    tags: list[str] = field(default_factory=list)
    weight: int = 1
    cover_image: str = ""
    # Header keys with no field above, written back unchanged
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.author:
            self.author = DEFAULT_AUTHOR
        self.tags = clean_tags(self.tags)
        if self.weight <= 0:
            self.weight = 1


@dataclass
class Post:
    """A post document: front matter plus markdown body.

    ``path`` records where the post was loaded from and does not take part
    in equality.
    """

    front_matter: FrontMatter
    body: str = ""
    path: Path | None = field(default=None, compare=False)

    @property
    def title(self) -> str:
        return self.front_matter.title

    @property
    def slug(self) -> str:
        return slugify(self.front_matter.title)

    def filename(self, day: date | None = None) -> str:
        """On-disk filename, using the post's own date unless one is given."""
        day = day or self.front_matter.date
        if day is None:
            raise ValueError(f"Post {self.title!r} has no date to build a filename from")
        return post_filename(self.front_matter.title, day)


@dataclass
class PostSummary:
    """Lightweight projection of a post used for listings."""

    title: str
    path: Path
    cover_image: str = ""
    date: date | None = None
    cover_image_thumbnail: bytes | None = field(default=None, repr=False)


@dataclass
class ListPage:
    """One page of a filtered, sorted post listing."""

    items: list[PostSummary]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return page_count(self.total_count, self.page_size)


def page_count(total_count: int, page_size: int) -> int:
    """Number of pages needed for total_count items (at least 1)."""
    if page_size <= 0:
        return 1
    return max(1, math.ceil(total_count / page_size))


def clamp_page(page: int, total_count: int, page_size: int) -> int:
    """Clamp a requested page into ``[1, page_count(...)]``."""
    return min(max(1, page), page_count(total_count, page_size))
