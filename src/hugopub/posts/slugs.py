"""
Title, slug and filename derivation.

Every code path that turns a title into an on-disk key goes through these
functions, so save, update, delete and duplicate detection always agree.
"""

from __future__ import annotations

import re
from datetime import date

# ASCII alphanumerics and CJK Unified Ideographs survive; everything else
# becomes a single hyphen.
SLUG_REJECT_RE = re.compile(r"[^A-Za-z0-9\u4e00-\u9fa5]+")
DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-")
DEFAULT_SLUG = "post"
POST_SUFFIX = ".md"


def slugify(title: str) -> str:
    """Convert a title to a filesystem-safe slug.

    Case is preserved. Runs of rejected characters collapse to one hyphen and
    leading/trailing hyphens are dropped.

    Examples:
        "Hello World" -> "Hello-World"
        "My Post!"    -> "My-Post"
        "Go 语言"     -> "Go-语言"
    """
    slug = SLUG_REJECT_RE.sub("-", title).strip("-")
    return slug or DEFAULT_SLUG


def post_filename(title: str, day: date) -> str:
    """Build the ``YYYY-MM-DD-<slug>.md`` filename for a post."""
    return f"{day.isoformat()}-{slugify(title)}{POST_SUFFIX}"


def strip_date_prefix(stem: str) -> str:
    """Strip a YYYY-MM-DD- prefix from a filename stem, if present."""
    return DATE_PREFIX_RE.sub("", stem)


def date_from_filename(name: str) -> date | None:
    """Return the creation date encoded in a post filename, if any."""
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


def slug_from_filename(name: str) -> str:
    """Recover the slug part of a stored post filename."""
    stem = name[: -len(POST_SUFFIX)] if name.endswith(POST_SUFFIX) else name
    return strip_date_prefix(stem)


def normalize_title(title: str) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    return " ".join(title.lower().split())


def slug_key(slug: str) -> str:
    """Comparison key for slugs (case-insensitive)."""
    return slug.lower()
