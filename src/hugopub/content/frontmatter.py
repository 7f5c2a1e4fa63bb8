"""
Front matter encoding and decoding.

Documents look like::

    ---
    title: "Hello World"
    date: 2024-01-01
    description: "A first post"
    author: "Aries"
    tags: ["hugo", "notes"]
    weight: 1
    coverImage: "/images/uploads/cover.jpg"
    ---

    Body text...

Fields are always written in that order. ``title`` and ``weight`` are always
present; the others are omitted when empty. Header keys read from an existing
post that hugopub does not model (``keywords``, ``lastmod``, a nested
``cover`` block...) follow ``coverImage`` unchanged. Quoted values use JSON string
escaping, which is also a valid YAML double-quoted scalar, so the header can
be read back with ``yaml.safe_load`` (and by Hugo).
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

import yaml

from hugopub.core.errors import MalformedDocument
from hugopub.posts.models import FrontMatter, clean_tags

logger = logging.getLogger(__name__)

MARKER = "---"

# Keys mapped onto FrontMatter fields; anything else is carried in extra
HEADER_KEYS = frozenset({"title", "date", "description", "author", "tags", "weight", "coverImage"})

# Characters PyYAML refuses in a stream, or folds as line breaks inside a
# double-quoted scalar. JSON leaves them raw, so escape them explicitly.
_YAML_UNSAFE_RE = re.compile("[\x7f-\x9f\u2028\u2029\ufffe\uffff]")


def _quote(value: str) -> str:
    quoted = json.dumps(value, ensure_ascii=False)
    return _YAML_UNSAFE_RE.sub(lambda m: f"\\u{ord(m.group()):04x}", quoted)


def _is_marker(line: str) -> bool:
    return line.rstrip("\r").rstrip(" \t") == MARKER


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _extra_lines(fm: FrontMatter) -> list[str]:
    extra = dict(fm.extra)
    cover = extra.get("cover")
    if isinstance(cover, dict) and "image" in cover:
        # Keep the nested theme field in step with coverImage
        extra["cover"] = {**cover, "image": fm.cover_image}
    if not extra:
        return []
    dumped = yaml.safe_dump(extra, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return dumped.rstrip("\n").split("\n")


def encode(front_matter: FrontMatter, body: str) -> str:
    """Serialize front matter and body into a single document."""
    fm = front_matter
    lines = [MARKER, f"title: {_quote(fm.title)}"]
    if fm.date is not None:
        lines.append(f"date: {fm.date.isoformat()}")
    if fm.description:
        lines.append(f"description: {_quote(fm.description)}")
    if fm.author:
        lines.append(f"author: {_quote(fm.author)}")
    if fm.tags:
        lines.append("tags: [" + ", ".join(_quote(tag) for tag in fm.tags) + "]")
    lines.append(f"weight: {int(fm.weight)}")
    if fm.cover_image:
        lines.append(f"coverImage: {_quote(fm.cover_image)}")
    lines.extend(_extra_lines(fm))
    lines.append(MARKER)
    return "\n".join(lines) + "\n\n" + body


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def split_document(text: str) -> tuple[str | None, str]:
    """Split a document into (header text, body).

    Returns ``(None, text)`` when the document does not open with the marker.

    Raises:
        MalformedDocument: If the header is opened but never closed.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = text.split("\n")
    if not _is_marker(lines[0]):
        return None, text

    for index in range(1, len(lines)):
        if _is_marker(lines[index]):
            header = "\n".join(lines[1:index])
            rest = "\n".join(lines[index + 1 :])
            break
    else:
        raise MalformedDocument("Front matter header is not closed")

    # One blank line separates header and body
    if rest.startswith("\r\n"):
        rest = rest[2:]
    elif rest.startswith("\n"):
        rest = rest[1:]
    return header, rest


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            logger.debug("Ignoring unparsable date %r", value)
    return None


def _as_author(value: Any) -> str:
    # Older documents store the author as a one-element list
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return _as_text(value)


def _as_weight(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 1


def parse_tags(value: Any) -> list[str]:
    """Parse tags from a YAML list or a bare comma-separated string.

    Accepts ``["a", "b"]``, ``[a, b]`` and ``a, b`` alike; whitespace around
    each tag is trimmed and empty tags are dropped.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return clean_tags(value)
    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return clean_tags(part.strip().strip("\"'") for part in text.split(","))


def _cover_image(data: dict) -> str:
    if data.get("coverImage"):
        return _as_text(data["coverImage"])
    cover = data.get("cover")
    if isinstance(cover, dict):
        return _as_text(cover.get("image"))
    return ""


def decode(text: str) -> tuple[FrontMatter, str]:
    """Parse a document into typed front matter and body.

    A document without a header is a plain post: the whole text is the body
    and the front matter takes its defaults.

    Header keys this module does not model are kept in
    ``FrontMatter.extra`` so that rewriting the post does not drop them.

    Raises:
        MalformedDocument: If a header is present but cannot be parsed.
    """
    header, body = split_document(text)
    if header is None:
        return FrontMatter(), body

    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError as e:
        raise MalformedDocument(f"Invalid front matter: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedDocument("Front matter is not a key/value mapping")

    front_matter = FrontMatter(
        title=_as_text(data.get("title")),
        date=_as_date(data.get("date")),
        description=_as_text(data.get("description")),
        author=_as_author(data.get("author")),
        tags=parse_tags(data.get("tags")),
        weight=_as_weight(data.get("weight", 1)),
        cover_image=_cover_image(data),
        extra={key: value for key, value in data.items() if key not in HEADER_KEYS},
    )
    return front_matter, body


# ---------------------------------------------------------------------------
# Summary parsing (listing path)
# ---------------------------------------------------------------------------


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        try:
            return json.loads(value)
        except ValueError:
            return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    return value


def read_summary(lines: Iterable[str]) -> tuple[str | None, str]:
    """Extract only ``(title, cover image)`` from a document's header.

    Scans line by line and stops at the closing marker, so the body is never
    read and no YAML is parsed. Unparsable or missing headers yield
    ``(None, "")`` rather than an error.
    """
    title: str | None = None
    cover = ""
    in_cover_block = False

    iterator = iter(lines)
    first = next(iterator, "")
    if not _is_marker(first.lstrip("\ufeff").rstrip("\n")):
        return None, ""

    for raw_line in iterator:
        line = raw_line.rstrip("\n")
        if _is_marker(line):
            break
        stripped = line.strip()
        key, sep, value = stripped.partition(":")
        if not sep:
            continue

        indented = line[:1] in (" ", "\t")
        if indented:
            if in_cover_block and key == "image" and not cover:
                cover = _unquote(value)
            continue

        in_cover_block = key == "cover"
        if key == "title":
            title = _unquote(value)
        elif key == "coverImage":
            cover = _unquote(value)

    return title, cover
