"""
Typed failures raised by the post repository.

Every error carries the post title and/or file path involved so callers can
render a message without re-deriving context.
"""

from __future__ import annotations

from pathlib import Path


class PostError(Exception):
    """Base class for all repository failures."""

    def __init__(
        self,
        message: str,
        title: str | None = None,
        path: Path | str | None = None,
    ):
        super().__init__(message)
        self.title = title
        self.path = Path(path) if path is not None else None


class NotFound(PostError, LookupError):
    """No post (or image) matches the request."""


class DuplicateTitle(PostError):
    """Another post already uses an equivalent title."""


class MalformedDocument(PostError, ValueError):
    """A front matter header is present but cannot be parsed."""


class StorageError(PostError):
    """Filesystem failure: permissions, disk full, missing directory."""


class InvalidArgument(PostError, ValueError):
    """A required field was missing or invalid before a write."""
