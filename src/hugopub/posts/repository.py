"""
Post repository over a directory of Hugo markdown files.

The directory is the single source of truth: every operation is a complete
round-trip through the filesystem and no post objects are cached between
calls. Operations are synchronous and unlocked; two processes writing the
same directory at once can race.

Listing scans the whole directory on every call (O(n) in the number of
posts). A site that outgrows that should put an index in front of
:meth:`PostRepository.entries`.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable, Iterator
from datetime import date
from pathlib import Path

from hugopub.content.frontmatter import decode, encode, read_summary
from hugopub.content.paths import is_within, locate_image
from hugopub.core.backup import safe_write_text
from hugopub.core.config import DEFAULT_PAGE_SIZE, DEFAULT_STATIC_DIR
from hugopub.core.errors import (
    DuplicateTitle,
    InvalidArgument,
    MalformedDocument,
    NotFound,
    StorageError,
)
from hugopub.posts.duplicates import DuplicateDetector, titles_collide
from hugopub.posts.models import FrontMatter, ListPage, Post, PostSummary
from hugopub.posts.slugs import POST_SUFFIX, date_from_filename, post_filename

logger = logging.getLogger(__name__)

# Hugo section pages, not posts
SECTION_INDEX = "_index.md"

_FRONT_MATTER_FIELDS = {f.name for f in dataclasses.fields(FrontMatter)}

# Markdown image references: ![alt](url "title")
_BODY_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*<?([^\s)>]+)")


def _same_file(a: Path, b: Path) -> bool:
    """True if both paths name one directory entry (e.g. differing only in case)."""
    try:
        return a.samefile(b)
    except OSError:
        return False


def _is_remote(url: str) -> bool:
    return "://" in url or url.startswith(("data:", "//"))


class PostRepository:
    """CRUD and query operations over the posts in one directory."""

    def __init__(
        self,
        directory: str | Path,
        site_root: str | Path | None = None,
        image_dir: str | Path | None = None,
        static_dir: str = DEFAULT_STATIC_DIR,
        today: Callable[[], date] = date.today,
    ):
        """Initialize repository.

        Args:
            directory: Directory holding the post files
            site_root: Hugo site root, used to resolve cover image URLs
            image_dir: Directory cover images are stored in
            static_dir: Name of the site's static asset folder
            today: Clock used to date newly created posts
        """
        if not str(directory).strip():
            raise InvalidArgument("A post directory is required")
        self.directory = Path(directory)
        self.site_root = Path(site_root) if site_root else None
        self.image_dir = Path(image_dir) if image_dir else None
        self.static_dir = static_dir
        self.today = today
        self.duplicates = DuplicateDetector(self)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def entries(self) -> list[Path]:
        """Post files in the directory (non-recursive), newest filename first."""
        if not self.directory.is_dir():
            return []
        try:
            children = list(self.directory.iterdir())
        except OSError as e:
            raise StorageError(f"Cannot read {self.directory}: {e}", path=self.directory) from e

        files = [
            child
            for child in children
            if child.suffix == POST_SUFFIX
            and child.name != SECTION_INDEX
            and not child.name.startswith(".")
            and child.is_file()
        ]
        return sorted(files, key=lambda p: p.name, reverse=True)

    def _summary_title(self, path: Path) -> tuple[str, str]:
        """(title, cover image) from a file's header, falling back to the stem."""
        try:
            with open(path, encoding="utf-8") as f:
                title, cover = read_summary(f)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read header of %s: %s", path, e)
            title, cover = None, ""
        return title or path.stem, cover

    def entries_with_titles(self) -> Iterator[tuple[Path, str]]:
        """Yield ``(path, title)`` for every post file."""
        for path in self.entries():
            title, _cover = self._summary_title(path)
            yield path, title

    def titles(self) -> list[str]:
        """Titles of every post, newest filename first."""
        return [title for _path, title in self.entries_with_titles()]

    def find_path(self, title: str) -> Path:
        """Resolve a title to its post file.

        An exact title match wins; otherwise the first post whose title is
        equivalent under the duplicate rule is returned.

        Raises:
            NotFound: If no post matches.
        """
        entries = list(self.entries_with_titles())
        for path, stored_title in entries:
            if stored_title == title:
                return path
        for path, stored_title in entries:
            if titles_collide(title, stored_title, path):
                return path
        raise NotFound(f"Post not found: {title}", title=title, path=self.directory)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _read(self, path: Path, title: str | None = None) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFound(f"Post not found: {path}", title=title, path=path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}", title=title, path=path) from e

    def load(self, title: str) -> Post:
        """Load a post by title.

        Raises:
            NotFound: If no post matches the title.
            MalformedDocument: If the post's header cannot be parsed.
        """
        path = self.find_path(title)
        text = self._read(path, title)
        try:
            front_matter, body = decode(text)
        except MalformedDocument as e:
            raise MalformedDocument(str(e), title=title, path=path) from e

        if not front_matter.title:
            front_matter.title = path.stem
        if front_matter.date is None:
            front_matter.date = date_from_filename(path.name)
        return Post(front_matter=front_matter, body=body, path=path)

    def list(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        search: str = "",
    ) -> ListPage:
        """List posts matching a title search, one page at a time.

        Results are ordered by filename descending (newest first, since
        filenames are date-prefixed). ``total_count`` counts every match, not
        just the returned page. A page past the end yields an empty page.
        """
        if page_size <= 0:
            raise InvalidArgument(f"page_size must be positive, got {page_size}")

        term = (search or "").strip().lower()
        matches: list[PostSummary] = []
        for path in self.entries():
            title, cover = self._summary_title(path)
            if term and term not in title.lower():
                continue
            matches.append(
                PostSummary(
                    title=title,
                    path=path,
                    cover_image=cover,
                    date=date_from_filename(path.name),
                )
            )

        total_count = len(matches)
        items: list[PostSummary] = []
        if page >= 1:
            start = (page - 1) * page_size
            items = matches[start : start + page_size]

        for summary in items:
            summary.cover_image_thumbnail = self._thumbnail(summary.cover_image)

        return ListPage(items=items, total_count=total_count, page=page, page_size=page_size)

    def _thumbnail(self, cover_image: str) -> bytes | None:
        """Cover bytes, only for an existing file inside ``image_dir``."""
        if not cover_image or self.image_dir is None or _is_remote(cover_image):
            return None
        image = locate_image(cover_image, self.site_root, self.image_dir, self.static_dir)
        if image is None or not is_within(image, self.image_dir):
            return None
        try:
            return image.read_bytes()
        except OSError as e:
            logger.debug("Could not read cover image %s: %s", image, e)
            return None

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _validate(self, post: Post) -> None:
        if not post.title.strip():
            raise InvalidArgument("A post title is required")
        if not post.body.strip():
            raise InvalidArgument("Post content is required", title=post.title)

    def _write(self, post: Post, exclude: str | None = None) -> Path:
        self._validate(post)

        conflict = self.duplicates.check(post.title, exclude=exclude)
        if conflict.is_duplicate:
            raise DuplicateTitle(
                f"A post with an equivalent title already exists: {conflict.conflicting_path}",
                title=post.title,
                path=conflict.conflicting_path,
            )

        if post.front_matter.date is None:
            post = dataclasses.replace(
                post, front_matter=dataclasses.replace(post.front_matter, date=self.today())
            )

        target = self.directory / post_filename(post.title, post.front_matter.date)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            safe_write_text(target, encode(post.front_matter, post.body))
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Cannot write {target}: {e}", title=post.title, path=target) from e

        logger.info("Wrote post %s", target)
        return target

    def save(self, post: Post) -> Path:
        """Create a new post file.

        The filename is ``<date>-<slug>.md``; an undated post gets today's
        date. The write is atomic.

        Raises:
            InvalidArgument: If title or body is empty.
            DuplicateTitle: If an equivalent title already exists.
            StorageError: If the file cannot be written.
        """
        return self._write(post)

    def update(self, original_title: str, **fields) -> Path:
        """Replace fields of an existing post and save it.

        Accepts any :class:`FrontMatter` field plus ``body``. The creation
        date is kept unless ``date`` is given, and header keys without a
        field (``FrontMatter.extra``) are written back unchanged. When the
        filename changes, the old file is removed only after the new one has
        been written.

        Raises:
            NotFound: If the original post does not exist.
            DuplicateTitle: If the new title collides with another post.
        """
        unknown = set(fields) - _FRONT_MATTER_FIELDS - {"body"}
        if unknown:
            raise InvalidArgument(f"Unknown post fields: {', '.join(sorted(unknown))}")

        original = self.load(original_title)
        body = fields.pop("body", original.body)
        front_matter = dataclasses.replace(original.front_matter, **fields)
        updated = Post(front_matter=front_matter, body=body)

        target = self._write(updated, exclude=original_title)
        if original.path is not None and original.path != target:
            self._retire(original.path, target, original_title)
        return target

    def _retire(self, old: Path, new: Path, title: str) -> None:
        """Drop the pre-rename file once its replacement is on disk."""
        try:
            if _same_file(old, new):
                # Case-insensitive filesystem: the write already replaced
                # this entry, only the name's case is left to change
                old.replace(new)
            else:
                old.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(
                f"Updated post written to {new} but could not remove {old}: {e}",
                title=title,
                path=old,
            ) from e
        logger.info("Renamed post %s -> %s", old.name, new.name)

    def delete(
        self,
        title: str,
        image_dir: str | Path | None = None,
        site_root: str | Path | None = None,
        keep_images: bool = False,
    ) -> Path:
        """Delete a post and the images it owns.

        The cover image and any image the body embeds are removed when they
        resolve to a file inside ``image_dir`` (the repository's own image
        directory unless one is given). Image removal is best-effort: a
        missing image is ignored and other failures are logged without
        failing the delete.

        Returns:
            Path of the removed post file.
        """
        path = self.find_path(title)
        _stored_title, cover = self._summary_title(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not scan %s for images: %s", path, e)
            text = ""

        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFound(f"Post not found: {title}", title=title, path=path) from e
        except OSError as e:
            raise StorageError(f"Cannot delete {path}: {e}", title=title, path=path) from e
        logger.info("Deleted post %s", path)

        owned_dir = image_dir or self.image_dir
        if owned_dir and not keep_images:
            urls = dict.fromkeys([cover, *_BODY_IMAGE_RE.findall(text)])
            for url in urls:
                if url and not _is_remote(url):
                    self._delete_image(url, Path(owned_dir), site_root or self.site_root)
        return path

    def _delete_image(self, url: str, image_dir: Path, site_root: Path | str | None) -> None:
        image = locate_image(url, site_root, image_dir, self.static_dir)
        if image is None:
            logger.debug("Image %s already gone", url)
            return
        if not is_within(image, image_dir):
            logger.debug("Keeping image %s outside %s", image, image_dir)
            return
        try:
            image.unlink()
        except FileNotFoundError:
            logger.debug("Image %s already gone", image)
        except OSError as e:
            logger.warning("Failed to delete image %s: %s", image, e)
        else:
            logger.info("Deleted image %s", image)
