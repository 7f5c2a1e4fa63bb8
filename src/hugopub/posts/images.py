"""
Cover image import.

Images arrive already prepared (resizing and compression happen elsewhere);
this module only places them in the site's image directory and produces the
URL stored in front matter.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from hugopub.content.paths import is_within, to_url
from hugopub.core.config import DEFAULT_STATIC_DIR
from hugopub.core.errors import NotFound, StorageError

logger = logging.getLogger(__name__)


def cover_filename(source: Path, timestamp_ms: int | None = None) -> str:
    """Name for an imported cover: ``cover-<milliseconds><ext>``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"cover-{timestamp_ms}{source.suffix.lower()}"


def import_cover_image(source: str | Path, image_dir: str | Path) -> Path:
    """Copy an image into ``image_dir`` unless it already lives there.

    Returns:
        Path of the image inside ``image_dir``.

    Raises:
        NotFound: If the source image does not exist.
        StorageError: If the copy fails.
    """
    source = Path(source).expanduser()
    image_dir = Path(image_dir)
    if not source.is_file():
        raise NotFound(f"Image not found: {source}", path=source)

    if is_within(source, image_dir):
        return source

    target = image_dir / cover_filename(source)
    try:
        image_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
    except OSError as e:
        raise StorageError(f"Cannot copy {source} to {target}: {e}", path=target) from e

    logger.info("Imported cover image %s -> %s", source, target)
    return target


def place_cover(
    source: str | Path,
    image_dir: str | Path,
    site_root: str | Path | None,
    static_dir: str = DEFAULT_STATIC_DIR,
) -> tuple[str, Path | None]:
    """Import a cover image and return its site-relative URL.

    Also returns the copy made in ``image_dir``, or None when the source
    already lived there, so a caller whose post write fails can remove it.
    """
    source = Path(source).expanduser()
    placed = import_cover_image(source, image_dir)
    copied = None if placed == source else placed
    return to_url(placed, site_root, static_dir), copied
