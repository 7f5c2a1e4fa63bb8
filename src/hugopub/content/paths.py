"""
Image path resolution.

Turns absolute filesystem image paths into site-relative URLs for front
matter, following the Hugo convention that files under ``static/`` are served
from the site root. All comparisons happen on forward-slash strings so that
Windows-style paths behave the same on every platform.
"""

from __future__ import annotations

from pathlib import Path

from hugopub.core.config import DEFAULT_STATIC_DIR


def normalize_separators(path: str) -> str:
    """Replace every backslash with a forward slash."""
    return path.replace("\\", "/")


def _strip_root(path: str, root: str) -> str | None:
    """Return ``path`` relative to ``root`` or None if it lies outside."""
    if path == root:
        return ""
    if path.startswith(root + "/"):
        return path[len(root) :]
    return None


def to_url(
    image_path: str | Path,
    site_root: str | Path | None,
    static_dir: str = DEFAULT_STATIC_DIR,
) -> str:
    """Convert an absolute image path into a site-relative URL.

    Pure and total: never touches the filesystem and never raises.

    Examples:
        to_url("C:\\\\site\\\\static\\\\images\\\\a.png", "C:\\\\site") -> "/images/a.png"
        to_url("/abs/other/a.png", "") -> "/abs/other/a.png"

    When the site root is unset or the image lies outside it, the path is
    returned with separators normalized; that value is best-effort and not
    guaranteed to be a valid site URL.
    """
    path = normalize_separators(str(image_path))
    raw_root = normalize_separators(str(site_root)) if site_root else ""
    if not raw_root:
        return path
    # "/" keeps an empty prefix, so every absolute path lies under it
    root = raw_root.rstrip("/")

    relative = _strip_root(path, root)
    if relative is None:
        return path

    url = "/" + relative.lstrip("/")
    prefix = "/" + static_dir.strip("/")
    if url == prefix:
        return "/"
    if url.startswith(prefix + "/"):
        url = url[len(prefix) :]
    return url


def locate_image(
    url: str,
    site_root: str | Path | None = None,
    image_dir: str | Path | None = None,
    static_dir: str = DEFAULT_STATIC_DIR,
) -> Path | None:
    """Find the file a cover image URL refers to, if it still exists.

    Candidates, in order:
      1. ``<site_root>/<static_dir>/<url>``
      2. ``<site_root>/<url>``
      3. the URL itself as a filesystem path (values written by the
         out-of-root fallback of :func:`to_url`)
      4. ``<image_dir>/<basename of url>``
    """
    if not url:
        return None

    normalized = normalize_separators(url)
    relative = normalized.lstrip("/")
    candidates: list[Path] = []

    if site_root:
        root = Path(site_root)
        candidates.append(root / static_dir / relative)
        candidates.append(root / relative)
    if Path(normalized).is_absolute():
        candidates.append(Path(normalized))
    if image_dir:
        candidates.append(Path(image_dir) / Path(relative).name)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def is_within(path: Path, directory: str | Path) -> bool:
    """True if ``path`` resolves to a location inside ``directory``."""
    try:
        return path.resolve().is_relative_to(Path(directory).resolve())
    except OSError:
        return False
