"""
Site root discovery, settings and standard paths.

A Hugo site managed by hugopub carries a .hugopub/ directory at its root
holding config.yaml and post backups. Settings are dotted keys into that
file with the fallbacks in DEFAULTS.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

META_DIR = ".hugopub"
DEFAULT_AUTHOR = "Aries"
DEFAULT_PAGE_SIZE = 5
DEFAULT_STATIC_DIR = "static"

# Dotted-key defaults for .hugopub/config.yaml
DEFAULTS: dict[str, Any] = {
    "posts.dir": "content/post",
    "posts.author": DEFAULT_AUTHOR,
    "posts.page_size": DEFAULT_PAGE_SIZE,
    "images.dir": "static/images/uploads",
    "images.static_dir": DEFAULT_STATIC_DIR,
    "backup.keep_count": 10,
    "backup.keep_days": 30,
}


@dataclass(frozen=True)
class SitePaths:
    """Standard paths for the Hugo site and hugopub data."""

    root: Path
    meta_dir: Path
    content: Path
    static: Path

    # Configured directories
    posts: Path
    images: Path

    # Data files (in .hugopub/)
    config_file: Path
    post_backups: Path


def get_global_config_path() -> Path:
    """Location of the per-user config, under $XDG_CONFIG_HOME or ~/.config."""
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "hugopub" / "config.yaml"


def _read_yaml_dict(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def load_global_config() -> dict:
    """Per-user settings; a missing or unreadable file reads as empty."""
    return _read_yaml_dict(get_global_config_path())


def load_site_config(site_root: Path) -> dict:
    """Load .hugopub/config.yaml for a site (empty dict if absent)."""
    return _read_yaml_dict(Path(site_root) / META_DIR / "config.yaml")


def lookup(config: dict, key: str, default: Any = None) -> Any:
    """Resolve a dotted key against a nested config dict."""
    node: Any = config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def get_setting(key: str, site_root: Path | None = None) -> Any:
    """Get a site setting, falling back to DEFAULTS."""
    root = get_site_root() if site_root is None else site_root
    return lookup(load_site_config(root), key, DEFAULTS.get(key))


def _has_meta(directory: Path) -> bool:
    return (directory / META_DIR).is_dir()


def _nearest_site(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _has_meta(candidate):
            return candidate
    return None


def find_site_root(start_path: Path | None = None) -> Path:
    """Locate the Hugo site that hugopub manages.

    An explicit ``HUGOPUB_SITE_ROOT`` wins, then the nearest ancestor of
    ``start_path`` (default: cwd) holding .hugopub/, then ``site_root`` from
    the per-user config. A root named explicitly but lacking .hugopub/ is
    an error rather than a fallthrough.

    Raises:
        FileNotFoundError: If no site root can be resolved.
    """
    explicit = os.environ.get("HUGOPUB_SITE_ROOT")
    if explicit:
        root = Path(explicit).resolve()
        if not _has_meta(root):
            raise FileNotFoundError(f"HUGOPUB_SITE_ROOT={explicit} has no {META_DIR}/ directory.")
        return root

    start = Path.cwd() if start_path is None else Path(start_path)
    nearest = _nearest_site(start)
    if nearest is not None:
        return nearest

    configured = load_global_config().get("site_root")
    if configured:
        root = Path(configured).expanduser().resolve()
        if not _has_meta(root):
            raise FileNotFoundError(f"Global config site_root={configured} has no {META_DIR}/ directory.")
        return root

    raise FileNotFoundError(
        f"No {META_DIR}/ directory in {start} or its parents. Run 'hugopub init' "
        f"there, set HUGOPUB_SITE_ROOT, or add site_root to {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_site_root() -> Path:
    """Site root for this process, resolved once."""
    return find_site_root()


def _under_root(site_root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else site_root / path


def get_paths(site_root: Path | None = None) -> SitePaths:
    """Resolve the directories hugopub reads and writes for a site.

    The posts and images directories honour ``posts.dir`` and ``images.dir``
    from .hugopub/config.yaml; relative values are taken from the site root.
    """
    site_root = get_site_root() if site_root is None else Path(site_root)
    meta_dir = site_root / META_DIR
    config = load_site_config(site_root)
    static_dir = lookup(config, "images.static_dir", DEFAULTS["images.static_dir"])

    return SitePaths(
        root=site_root,
        meta_dir=meta_dir,
        content=site_root / "content",
        static=site_root / static_dir,
        posts=_under_root(site_root, lookup(config, "posts.dir", DEFAULTS["posts.dir"])),
        images=_under_root(site_root, lookup(config, "images.dir", DEFAULTS["images.dir"])),
        config_file=meta_dir / "config.yaml",
        post_backups=meta_dir / "backups" / "posts",
    )
