"""Shared test fixtures for hugopub package."""

from datetime import date
from pathlib import Path

import pytest

from hugopub.content.frontmatter import encode
from hugopub.posts.models import FrontMatter


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory."""
    return tmp_path


@pytest.fixture
def mock_site_root(tmp_path, monkeypatch):
    """Create a mock Hugo site with .hugopub/ directory."""
    (tmp_path / ".hugopub" / "backups" / "posts").mkdir(parents=True)
    (tmp_path / "content" / "post").mkdir(parents=True)
    (tmp_path / "static" / "images" / "uploads").mkdir(parents=True)

    # Mock get_site_root to return our tmp_path
    from hugopub.core import config
    # Clear the lru_cache first
    config.get_site_root.cache_clear()
    monkeypatch.setattr(config, "get_site_root", lambda: tmp_path)

    return tmp_path


@pytest.fixture
def posts_dir(mock_site_root) -> Path:
    return mock_site_root / "content" / "post"


@pytest.fixture
def image_dir(mock_site_root) -> Path:
    return mock_site_root / "static" / "images" / "uploads"


@pytest.fixture
def create_post_file(tmp_path):
    """Factory fixture for writing post files in the on-disk format."""
    def _create(
        directory: Path | None = None,
        title: str = "Test Post",
        body: str = "Test content.",
        day: date = date(2024, 1, 1),
        filename: str | None = None,
        **fields,
    ) -> Path:
        from hugopub.posts.slugs import post_filename

        directory = directory or tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        fm = FrontMatter(title=title, date=day, **fields)
        path = directory / (filename or post_filename(title, day))
        path.write_text(encode(fm, body), encoding="utf-8")
        return path

    return _create
