"""Tests for hugopub.posts.repository module."""

from datetime import date
from pathlib import Path

import pytest

from hugopub.core.errors import (
    DuplicateTitle,
    InvalidArgument,
    MalformedDocument,
    NotFound,
)
from hugopub.posts import repository
from hugopub.posts.models import FrontMatter, Post
from hugopub.posts.repository import PostRepository


@pytest.fixture
def repo(tmp_path):
    return PostRepository(tmp_path / "post", today=lambda: date(2024, 1, 1))


def _post(title: str, body: str = "Body", **fields) -> Post:
    return Post(front_matter=FrontMatter(title=title, **fields), body=body)


# ---------------------------------------------------------------------------
# Construction and enumeration
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_empty_directory_rejected(self):
        with pytest.raises(InvalidArgument):
            PostRepository("")

    def test_missing_directory_lists_nothing(self, tmp_path):
        repo = PostRepository(tmp_path / "nope")
        assert repo.entries() == []
        assert repo.list().total_count == 0


class TestEntries:
    def test_skips_index_hidden_and_non_markdown(self, tmp_path, create_post_file):
        directory = tmp_path / "post"
        create_post_file(directory, title="Real")
        (directory / "_index.md").write_text("---\ntitle: Section\n---\n")
        (directory / ".draft.md").write_text("hidden")
        (directory / "notes.txt").write_text("text")
        (directory / "nested").mkdir()
        create_post_file(directory / "nested", title="Nested")

        repo = PostRepository(directory)
        assert [p.name for p in repo.entries()] == ["2024-01-01-Real.md"]

    def test_sorted_newest_first(self, tmp_path, create_post_file):
        directory = tmp_path / "post"
        create_post_file(directory, title="Old", day=date(2023, 1, 1))
        create_post_file(directory, title="New", day=date(2024, 6, 1))
        create_post_file(directory, title="Mid", day=date(2023, 9, 1))

        assert PostRepository(directory).titles() == ["New", "Mid", "Old"]

    def test_title_falls_back_to_stem(self, tmp_path):
        directory = tmp_path / "post"
        directory.mkdir()
        (directory / "2023-05-05-notes.md").write_text("no header here")

        assert PostRepository(directory).titles() == ["2023-05-05-notes"]


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------


class TestSave:
    def test_hello_world(self, repo):
        path = repo.save(_post("Hello World", "Test."))

        assert path.name == "2024-01-01-Hello-World.md"
        assert path.read_text(encoding="utf-8") == (
            '---\ntitle: "Hello World"\ndate: 2024-01-01\n'
            'author: "Aries"\nweight: 1\n---\n\nTest.'
        )
        post = repo.load("Hello World")
        assert post.body == "Test."
        assert post.front_matter.author == "Aries"
        assert post.front_matter.weight == 1

    def test_explicit_date_used(self, repo):
        path = repo.save(_post("Dated", date=date(2022, 12, 31)))
        assert path.name == "2022-12-31-Dated.md"

    def test_creates_directory(self, repo):
        assert not repo.directory.exists()
        repo.save(_post("First"))
        assert repo.directory.is_dir()

    def test_no_temp_files_left(self, repo):
        repo.save(_post("Clean"))
        assert [p.name for p in repo.directory.iterdir()] == ["2024-01-01-Clean.md"]

    def test_empty_title_rejected(self, repo):
        with pytest.raises(InvalidArgument):
            repo.save(_post("   "))

    def test_empty_body_rejected(self, repo):
        with pytest.raises(InvalidArgument):
            repo.save(_post("Title", body="  \n"))

    def test_duplicate_title_rejected(self, repo):
        repo.save(_post("My Post"))
        with pytest.raises(DuplicateTitle) as exc:
            repo.save(_post("my  post"))
        assert exc.value.path.name == "2024-01-01-My-Post.md"

    def test_duplicate_slug_rejected(self, repo):
        repo.save(_post("My Post"))
        with pytest.raises(DuplicateTitle):
            repo.save(_post("My-Post"))

    def test_duplicate_on_other_day_rejected(self, repo):
        repo.save(_post("Same", date=date(2020, 1, 1)))
        with pytest.raises(DuplicateTitle):
            repo.save(_post("Same"))


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------


class TestLoad:
    def test_round_trip(self, repo):
        original = _post(
            "Full",
            "Body\n\nwith paragraphs\n",
            description="desc",
            author="Jane",
            tags=["a", "b"],
            weight=4,
            cover_image="/images/uploads/c.png",
        )
        path = repo.save(original)

        loaded = repo.load("Full")
        assert loaded.path == path
        assert loaded.body == original.body
        assert loaded.front_matter.tags == ["a", "b"]
        assert loaded.front_matter.date == date(2024, 1, 1)
        assert loaded.front_matter.cover_image == "/images/uploads/c.png"

    def test_load_by_equivalent_title(self, repo):
        repo.save(_post("Hello World"))
        assert repo.load("hello world").title == "Hello World"

    def test_not_found(self, repo):
        with pytest.raises(NotFound):
            repo.load("Missing")

    def test_malformed(self, tmp_path):
        directory = tmp_path / "post"
        directory.mkdir()
        bad = directory / "2024-01-01-Bad.md"
        bad.write_text("---\ntitle: Bad\ntags: [unclosed\n---\n\nbody")

        with pytest.raises(MalformedDocument) as exc:
            PostRepository(directory).load("Bad")
        assert exc.value.path == bad

    def test_headerless_file_is_plain_post(self, tmp_path):
        directory = tmp_path / "post"
        directory.mkdir()
        (directory / "2024-01-01-Plain.md").write_text("Just text.")
        repo = PostRepository(directory)

        assert repo.titles() == ["2024-01-01-Plain"]
        post = repo.load("2024-01-01-Plain")
        assert post.body == "Just text."
        assert post.title == "2024-01-01-Plain"
        assert post.front_matter.date == date(2024, 1, 1)
        assert post.front_matter.author == "Aries"

    def test_missing_title_and_date_from_filename(self, tmp_path):
        directory = tmp_path / "post"
        directory.mkdir()
        (directory / "2023-05-05-notes.md").write_text("---\nweight: 2\n---\n\nbody")

        post = PostRepository(directory).load("2023-05-05-notes")
        assert post.title == "2023-05-05-notes"
        assert post.front_matter.date == date(2023, 5, 5)
        assert post.front_matter.weight == 2
        assert post.body == "body"


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


class TestList:
    @pytest.fixture
    def seven(self, repo):
        for day in range(1, 8):
            repo.save(_post(f"Post {day}", date=date(2024, 1, day)))
        return repo

    def test_pages_partition_matches(self, seven):
        pages = [seven.list(page=p, page_size=3) for p in (1, 2, 3)]

        assert [len(p.items) for p in pages] == [3, 3, 1]
        assert all(p.total_count == 7 for p in pages)
        titles = [s.title for p in pages for s in p.items]
        assert titles == [f"Post {d}" for d in range(7, 0, -1)]

    def test_page_past_end_is_empty(self, seven):
        result = seven.list(page=4, page_size=3)
        assert result.items == []
        assert result.total_count == 7

    def test_page_zero_is_empty(self, seven):
        result = seven.list(page=0, page_size=3)
        assert result.items == []
        assert result.total_count == 7

    def test_non_positive_page_size(self, seven):
        with pytest.raises(InvalidArgument):
            seven.list(page=1, page_size=0)

    def test_search_case_insensitive(self, repo):
        repo.save(_post("Learning Python"))
        repo.save(_post("Rust Notes"))
        repo.save(_post("python tricks"))

        result = repo.list(search="PYTHON")
        assert sorted(s.title for s in result.items) == ["Learning Python", "python tricks"]
        assert result.total_count == 2

    def test_blank_search_matches_all(self, seven):
        assert seven.list(search="   ").total_count == 7

    def test_idempotent(self, seven):
        assert seven.list(page=2, page_size=2) == seven.list(page=2, page_size=2)

    def test_section_index_filtered_by_filename_only(self, tmp_path, create_post_file):
        directory = tmp_path / "post"
        create_post_file(directory, title="_index", filename="2024-01-01-odd.md")
        (directory / "_index.md").write_text("---\ntitle: Section\n---\n")

        assert [s.title for s in PostRepository(directory).list().items] == ["_index"]

    def test_summary_fields(self, repo):
        repo.save(_post("Card", date=date(2024, 3, 4), cover_image="/images/x.png"))
        (summary,) = repo.list().items
        assert summary.date == date(2024, 3, 4)
        assert summary.cover_image == "/images/x.png"
        assert summary.path.name == "2024-03-04-Card.md"

    def test_thumbnail_loaded(self, tmp_path):
        site = tmp_path / "site"
        images = site / "static" / "images" / "uploads"
        images.mkdir(parents=True)
        (images / "c.png").write_bytes(b"\x89PNG")
        repo = PostRepository(site / "content" / "post", site_root=site, image_dir=images)
        repo.save(_post("With Cover", cover_image="/images/uploads/c.png"))
        repo.save(_post("Missing Cover", cover_image="/images/uploads/gone.png"))
        repo.save(_post("No Cover"))

        thumbs = {s.title: s.cover_image_thumbnail for s in repo.list().items}
        assert thumbs == {"With Cover": b"\x89PNG", "Missing Cover": None, "No Cover": None}

    def test_thumbnail_only_inside_image_dir(self, tmp_path):
        site = tmp_path / "site"
        images = site / "static" / "images" / "uploads"
        images.mkdir(parents=True)
        secret = tmp_path / "secret.txt"
        secret.write_bytes(b"SECRET")
        repo = PostRepository(site / "content" / "post", site_root=site, image_dir=images)
        repo.save(_post("Outside", cover_image=str(secret)))

        (summary,) = repo.list().items
        assert summary.cover_image_thumbnail is None

    def test_no_thumbnail_without_image_dir(self, tmp_path):
        site = tmp_path / "site"
        images = site / "static" / "images" / "uploads"
        images.mkdir(parents=True)
        (images / "c.png").write_bytes(b"\x89PNG")
        repo = PostRepository(site / "content" / "post", site_root=site)
        repo.save(_post("Covered", cover_image="/images/uploads/c.png"))

        (summary,) = repo.list().items
        assert summary.cover_image_thumbnail is None


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_rename(self, repo):
        old = repo.save(_post("A", "Body A"))
        new = repo.update("A", title="B")

        assert not old.exists()
        assert new.name == "2024-01-01-B.md"
        assert repo.titles() == ["B"]
        assert repo.load("B").body == "Body A"

    def test_rename_keeps_creation_date(self, tmp_path):
        repo = PostRepository(tmp_path, today=lambda: date(2024, 1, 1))
        repo.save(_post("A"))
        repo.today = lambda: date(2025, 6, 6)

        assert repo.update("A", title="B").name == "2024-01-01-B.md"

    def test_body_only_keeps_path(self, repo):
        path = repo.save(_post("Same", "old"))
        assert repo.update("Same", body="new") == path
        assert repo.load("Same").body == "new"

    def test_case_only_rename_is_not_duplicate(self, repo):
        repo.save(_post("hello world"))
        path = repo.update("hello world", title="Hello World")
        assert path.name == "2024-01-01-Hello-World.md"
        assert repo.titles() == ["Hello World"]

    def test_case_only_rename_on_case_insensitive_filesystem(self, repo, monkeypatch):
        old = repo.save(_post("hello world", "Body"))
        renamed = []
        real_replace = Path.replace

        def replace(self, target):
            if self == old:
                renamed.append((self, Path(target)))
                return Path(target)
            return real_replace(self, target)

        # Both names resolve to one directory entry, as on macOS or Windows
        monkeypatch.setattr(repository, "_same_file", lambda a, b: True)
        monkeypatch.setattr(Path, "replace", replace)

        new = repo.update("hello world", title="Hello World")
        assert old.exists()
        assert renamed == [(old, new)]
        assert "Body" in new.read_text()

    def test_same_file_detection(self, tmp_path):
        a = tmp_path / "a.md"
        a.write_text("x")
        link = tmp_path / "link.md"
        link.hardlink_to(a)
        other = tmp_path / "b.md"
        other.write_text("x")

        assert repository._same_file(a, link)
        assert not repository._same_file(a, other)
        assert not repository._same_file(a, tmp_path / "missing.md")

    def test_legacy_header_keys_survive_update(self, tmp_path):
        directory = tmp_path / "post"
        directory.mkdir()
        (directory / "2024-01-01-a.md").write_text(
            "---\ntitle: a\ndate: 2024-01-01\nslug: custom-a\nkeywords:\n- k1\n- k2\n"
            "cover:\n  image: /images/uploads/a.png\n  hiddenInList: true\n---\n\nold body"
        )
        repo = PostRepository(directory)

        path = repo.update("a", body="new body")

        post = repo.load("a")
        assert path.name == "2024-01-01-a.md"
        assert post.body == "new body"
        assert post.front_matter.cover_image == "/images/uploads/a.png"
        assert post.front_matter.extra == {
            "slug": "custom-a",
            "keywords": ["k1", "k2"],
            "cover": {"image": "/images/uploads/a.png", "hiddenInList": True},
        }

    def test_rename_to_existing_rejected(self, repo):
        a = repo.save(_post("A", "Body A"))
        repo.save(_post("B"))

        with pytest.raises(DuplicateTitle):
            repo.update("A", title="B")
        assert a.exists()
        assert repo.load("A").body == "Body A"

    def test_missing_post(self, repo):
        with pytest.raises(NotFound):
            repo.update("Ghost", body="x")

    def test_unknown_field(self, repo):
        repo.save(_post("A"))
        with pytest.raises(InvalidArgument):
            repo.update("A", colour="red")

    def test_empty_body_rejected(self, repo):
        repo.save(_post("A"))
        with pytest.raises(InvalidArgument):
            repo.update("A", body="")


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDelete:
    @pytest.fixture
    def site(self, tmp_path):
        images = tmp_path / "static" / "images" / "uploads"
        images.mkdir(parents=True)
        repo = PostRepository(
            tmp_path / "content" / "post",
            site_root=tmp_path,
            image_dir=images,
            today=lambda: date(2024, 1, 1),
        )
        return repo, images

    def test_removes_post_and_image(self, site):
        repo, images = site
        cover = images / "c.png"
        cover.write_bytes(b"img")
        path = repo.save(_post("Doomed", cover_image="/images/uploads/c.png"))

        assert repo.delete("Doomed", image_dir=images) == path
        assert not path.exists()
        assert not cover.exists()

    def test_repository_image_dir_is_default(self, site):
        repo, images = site
        cover = images / "c.png"
        cover.write_bytes(b"img")
        path = repo.save(_post("Doomed", cover_image="/images/uploads/c.png"))

        repo.delete("Doomed")
        assert not path.exists()
        assert not cover.exists()

    def test_keep_images(self, site):
        repo, images = site
        cover = images / "c.png"
        cover.write_bytes(b"img")
        body = "![inline](/images/uploads/c.png)"
        repo.save(_post("Doomed", body, cover_image="/images/uploads/c.png"))

        repo.delete("Doomed", keep_images=True)
        assert cover.exists()

    def test_keeps_image_without_any_image_dir(self, tmp_path):
        images = tmp_path / "static" / "images" / "uploads"
        images.mkdir(parents=True)
        cover = images / "c.png"
        cover.write_bytes(b"img")
        repo = PostRepository(tmp_path / "content" / "post", site_root=tmp_path)
        repo.save(_post("Doomed", cover_image="/images/uploads/c.png"))

        repo.delete("Doomed")
        assert cover.exists()

    def test_removes_body_images(self, site, tmp_path):
        repo, images = site
        for name in ("one.png", "two.jpg"):
            (images / name).write_bytes(b"img")
        shared = tmp_path / "static" / "logo.png"
        shared.write_bytes(b"img")
        body = (
            "Intro\n![first](/images/uploads/one.png)\n"
            'Text ![second](/images/uploads/two.jpg "caption") and ![logo](/logo.png)\n'
            "![remote](https://example.com/one.png)\n"
        )
        repo.save(_post("Gallery", body))

        repo.delete("Gallery")
        assert list(images.iterdir()) == []
        assert shared.exists()

    def test_remote_url_never_maps_to_upload(self, site):
        repo, images = site
        upload = images / "photo.png"
        upload.write_bytes(b"img")
        repo.save(_post("Linked", "![x](https://example.com/photo.png)"))

        repo.delete("Linked")
        assert upload.exists()

    def test_keeps_image_outside_image_dir(self, site, tmp_path):
        repo, images = site
        shared = tmp_path / "static" / "shared.png"
        shared.write_bytes(b"img")
        repo.save(_post("Doomed", cover_image="/shared.png"))

        repo.delete("Doomed", image_dir=images)
        assert shared.exists()

    def test_missing_image_is_ignored(self, site):
        repo, images = site
        path = repo.save(_post("Doomed", cover_image="/images/uploads/gone.png"))

        repo.delete("Doomed", image_dir=images)
        assert not path.exists()

    def test_not_found(self, site):
        repo, _images = site
        with pytest.raises(NotFound):
            repo.delete("Nothing")

    def test_deleted_post_no_longer_listed(self, site):
        repo, _images = site
        repo.save(_post("Keep"))
        repo.save(_post("Drop"))
        repo.delete("Drop")
        assert repo.titles() == ["Keep"]
