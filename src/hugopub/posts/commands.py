"""CLI commands for blog post management.

Thin layer over PostRepository: every command resolves the configured posts
and image directories, calls one repository operation and renders the result.
"""

from __future__ import annotations

import base64
import json as json_module
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from hugopub.core.errors import PostError

console = Console()


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _repository():
    """Build a PostRepository for the current site."""
    from hugopub.core.config import get_paths, get_setting
    from hugopub.posts.repository import PostRepository

    paths = get_paths()
    return PostRepository(
        paths.posts,
        site_root=paths.root,
        image_dir=paths.images,
        static_dir=get_setting("images.static_dir", paths.root),
    )


def _fail(error: PostError) -> None:
    console.print(f"[red]{error}[/red]")
    raise SystemExit(1)


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid date: {value}. Use YYYY-MM-DD.")


def _split_tags(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated --tag values."""
    tags: list[str] = []
    for value in values:
        tags.extend(t.strip() for t in value.split(",") if t.strip())
    return tags


def _read_body(body: str | None, body_file: Path | None) -> str | None:
    if body is not None and body_file is not None:
        raise click.UsageError("Use either --body or --body-file, not both.")
    if body_file is not None:
        return body_file.read_text(encoding="utf-8")
    return body


def _backup_post(path: Path) -> Path | None:
    """Copy a post into .hugopub/backups/posts before changing it."""
    from hugopub.core.backup import backup_post, prune_backups
    from hugopub.core.config import get_paths, get_setting

    paths = get_paths()
    if not paths.meta_dir.is_dir():
        return None
    backup_path = backup_post(path, paths.post_backups)
    prune_backups(
        paths.post_backups,
        keep_count=int(get_setting("backup.keep_count", paths.root)),
        keep_days=int(get_setting("backup.keep_days", paths.root)),
    )
    return backup_path


def _import_cover(cover: Path) -> tuple[str, Path | None]:
    from hugopub.core.config import get_paths, get_setting
    from hugopub.posts.images import place_cover

    paths = get_paths()
    return place_cover(cover, paths.images, paths.root, get_setting("images.static_dir", paths.root))


def _discard_copy(copied: Path | None) -> None:
    """Remove a cover copied for a post that was never written."""
    if copied is not None:
        copied.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Click command group
# ---------------------------------------------------------------------------


@click.group(name="posts")
def posts() -> None:
    """Manage blog posts.

    Posts are markdown files named YYYY-MM-DD-<slug>.md in the posts directory.
    """
    pass


# ---------------------------------------------------------------------------
# hugopub posts list
# ---------------------------------------------------------------------------


@posts.command(name="list")
@click.option("-q", "--query", default="", help="Case-insensitive search in titles")
@click.option("-p", "--page", type=int, default=1, help="Page number (clamped to range)")
@click.option("--page-size", type=int, default=None, help="Posts per page (default: from config)")
@click.option("--thumbnails", is_flag=True, help="Embed cover images as base64 in JSON output")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON object")
def list_posts(
    query: str,
    page: int,
    page_size: int | None,
    thumbnails: bool,
    as_json: bool,
) -> None:
    """List posts, newest first."""
    from hugopub.core.config import get_setting
    from hugopub.posts.models import clamp_page

    if page_size is None:
        page_size = int(get_setting("posts.page_size"))
    if page_size <= 0:
        raise click.BadParameter("--page-size must be positive")

    try:
        repo = _repository()
        result = repo.list(page=max(1, page), page_size=page_size, search=query)
        clamped = clamp_page(page, result.total_count, page_size)
        if clamped != result.page:
            result = repo.list(page=clamped, page_size=page_size, search=query)
    except PostError as e:
        _fail(e)

    if as_json:
        items = []
        for summary in result.items:
            entry = {
                "title": summary.title,
                "date": summary.date.isoformat() if summary.date else None,
                "file": summary.path.name,
                "cover_image": summary.cover_image,
            }
            if thumbnails:
                thumb = summary.cover_image_thumbnail
                entry["cover_image_thumbnail"] = (
                    base64.b64encode(thumb).decode("ascii") if thumb else None
                )
            items.append(entry)
        output = {
            "posts": items,
            "total_count": result.total_count,
            "page": result.page,
            "page_size": result.page_size,
            "total_pages": result.total_pages,
        }
        click.echo(json_module.dumps(output, indent=2, ensure_ascii=False))
        return

    if not result.items:
        console.print("[yellow]No posts found matching criteria.[/yellow]")
        return

    table = Table(
        title=f"Posts ({result.total_count}) - page {result.page}/{result.total_pages}"
    )
    table.add_column("Date", style="cyan", width=12)
    table.add_column("Title", no_wrap=False)
    table.add_column("Cover", style="dim")

    for summary in result.items:
        cover = summary.cover_image
        if cover and summary.cover_image_thumbnail is None:
            cover += " [yellow](missing)[/yellow]"
        table.add_row(
            summary.date.isoformat() if summary.date else "",
            summary.title,
            cover,
        )

    console.print(table)


# ---------------------------------------------------------------------------
# hugopub posts show
# ---------------------------------------------------------------------------


@posts.command(name="show")
@click.argument("title")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON object")
def show_post(title: str, as_json: bool) -> None:
    """Show a post's front matter and body."""
    try:
        post = _repository().load(title)
    except PostError as e:
        _fail(e)

    fm = post.front_matter
    if as_json:
        output = {
            "title": fm.title,
            "date": fm.date.isoformat() if fm.date else None,
            "description": fm.description,
            "author": fm.author,
            "tags": fm.tags,
            "weight": fm.weight,
            "cover_image": fm.cover_image,
            "file": str(post.path),
            "body": post.body,
        }
        click.echo(json_module.dumps(output, indent=2, ensure_ascii=False))
        return

    table = Table(title=fm.title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("File", str(post.path))
    table.add_row("Date", fm.date.isoformat() if fm.date else "")
    table.add_row("Description", fm.description)
    table.add_row("Author", fm.author)
    table.add_row("Tags", ", ".join(fm.tags))
    table.add_row("Weight", str(fm.weight))
    table.add_row("Cover", fm.cover_image)
    console.print(table)
    console.print()
    console.print(post.body, markup=False, highlight=False)


# ---------------------------------------------------------------------------
# hugopub posts create
# ---------------------------------------------------------------------------


@posts.command(name="create")
@click.option("--title", required=True, help="Post title")
@click.option("--body", default=None, help="Markdown body")
@click.option(
    "--body-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the markdown body from a file",
)
@click.option("--description", default="", help="Card preview text")
@click.option("--author", default=None, help="Author (default: from config)")
@click.option("-t", "--tag", multiple=True, help="Tag (can repeat or comma-separate)")
@click.option("--weight", type=int, default=1, help="Hugo ordering weight")
@click.option(
    "--cover",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Prepared cover image; copied into the image directory",
)
@click.option("--date", "date_str", default=None, help="Post date YYYY-MM-DD (default: today)")
@click.pass_obj
def create_post(
    ctx,
    title: str,
    body: str | None,
    body_file: Path | None,
    description: str,
    author: str | None,
    tag: tuple[str, ...],
    weight: int,
    cover: Path | None,
    date_str: str | None,
) -> None:
    """Publish a new post."""
    from hugopub.core.config import get_setting
    from hugopub.posts.models import FrontMatter, Post

    dry_run = ctx.dry_run if ctx else False
    content = _read_body(body, body_file) or ""
    post_date = _parse_date(date_str)

    copied = None
    try:
        repo = _repository()
        conflict = repo.duplicates.check(title)
        if conflict.is_duplicate:
            console.print(
                f"[red]A post with this title already exists: {conflict.conflicting_path}[/red]"
            )
            raise SystemExit(1)

        if dry_run:
            console.print(f"[dim]Would create post: {title}[/dim]")
            return

        cover_image = ""
        if cover is not None:
            cover_image, copied = _import_cover(cover)
        post = Post(
            front_matter=FrontMatter(
                title=title,
                date=post_date,
                description=description,
                author=author or get_setting("posts.author"),
                tags=_split_tags(tag),
                weight=weight,
                cover_image=cover_image,
            ),
            body=content,
        )
        path = repo.save(post)
    except PostError as e:
        _discard_copy(copied)
        _fail(e)

    console.print(f"[green]Created:[/green] {path}")
    console.print(f"[dim]Commit with: git add {path.name}[/dim]")


# ---------------------------------------------------------------------------
# hugopub posts edit
# ---------------------------------------------------------------------------


@posts.command(name="edit")
@click.argument("title")
@click.option("--title", "new_title", default=None, help="New title (renames the file)")
@click.option("--body", default=None, help="New markdown body")
@click.option(
    "--body-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the new markdown body from a file",
)
@click.option("--description", default=None, help="New description")
@click.option("--author", default=None, help="New author")
@click.option("-t", "--tag", multiple=True, help="Replace tags (can repeat or comma-separate)")
@click.option("--weight", type=int, default=None, help="New weight")
@click.option(
    "--cover",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="New cover image",
)
@click.option("--remove-cover", is_flag=True, help="Drop the cover image reference")
@click.pass_obj
def edit_post(
    ctx,
    title: str,
    new_title: str | None,
    body: str | None,
    body_file: Path | None,
    description: str | None,
    author: str | None,
    tag: tuple[str, ...],
    weight: int | None,
    cover: Path | None,
    remove_cover: bool,
) -> None:
    """Edit fields of an existing post."""
    dry_run = ctx.dry_run if ctx else False

    if cover and remove_cover:
        raise click.UsageError("Use either --cover or --remove-cover, not both.")

    fields: dict = {}
    if new_title is not None:
        fields["title"] = new_title
    content = _read_body(body, body_file)
    if content is not None:
        fields["body"] = content
    if description is not None:
        fields["description"] = description
    if author is not None:
        fields["author"] = author
    if tag:
        fields["tags"] = _split_tags(tag)
    if weight is not None:
        fields["weight"] = weight
    if remove_cover:
        fields["cover_image"] = ""

    if not fields and cover is None:
        console.print("[yellow]Nothing to change.[/yellow]")
        return

    copied = None
    try:
        repo = _repository()
        original_path = repo.find_path(title)

        if new_title is not None:
            conflict = repo.duplicates.check(new_title, exclude=title)
            if conflict.is_duplicate:
                console.print(
                    f"[red]A post with this title already exists: {conflict.conflicting_path}[/red]"
                )
                raise SystemExit(1)

        if dry_run:
            changed = sorted(fields) + (["cover_image"] if cover else [])
            console.print(f"[dim]Would update {original_path.name}: {', '.join(changed)}[/dim]")
            return

        if cover is not None:
            fields["cover_image"], copied = _import_cover(cover)

        _backup_post(original_path)
        path = repo.update(title, **fields)
    except PostError as e:
        _discard_copy(copied)
        _fail(e)

    if path != original_path:
        console.print(f"[green]Renamed:[/green] {original_path.name} -> {path.name}")
    else:
        console.print(f"[green]Updated:[/green] {path}")


# ---------------------------------------------------------------------------
# hugopub posts delete
# ---------------------------------------------------------------------------


@posts.command(name="delete")
@click.argument("title")
@click.option("--keep-image", is_flag=True, help="Do not delete the post's images")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def delete_post(ctx, title: str, keep_image: bool, yes: bool) -> None:
    """Delete a post with its cover and embedded upload images."""
    dry_run = ctx.dry_run if ctx else False

    try:
        repo = _repository()
        path = repo.find_path(title)

        if dry_run:
            console.print(f"[dim]Would delete: {path}[/dim]")
            return

        if not yes and not click.confirm(f"Delete {path.name}?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

        backup_path = _backup_post(path)
        repo.delete(title, keep_images=keep_image)
    except PostError as e:
        _fail(e)

    console.print(f"[green]Deleted:[/green] {path}")
    if backup_path:
        console.print(f"[dim]Backup: {backup_path}[/dim]")


# ---------------------------------------------------------------------------
# hugopub posts check
# ---------------------------------------------------------------------------


@posts.command(name="check")
@click.argument("title")
@click.option("--exclude", default=None, help="Original title of the post being edited")
def check_title(title: str, exclude: str | None) -> None:
    """Check whether a title collides with an existing post.

    Exits with status 1 when a duplicate exists.
    """
    try:
        result = _repository().duplicates.check(title, exclude=exclude)
    except PostError as e:
        _fail(e)

    if result.is_duplicate:
        console.print(f"[red]Duplicate:[/red] {result.conflicting_path}")
        raise SystemExit(1)
    console.print(f"[green]Available:[/green] {title}")


# ---------------------------------------------------------------------------
# hugopub posts url
# ---------------------------------------------------------------------------


@posts.command(name="url")
@click.argument("image_path")
@click.option("--site-root", default=None, help="Site root (default: detected)")
def image_url(image_path: str, site_root: str | None) -> None:
    """Print the site-relative URL for an image path."""
    from hugopub.content.paths import to_url
    from hugopub.core.config import DEFAULT_STATIC_DIR, get_setting, get_site_root

    static_dir = DEFAULT_STATIC_DIR
    root: str | Path | None = site_root
    if root is None:
        try:
            root = get_site_root()
            static_dir = get_setting("images.static_dir", root)
        except FileNotFoundError:
            root = None

    click.echo(to_url(image_path, root, static_dir))
