"""
Main CLI dispatcher for hugopub.

Usage:
    hugopub init                         # Initialize .hugopub/ directory
    hugopub posts [list|show|create|edit|delete|check|url]
    hugopub config [show|get|set|reset|path]
    hugopub backup [list|restore|clean]
"""

from pathlib import Path

import click
from rich.console import Console

from hugopub import __version__
from hugopub.core.log import configure_logging

console = Console()

GITIGNORE_BLOCK = "\n# hugopub post backups\n{entry}\n"


class Context:
    """Global flags handed to every subcommand through ``ctx.obj``."""

    def __init__(self, verbose: bool = False, dry_run: bool = False):
        self.verbose = verbose
        self.dry_run = dry_run


def _ignore_backups(site_root: Path, entry: str, dry_run: bool) -> bool:
    """Append ``entry`` to an existing .gitignore; True if it was missing."""
    gitignore = site_root / ".gitignore"
    if not gitignore.is_file() or entry in gitignore.read_text(encoding="utf-8").splitlines():
        return False
    if not dry_run:
        with gitignore.open("a", encoding="utf-8") as handle:
            handle.write(GITIGNORE_BLOCK.format(entry=entry))
    return True


@click.group()
@click.version_option(version=__version__, prog_name="hugopub")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output from the post store")
@click.option("-n", "--dry-run", is_flag=True, help="Report what would change without writing")
@click.pass_context
def main(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Hugo post publishing tools.

    Compose, edit, list and delete posts of a Hugo static site.
    """
    ctx.obj = Context(verbose=verbose, dry_run=dry_run)
    configure_logging(verbose)

    if dry_run:
        console.print("[yellow]Dry run: nothing will be written[/yellow]")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Run again over an existing .hugopub/ directory")
@click.pass_obj
def init(ctx, force: bool) -> None:
    """Prepare a Hugo site for hugopub.

    Creates .hugopub/ in the site root along with the posts and image
    directories if they are missing.
    """
    from hugopub.core.config import META_DIR, get_paths, get_site_root

    dry_run = ctx.dry_run if ctx else False

    try:
        site_root = get_site_root()
    except FileNotFoundError:
        # No .hugopub/ anywhere above: the working directory becomes the site
        site_root = Path.cwd()

    paths = get_paths(site_root)
    if paths.meta_dir.exists() and not force:
        console.print(f"[yellow]{META_DIR}/ already exists in {site_root}[/yellow]")
        console.print("[dim]Pass --force to create any missing directories.[/dim]")
        return

    console.print(f"[cyan]Setting up {site_root}[/cyan]")
    for directory in (paths.meta_dir, paths.post_backups, paths.posts, paths.images):
        if not dry_run:
            directory.mkdir(parents=True, exist_ok=True)
        shown = directory.relative_to(site_root) if directory.is_relative_to(site_root) else directory
        console.print(f"  [green]+[/green] {shown}/")

    entry = f"{META_DIR}/backups/"
    if _ignore_backups(site_root, entry, dry_run):
        console.print(f"  [green]+[/green] {entry} in .gitignore")

    if dry_run:
        console.print("[yellow]Dry run: no directories were created[/yellow]")
    else:
        console.print("[green]Ready.[/green] Try 'hugopub posts create'.")


# Command groups attach to main once it exists
from hugopub.backup.commands import backup  # noqa: E402
from hugopub.config.commands import config  # noqa: E402
from hugopub.posts.commands import posts  # noqa: E402

main.add_command(posts)
main.add_command(config)
main.add_command(backup)


if __name__ == "__main__":
    main()
