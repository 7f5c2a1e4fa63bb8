"""
Post backup CLI commands.

``posts edit`` and ``posts delete`` copy the post file into
.hugopub/backups/posts first; these commands browse, restore and expire
those copies.
"""

from __future__ import annotations

import shutil

import click
from rich.console import Console
from rich.table import Table

from hugopub.core.backup import expired_backups, list_backups, prune_backups
from hugopub.core.config import get_paths, get_setting

console = Console()


def _format_age(days: float) -> str:
    """Compact relative age: 14m, 5h, 3d, 2w, 4mo."""
    minutes = days * 24 * 60
    if minutes < 60:
        return f"{int(minutes)}m ago"
    if days < 1:
        return f"{int(minutes // 60)}h ago"
    if days < 7:
        return f"{int(days)}d ago"
    if days < 30:
        return f"{int(days // 7)}w ago"
    return f"{int(days // 30)}mo ago"


def _retention(days: int | None, keep: int | None) -> tuple[int, int]:
    root = get_paths().root
    if days is None:
        days = int(get_setting("backup.keep_days", root))
    if keep is None:
        keep = int(get_setting("backup.keep_count", root))
    return days, keep


@click.group()
def backup():
    """Browse and restore post backups."""
    pass


@backup.command(name="list")
@click.option("--post", "post_name", default=None, help="Only backups of this file stem")
@click.option("-n", "--limit", type=int, default=20, help="Rows to show")
@click.option("--all", "show_all", is_flag=True, help="Show every backup")
def list_cmd(post_name: str | None, limit: int, show_all: bool):
    """List backups, newest first."""
    backups = list_backups(get_paths().post_backups, post_name)
    if not backups:
        console.print("[dim]No backups found[/dim]")
        return

    shown = backups if show_all else backups[:limit]

    table = Table(title=f"Post backups ({len(backups)})", header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Post")
    table.add_column("Taken", style="green")
    table.add_column("Age", style="yellow", justify="right")
    table.add_column("Size", justify="right")
    for index, item in enumerate(shown):
        table.add_row(
            str(index),
            item.post_name,
            f"{item.created:%Y-%m-%d %H:%M:%S}",
            _format_age(item.age_days),
            item.size_label,
        )
    console.print(table)

    if len(shown) < len(backups):
        console.print(f"[dim]{len(backups) - len(shown)} older backups hidden, use --all[/dim]")


@backup.command(name="restore")
@click.argument("post_name")
@click.option("--index", "backup_index", type=int, default=0, help="Which backup, 0 = newest")
@click.option("--force", "-f", is_flag=True, help="Overwrite the current post file")
def restore_cmd(post_name: str, backup_index: int, force: bool):
    """Copy a backup back into the posts directory.

    POST_NAME is the post's file stem, e.g. 2024-01-01-Hello-World.
    """
    paths = get_paths()
    backups = list_backups(paths.post_backups, post_name)
    if not backups:
        console.print(f"[red]No backups found for {post_name}[/red]")
        raise SystemExit(1)
    if not 0 <= backup_index < len(backups):
        console.print(f"[red]Backup index {backup_index} out of range (0-{len(backups) - 1})[/red]")
        raise SystemExit(1)

    chosen = backups[backup_index]
    target = paths.posts / f"{post_name}.md"
    if target.exists() and not force:
        console.print(f"[yellow]{target.name} exists. Use --force to overwrite.[/yellow]")
        raise SystemExit(1)

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(chosen.path, target)
    console.print(f"[green]Restored[/green] {target.name} [dim]from {chosen.path.name}[/dim]")


@backup.command(name="clean")
@click.option("--days", type=int, default=None, help="Expire backups older than this (default: config)")
@click.option("--keep", type=int, default=None, help="Newest backups always kept (default: config)")
@click.option("--dry-run", "-n", is_flag=True, help="Only report what would be removed")
def clean_cmd(days: int | None, keep: int | None, dry_run: bool):
    """Delete backups outside the retention policy."""
    days, keep = _retention(days, keep)
    backup_dir = get_paths().post_backups

    if dry_run:
        doomed = expired_backups(list_backups(backup_dir), keep_count=keep, keep_days=days)
        for item in doomed:
            console.print(f"[dim]Would remove {item.path.name}[/dim]")
        console.print(f"[yellow]Dry run: {len(doomed)} backups would be removed[/yellow]")
        return

    removed = prune_backups(backup_dir, keep_count=keep, keep_days=days)
    console.print(f"[green]Removed {len(removed)} backups[/green]")
