"""
Site settings CLI commands.

Settings live in .hugopub/config.yaml as nested YAML sections addressed by
dotted keys (``posts.author`` is ``posts: {author: ...}``). Anything not set
there falls back to the defaults in :mod:`hugopub.core.config`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from hugopub.core.config import DEFAULTS, get_paths, load_site_config, lookup

console = Console()


@dataclass(frozen=True)
class Setting:
    """A known site setting."""

    key: str
    kind: type
    help: str
    minimum: int | None = None

    @property
    def default(self) -> Any:
        return DEFAULTS[self.key]

    def coerce(self, raw: str) -> Any:
        """Convert a command-line string to this setting's type.

        Raises:
            click.BadParameter: If the value has the wrong type or range.
        """
        if self.kind is int:
            try:
                value = int(raw)
            except ValueError:
                raise click.BadParameter(f"Invalid value {raw!r}: {self.key} expects an integer")
            if self.minimum is not None and value < self.minimum:
                raise click.BadParameter(f"Invalid value {value}: {self.key} must be >= {self.minimum}")
            return value
        if not raw.strip():
            raise click.BadParameter(f"Invalid value: {self.key} cannot be empty")
        return raw


SETTINGS = [
    Setting("posts.dir", str, "Posts directory, relative to the site root"),
    Setting("posts.author", str, "Author written into new posts"),
    Setting("posts.page_size", int, "Posts per page in 'posts list'", minimum=1),
    Setting("images.dir", str, "Where --cover images are copied"),
    Setting("images.static_dir", str, "Folder Hugo serves from the site root"),
    Setting("backup.keep_count", int, "Newest post backups always kept", minimum=0),
    Setting("backup.keep_days", int, "Older post backups expire after this many days", minimum=0),
]
CONFIG_SCHEMA: dict[str, Setting] = {s.key: s for s in SETTINGS}


# ---------------------------------------------------------------------------
# File access
# ---------------------------------------------------------------------------


def get_config_path() -> Path:
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    """Raw contents of the site config file (empty if missing)."""
    return load_site_config(get_paths().root)


def save_config(config: dict[str, Any]) -> None:
    """Write the site config file, dropping it entirely when empty."""
    path = get_config_path()
    if not config:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config, default_flow_style=False, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )


def get_config_value(key: str, default: Any = None) -> Any:
    return lookup(load_config(), key, default)


def set_config_value(key: str, value: Any) -> None:
    """Store ``value`` under a dotted key, creating sections as needed."""
    config = load_config()
    *sections, name = key.split(".")
    node = config
    for section in sections:
        child = node.get(section)
        if not isinstance(child, dict):
            child = node[section] = {}
        node = child
    node[name] = value
    save_config(config)


def unset_config_value(key: str) -> bool:
    """Remove a dotted key, pruning sections left empty.

    Returns:
        True if the key was present.
    """
    config = load_config()
    *sections, name = key.split(".")
    trail = [config]
    for section in sections:
        child = trail[-1].get(section)
        if not isinstance(child, dict):
            return False
        trail.append(child)

    if name not in trail[-1]:
        return False
    del trail[-1][name]

    for section, parent in zip(reversed(sections), reversed(trail[:-1])):
        if not parent[section]:
            del parent[section]
    save_config(config)
    return True


def _require_known(key: str) -> Setting:
    setting = CONFIG_SCHEMA.get(key)
    if setting is None:
        console.print(f"[red]Unknown setting: {key}[/red]")
        console.print("Known settings: " + ", ".join(CONFIG_SCHEMA))
        raise SystemExit(1)
    return setting


# ---------------------------------------------------------------------------
# Click command group
# ---------------------------------------------------------------------------


@click.group()
def config():
    """View and change site settings (.hugopub/config.yaml)."""
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Include settings left at their default")
def show_cmd(show_all: bool):
    """Show site settings.

    Only settings changed from their default are listed unless --all is given.
    """
    stored = load_config()
    rows = []
    for setting in SETTINGS:
        value = lookup(stored, setting.key)
        if value is not None and value != setting.default:
            rows.append((setting, str(value), "site"))
        elif show_all:
            rows.append((setting, str(setting.default), "default"))

    if not rows:
        console.print("[dim]Every setting is at its default. Using defaults.[/dim]")
        console.print("[dim]Run 'hugopub config show --all' to list them.[/dim]")
        return

    table = Table(title="Configuration", header_style="bold cyan")
    table.add_column("Key")
    table.add_column("Value", style="green")
    table.add_column("From", style="dim")
    table.add_column("Meaning", style="dim")
    for setting, value, source in rows:
        table.add_row(setting.key, value, source, setting.help)
    console.print(table)
    console.print(f"[dim]Config file: {get_config_path()}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Print one setting, e.g. ``hugopub config get posts.author``."""
    setting = _require_known(key)
    value = get_config_value(key)
    if value is None:
        console.print(f"{key} = {setting.default} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Change one setting, e.g. ``hugopub config set posts.page_size 10``."""
    setting = _require_known(key)
    typed = setting.coerce(value)
    set_config_value(key, typed)
    console.print(f"[green]{key} = {typed}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Delete the whole config file")
@click.option("--force", "-f", is_flag=True, help="Do not ask for confirmation")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Return KEY (or, with --all, every setting) to its default."""
    if reset_all:
        if not force and not click.confirm("Reset every setting to its default?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        save_config({})
        console.print("[green]All settings reset to defaults[/green]")
        return

    if not key:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        raise SystemExit(1)

    setting = _require_known(key)
    if unset_config_value(key):
        console.print(f"[green]Reset {key} to default ({setting.default})[/green]")
    else:
        console.print(f"[dim]{key} is already at default[/dim]")


@config.command(name="path")
def path_cmd():
    """Print the location of the site config file."""
    click.echo(str(get_config_path()))
