"""Rich-based output formatters and logging setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from gardena_bridge.models import Device, Location, StateEntry

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Route all log records through a RichHandler on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _entry_label(entry: StateEntry) -> str:
    parts = [f"[bold]{entry.path.name}[/bold] = {entry.value!r}"]
    tags: list[str] = [entry.type.value]
    if entry.writable:
        tags.append("[green]rw[/green]")
    if not entry.ack:
        tags.append("[yellow]pending[/yellow]")
    parts.append(f"[dim]({', '.join(tags)})[/dim]")
    return " ".join(parts)


def render_state_tree(entries: list[StateEntry], title: str = "state") -> None:
    """Render flat entries as a tree of their path segments."""
    root = Tree(f"[bold magenta]{title}[/bold magenta]")
    branches: dict[tuple[str, ...], Tree] = {(): root}
    for entry in entries:
        segments = tuple(str(s) for s in entry.path)
        for depth in range(1, len(segments)):
            key = segments[:depth]
            if key not in branches:
                branches[key] = branches[segments[:depth - 1]].add(f"[blue]{segments[depth - 1]}[/blue]")
        branches[segments[:-1]].add(_entry_label(entry))
    console.print(root)


def render_locations(locations: list[Location]) -> None:
    table = Table(title="GARDENA Locations")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Position", style="dim")
    table.add_column("Devices", justify="right")
    for location in locations:
        geo = location.geo_position
        position = ""
        if "latitude" in geo or "longitude" in geo:
            position = f"{geo.get('latitude', '?')}, {geo.get('longitude', '?')}"
        table.add_row(location.id, location.name or "", position, str(len(location.device_ids)))
    console.print(table)


def render_devices(devices: list[Device]) -> None:
    table = Table(title="GARDENA Devices")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category", style="cyan")
    table.add_column("Location", style="dim")
    for device in sorted(devices, key=lambda d: d.name or d.id):
        table.add_row(device.id, device.name or "", device.category or "", device.location_id)
    console.print(table)


def print_info(msg: str) -> None:
    console.print(f"[bold blue]INFO[/bold blue] {msg}")


def print_warn(msg: str) -> None:
    console.print(f"[bold yellow]WARN[/bold yellow] {msg}")


def print_ok(msg: str) -> None:
    console.print(f"[bold green] OK [/bold green] {msg}")


def print_error(msg: str) -> None:
    console.print(f"[bold red]ERROR[/bold red] {msg}")
