"""Watch command - keep the graph current while notes change."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import EngineConfig
from ..watcher import ChangeKind, run_watch_loop
from .graph_cmd import load_builder


def run_watch(vault_path: Path, config: EngineConfig) -> int:
    """
    Index the vault, then re-index notes as they change.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    builder = load_builder(vault_path, config)

    stats = builder.stats()
    console.print(f"[bold]Watching[/bold] {vault_path}")
    console.print(f"  Notes: {stats.total_notes}  Links: {stats.total_links}  Orphans: {stats.orphan_count}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    change_count = 0

    def on_change(kind: ChangeKind, node_id: str) -> None:
        nonlocal change_count
        change_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        marker = "~" if kind == ChangeKind.UPSERT else "-"
        current = builder.stats()
        console.print(
            f"[dim]{timestamp}[/dim] {marker} {node_id}  "
            f"[dim]({current.total_notes} notes, {current.total_links} links)[/dim]"
        )

    try:
        run_watch_loop(vault_path, builder, on_change=on_change)
    except KeyboardInterrupt:
        pass
    console.print()
    console.print(f"[bold]Stopped.[/bold] Applied {change_count} changes.")
    return 0
