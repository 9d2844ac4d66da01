"""
Keep a GraphBuilder in sync with a vault directory.

This module provides:
- Watchdog-based file monitoring of Markdown notes
- Debounced application of changes (editor save cycles collapse to one)
- Moves handled as remove + add
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .graph.builder import GraphBuilder
from .models import note_id
from .vault.loader import load_note

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


class PendingChange:
    """Tracks a pending change for debouncing."""

    def __init__(self, kind: ChangeKind, path: Path, timestamp: float):
        self.kind = kind
        self.path = path
        self.timestamp = timestamp


class VaultGraphHandler(FileSystemEventHandler):
    """
    Applies note file changes to a session-scoped GraphBuilder.

    Events are queued per path and applied by flush_pending() once they have
    been quiet for DEBOUNCE_SECONDS.
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(
        self,
        vault_path: Path,
        builder: GraphBuilder,
        on_change: Callable[[ChangeKind, str], None] | None = None,
    ):
        super().__init__()
        self.vault_path = Path(vault_path).resolve()
        self.builder = builder
        self.on_change = on_change
        self.pending: dict[str, PendingChange] = {}
        self._lock = threading.Lock()

    def _relative(self, path: str) -> Path | None:
        """Path relative to the vault for relevant notes, else None."""
        p = Path(path)
        try:
            rel = p.resolve().relative_to(self.vault_path)
        except ValueError:
            return None
        if p.suffix.lower() != ".md" or any(part.startswith(".") for part in rel.parts):
            return None
        return rel

    def _queue(self, kind: ChangeKind, path: str) -> None:
        if self._relative(path) is None:
            return
        with self._lock:
            self.pending[path] = PendingChange(kind, Path(path), time.time())

    def node_id_for(self, path: Path) -> str | None:
        rel = self._relative(str(path))
        if rel is None:
            return None
        folder = rel.parent.as_posix()
        return note_id(rel.stem, None if folder in ("", ".") else folder)

    def flush_pending(self, *, force: bool = False) -> int:
        """Apply changes past the debounce window (all of them with force=True).

        Returns the number of changes applied.
        """
        now = time.time()
        with self._lock:
            ready = [
                (key, change)
                for key, change in self.pending.items()
                if force or now - change.timestamp >= self.DEBOUNCE_SECONDS
            ]
            for key, _ in ready:
                del self.pending[key]

        for _, change in ready:
            self._apply(change)
        return len(ready)

    def _apply(self, change: PendingChange) -> None:
        node = self.node_id_for(change.path)
        if node is None:
            return

        if change.kind == ChangeKind.UPSERT and change.path.exists():
            try:
                note = load_note(change.path.resolve(), self.vault_path)
            except Exception as e:
                logger.warning("Failed to reload %s: %s", change.path, e)
                return
            self.builder.add_note(note)
            kind = ChangeKind.UPSERT
        else:
            self.builder.remove_note(node)
            kind = ChangeKind.DELETE

        logger.debug("Applied %s for %s", kind.value, node)
        if self.on_change:
            self.on_change(kind, node)

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._queue(ChangeKind.UPSERT, event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._queue(ChangeKind.UPSERT, event.src_path)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if not event.is_directory:
            self._queue(ChangeKind.DELETE, event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        self._queue(ChangeKind.DELETE, event.src_path)
        self._queue(ChangeKind.UPSERT, event.dest_path)


def watch_vault(
    vault_path: Path,
    builder: GraphBuilder,
    on_change: Callable[[ChangeKind, str], None] | None = None,
    recursive: bool = True,
) -> tuple[Observer, VaultGraphHandler]:
    """
    Start watching a vault; caller should call observer.stop() to stop watching.
    """
    handler = VaultGraphHandler(vault_path, builder, on_change=on_change)
    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=recursive)
    observer.start()
    return observer, handler


def run_watch_loop(
    vault_path: Path,
    builder: GraphBuilder,
    on_change: Callable[[ChangeKind, str], None] | None = None,
) -> None:
    """Block, applying changes until interrupted."""
    observer, handler = watch_vault(vault_path, builder, on_change=on_change)
    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
