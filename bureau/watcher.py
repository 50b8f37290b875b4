"""
Snapshot file watcher.

Watches the directory holding a snapshot document and, once writes have
settled, reloads it and hands the fresh GraphState to a callback. Editors
and the app itself tend to save in bursts (write, rename, touch), so
events are debounced and unchanged content is ignored.
"""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .models import GraphState
from .persistence import load_snapshot

log = logging.getLogger(__name__)


def file_digest(path: Path) -> str | None:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


class SnapshotEventHandler(FileSystemEventHandler):
    """
    Reloads one snapshot file when it changes.

    Key behaviors:
    - Only events touching the snapshot path count (including a rename onto it)
    - Debounces rapid writes
    - Skips reloads when the content digest is unchanged
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(
        self,
        snapshot_path: Path,
        on_change: Callable[[GraphState], None],
    ):
        super().__init__()
        self.snapshot_path = snapshot_path.resolve()
        self.on_change = on_change
        self.pending_since: float | None = None
        self.last_digest: str | None = file_digest(self.snapshot_path)

    def _is_snapshot(self, path: str | bytes | None) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).resolve() == self.snapshot_path

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        dest = getattr(event, "dest_path", None)
        if self._is_snapshot(event.src_path) or self._is_snapshot(dest):
            self.pending_since = time.time()

    def flush_pending(self, now: float | None = None) -> bool:
        """Reload if the debounce window has passed. True if a reload fired."""
        if self.pending_since is None:
            return False
        now = time.time() if now is None else now
        if now - self.pending_since < self.DEBOUNCE_SECONDS:
            return False
        self.pending_since = None

        digest = file_digest(self.snapshot_path)
        if digest == self.last_digest:
            return False
        self.last_digest = digest

        log.debug("snapshot changed: %s", self.snapshot_path)
        self.on_change(load_snapshot(self.snapshot_path))
        return True


def watch_snapshot(
    snapshot_path: Path,
    on_change: Callable[[GraphState], None],
) -> tuple[Observer, SnapshotEventHandler]:
    """
    Start watching a snapshot file.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = SnapshotEventHandler(snapshot_path, on_change)
    observer = Observer()
    observer.schedule(handler, str(snapshot_path.resolve().parent), recursive=False)
    observer.start()
    return observer, handler


def run_watch_loop(
    snapshot_path: Path,
    on_change: Callable[[GraphState], None],
) -> None:
    """Block until interrupted, flushing pending reloads periodically."""
    observer, handler = watch_snapshot(snapshot_path, on_change)
    try:
        while True:
            time.sleep(0.25)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
