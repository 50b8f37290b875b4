"""Tests for the snapshot watcher's debounce and reload logic."""

import time
from pathlib import Path

from watchdog.events import FileModifiedEvent, FileMovedEvent

from bureau.models import GraphState
from bureau.persistence import save_snapshot
from bureau.store import RenameNode, apply_command
from bureau.watcher import SnapshotEventHandler


def test_reload_after_debounce(tmp_path: Path, atlas, ctx):
    path = tmp_path / "bureau.json"
    save_snapshot(path, atlas, saved_at="2026-03-02T09:00:00+00:00")
    loaded: list[GraphState] = []
    handler = SnapshotEventHandler(path, loaded.append)

    renamed = apply_command(atlas, RenameNode("p1", "Atlas Prime"), ctx)
    save_snapshot(path, renamed, saved_at="2026-03-02T09:05:00+00:00")
    handler.on_any_event(FileModifiedEvent(str(path)))

    assert not handler.flush_pending(now=time.time())
    assert handler.flush_pending(now=time.time() + 1)
    assert len(loaded) == 1
    assert loaded[0].node("p1").title == "Atlas Prime"

    # Nothing pending, then an event with identical content.
    assert not handler.flush_pending(now=time.time() + 1)
    handler.on_any_event(FileModifiedEvent(str(path)))
    assert not handler.flush_pending(now=time.time() + 1)
    assert len(loaded) == 1


def test_ignores_other_files_but_follows_renames_onto_snapshot(tmp_path: Path, atlas):
    path = tmp_path / "bureau.json"
    loaded: list[GraphState] = []
    handler = SnapshotEventHandler(path, loaded.append)

    other = tmp_path / "notes.txt"
    other.write_text("hello", encoding="utf-8")
    handler.on_any_event(FileModifiedEvent(str(other)))
    assert handler.pending_since is None

    # Editors often write a temp file and rename it into place.
    tmp = tmp_path / "bureau.json.tmp"
    save_snapshot(tmp, atlas, saved_at="2026-03-02T09:00:00+00:00")
    tmp.replace(path)
    handler.on_any_event(FileMovedEvent(str(tmp), str(path)))

    assert handler.flush_pending(now=time.time() + 1)
    assert loaded[0].node("p1").title == "Atlas"
