"""Registry edits and the mutation journal."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape

from ..config import BureauConfig
from ..journal import MutationJournal, format_entry
from ..models import Compensation, Dept, GraphState
from ..persistence import SnapshotError, parse_document, read_document, save_snapshot
from ..store import AddResource, Command, DeleteResource, GraphStore, ReducerContext


def load_for_edit(config: BureauConfig) -> GraphState:
    """Current graph for a command that will write the snapshot back.

    A missing file starts an empty graph. A file that exists but cannot be
    read or parsed raises SnapshotError so it is never overwritten.
    """
    path = config.snapshot
    if not path.exists():
        return GraphState()
    document = read_document(path)
    if document is None:
        raise SnapshotError(f"could not read {path}")
    return parse_document(document)


def _commit(config: BureauConfig, command: Command) -> tuple[GraphState, GraphState]:
    """Dispatch one command and save on commit. Returns (before, after)."""
    before = load_for_edit(config)
    store = GraphStore(
        before,
        context=ReducerContext(tuning=config.dock, default_studio=config.default_studio),
        journal=MutationJournal(config.journal),
    )
    if store.dispatch(command):
        save_snapshot(config.snapshot, store.state)
    return before, store.state


def run_resource_add(
    config: BureauConfig,
    name: str,
    *,
    dept: str = Dept.UNASSIGNED.value,
    external: bool = False,
    resource_id: str | None = None,
) -> int:
    console = Console(stderr=True)
    fields = {
        "dept": dept,
        "entity": config.default_studio,
        "compensation": Compensation.EXTERNAL if external else Compensation.FULL_TIME,
    }
    try:
        before, after = _commit(config, AddResource(name, resource_id=resource_id, fields=fields))
    except SnapshotError as exc:
        console.print(f"Refusing to edit snapshot: {escape(str(exc))}", style="bold red")
        return 1
    if after is before:
        console.print("Resource not added (empty name or duplicate id)", style="yellow")
        return 1
    added = after.resources[-1]
    console.print(f"Added {escape(added.name)} as {escape(added.id)}", style="green")
    return 0


def run_resource_remove(config: BureauConfig, resource_id: str) -> int:
    """Delete a registry record; its aliases and their edges go with it."""
    console = Console(stderr=True)
    try:
        before, after = _commit(config, DeleteResource(resource_id))
    except SnapshotError as exc:
        console.print(f"Refusing to edit snapshot: {escape(str(exc))}", style="bold red")
        return 1
    if after is before:
        console.print(f"Resource not found: {escape(resource_id)}", style="bold red")
        return 1
    nodes = len(before.nodes) - len(after.nodes)
    edges = len(before.edges) - len(after.edges)
    console.print(f"Removed {escape(resource_id)} ({nodes} aliases, {edges} edges)", style="green")
    return 0


def run_journal(config: BureauConfig, *, last_n: int | None = None, output_json: bool = False) -> int:
    """Show journal entries. Returns the number displayed."""
    entries = MutationJournal(config.journal).read(last_n)

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return len(entries)

    console = Console()
    if not entries:
        console.print("[dim]No journal entries.[/dim]")
        return 0
    for entry in entries:
        console.print(format_entry(entry), highlight=False, markup=False)
    return len(entries)
