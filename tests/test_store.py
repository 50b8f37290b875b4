"""Tests for the GraphStore container."""

from bureau.journal import MutationJournal
from bureau.models import GraphState, NodeKind
from bureau.persistence import SNAPSHOT_VERSION
from bureau.store import AddNode, DeleteNode, GraphStore, RenameNode, apply_command


def test_listeners_see_each_commit_once(store):
    seen: list[GraphState] = []
    unsubscribe = store.subscribe(seen.append)

    assert store.dispatch(AddNode(NodeKind.PROJECT, "p1"))
    assert not store.dispatch(DeleteNode("missing"))
    assert len(seen) == 1
    assert seen[0] is store.state

    unsubscribe()
    store.dispatch(AddNode(NodeKind.PROJECT, "p2"))
    assert len(seen) == 1


def test_snapshots_are_never_mutated(atlas, store):
    held = store.state

    store.dispatch(RenameNode("p1", "Renamed"))

    assert held.node("p1").title == "Atlas"
    assert store.state.node("p1").title == "Renamed"


def test_apply_command_returns_same_object_for_noop(ctx):
    state = GraphState()
    assert apply_command(state, DeleteNode("missing"), ctx) is state


def test_hydrate_and_reset(atlas, store):
    document = store.export()
    assert document["version"] == SNAPSHOT_VERSION

    fresh = GraphStore()
    seen = []
    fresh.subscribe(seen.append)
    assert fresh.hydrate(document)
    assert fresh.state.node("b1").title == "Atlas — Budget"
    assert len(seen) == 1

    assert not fresh.hydrate({"version": 99, "nodes": [], "edges": []})
    assert fresh.state == GraphState()

    store.reset()
    assert store.state.nodes == ()


def test_committed_commands_are_journaled(tmp_path, ctx):
    journal = MutationJournal(tmp_path / ".bureau" / "journal.jsonl")
    store = GraphStore(context=ctx, journal=journal)

    store.dispatch(AddNode(NodeKind.PROJECT, "p1"))
    store.dispatch(DeleteNode("missing"))
    store.dispatch(DeleteNode("p1"))

    entries = journal.read()
    assert [e.command for e in entries] == ["AddNode", "DeleteNode"]
    assert entries[0].created.nodes == ["p1"]
    assert entries[1].erased.nodes == ["p1"]
