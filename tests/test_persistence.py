"""Tests for snapshot documents and file fallback."""

import json
from pathlib import Path

import pytest

from bureau.models import EdgeMode, GraphState, NodeKind, Studio, ViewMode
from bureau.persistence import (
    SnapshotError,
    from_document,
    load_snapshot,
    parse_document,
    read_document,
    save_snapshot,
    to_document,
)
from bureau.store import AddNode, Connect, GraphStore, Select, SetEdgeMode, SetViewMode


def test_document_round_trip(atlas, apply):
    state = apply(SetViewMode(ViewMode.TIMELINE), SetEdgeMode(EdgeMode.BEZIER))

    document = json.loads(json.dumps(to_document(state, saved_at="2026-03-02T09:00:00+00:00")))

    assert document["version"] == 1
    assert document["saved_at"] == "2026-03-02T09:00:00+00:00"
    assert parse_document(document) == state


def test_selection_is_not_persisted(atlas, apply):
    state = apply(Select(node_id="p1"))

    document = to_document(state)

    assert "selection" not in document
    assert parse_document(document).selection.node_id is None


def test_alias_document_shape(atlas):
    document = to_document(atlas)
    alias = next(n for n in document["nodes"] if n["id"] == "a1")

    assert alias["data"]["kind"] == "alias"
    assert alias["data"]["resource_id"] == "r1"
    assert alias["data"]["fee_mode"] == "fixed"
    assert document["resources"][0]["compensation"] == "external"


@pytest.mark.parametrize(
    "document",
    [
        None,
        [],
        {"nodes": [], "edges": []},
        {"version": 2, "nodes": [], "edges": []},
        {"version": 1, "nodes": "nope", "edges": []},
        {"version": 1, "nodes": [{"id": "x", "data": {"kind": "spaceship"}}], "edges": []},
        {"version": 1, "nodes": [{"id": "b", "data": {"kind": "budget", "design_amount": "a lot"}}], "edges": []},
        {"version": 1, "nodes": [], "edges": [{"id": "e1", "source": "a"}]},
        {"version": 1, "nodes": [], "edges": [], "view_mode": "gantt"},
        {"version": 1, "nodes": [{"id": "b", "data": {"kind": "budget", "design_amount": 10**400}}], "edges": []},
        {"version": 1, "nodes": [{"id": "b", "position": {"x": 10**400}, "data": {"kind": "budget"}}], "edges": []},
        {"version": 1, "nodes": [], "edges": [{"id": "e1", "source": "a", "target": "b", "assignment": "yes"}]},
        {"version": 1, "nodes": [], "edges": [{"id": "e1", "source": "a", "target": "b", "source_handle": 7}]},
        {"version": 1, "nodes": [], "edges": [{"id": "e1", "source": "a", "target": "b", "stroke_width": True}]},
    ],
)
def test_invalid_documents_are_rejected_whole(document):
    with pytest.raises(SnapshotError):
        parse_document(document)
    assert from_document(document) is None


def test_missing_studio_is_repaired():
    document = {
        "version": 1,
        "nodes": [
            {"id": "p1", "position": {"x": 0, "y": 0}, "data": {"kind": "project", "title": "Old"}},
            {"id": "b1", "position": {"x": 10, "y": 0}, "data": {"kind": "budget", "studio": ""}},
        ],
        "edges": [],
    }

    state = parse_document(document)

    assert state.node("p1").data.studio is Studio.ANTINOMY
    assert state.node("b1").data.studio is Studio.ANTINOMY
    assert state.resources == ()
    assert state.kind_of("b1") is NodeKind.BUDGET


def test_file_round_trip_and_fallback(tmp_path: Path, atlas):
    path = tmp_path / "nested" / "bureau.json"

    save_snapshot(path, atlas, saved_at="2026-03-02T09:00:00+00:00")
    assert load_snapshot(path) == atlas

    path.write_text("{not json", encoding="utf-8")
    assert load_snapshot(path) == GraphState()
    assert load_snapshot(tmp_path / "missing.json") == GraphState()


def test_undecodable_file_falls_back(tmp_path: Path):
    path = tmp_path / "bureau.json"
    path.write_bytes(b'{"version": 1, "title": "\xff\xfe"}')

    assert read_document(path) is None
    assert load_snapshot(path) == GraphState()


def test_hydrated_edges_without_markers_still_limit_assignments(atlas, ctx):
    document = json.loads(json.dumps(to_document(atlas)))
    for edge in document["edges"]:
        edge.pop("assignment", None)
    store = GraphStore(context=ctx)
    assert store.hydrate(document)
    assert store.dispatch(AddNode(NodeKind.PROJECT, "p2"))

    assert not store.dispatch(Connect("a1", "p2", "project-out", "dev"))
    assert [e.id for e in store.state.edges if e.source == "a1"] == ["e-a1-p1"]


def test_hydrate_rejects_out_of_range_numbers(atlas, ctx):
    document = to_document(atlas)
    budget = next(n for n in document["nodes"] if n["id"] == "b1")
    budget["data"]["design_amount"] = 10**400
    store = GraphStore(context=ctx)

    assert not store.hydrate(document)
    assert store.state == GraphState()
