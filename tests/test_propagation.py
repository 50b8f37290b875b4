"""Tests for post-commit propagation: registry sync, cascades and auto-titles."""

from bureau.models import DEPT_COLOURS, Dept, NodeKind, Selection, Studio
from bureau.store import (
    AddNode,
    AddResource,
    Connect,
    DeleteNode,
    DeleteResource,
    PlaceResource,
    RenameNode,
    Select,
    UpdateNode,
    UpdateResource,
)


def test_deleting_a_resource_removes_every_alias_in_one_step(apply, store):
    apply(
        AddNode(NodeKind.PROJECT, "p1"),
        AddNode(NodeKind.PROJECT, "p2"),
        AddResource("Ada Lovelace", resource_id="r1"),
        PlaceResource("r1", node_id="a1"),
        PlaceResource("r1", node_id="a2"),
        Connect("a1", "p1", "project-out", "design", edge_id="e1"),
        Connect("a2", "p2", "project-out", "dev", edge_id="e2"),
        Select(node_id="a1"),
    )
    seen = []
    store.subscribe(seen.append)

    assert store.dispatch(DeleteResource("r1"))

    state = store.state
    assert len(seen) == 1
    assert state.resources == ()
    assert state.node("a1") is None and state.node("a2") is None
    assert state.edges == ()
    assert state.selection == Selection()
    assert [n.id for n in state.nodes] == ["p1", "p2"]


def test_registry_edits_flow_into_aliases_and_edges(atlas, apply):
    state = apply(UpdateResource("r1", {"name": "Augusta Ada King", "dept": "ops"}))

    alias = state.node("a1").data
    assert alias.title == "Augusta"
    assert alias.full_name == "Augusta Ada King"
    assert alias.dept is Dept.OPS
    assert alias.color == DEPT_COLOURS[Dept.OPS]
    assert state.edge("e-a1-p1").color == DEPT_COLOURS[Dept.OPS]


def test_becoming_full_time_clears_billing(atlas, apply):
    state = apply(UpdateNode("a1", {"bill_to_budget_id": "b1"}))
    assert state.node("a1").data.bill_to_budget_id == "b1"

    state = apply(UpdateResource("r1", {"compensation": "full_time"}))

    alias = state.node("a1").data
    assert alias.bill_to_budget_id is None
    assert alias.fee_value == 0


def test_becoming_external_clears_timeline_link(apply):
    state = apply(
        AddResource("Grace Hopper", resource_id="r1"),
        PlaceResource("r1", node_id="a1"),
        AddNode(NodeKind.TIMELINE, "t1"),
        UpdateNode("a1", {"timeline_id": "t1"}),
    )
    assert state.node("a1").data.timeline_id == "t1"

    state = apply(UpdateResource("r1", {"compensation": "external"}))

    assert state.node("a1").data.timeline_id is None


def test_stale_references_are_cleared(atlas, apply):
    state = apply(UpdateNode("a1", {"bill_to_budget_id": "b1"}))
    assert state.node("a1").data.bill_to_budget_id == "b1"

    state = apply(DeleteNode("b1"))
    assert state.node("a1").data.bill_to_budget_id is None


def test_person_colour_follows_department(apply):
    state = apply(
        AddNode(NodeKind.PERSON, "ann"),
        AddNode(NodeKind.PROJECT, "p1"),
        Connect("ann", "p1", "project-out", "dev", edge_id="e1"),
        UpdateNode("ann", {"dept": "dev"}),
    )

    assert state.node("ann").data.color == DEPT_COLOURS[Dept.DEV]
    assert state.edge("e1").color == DEPT_COLOURS[Dept.DEV]


def test_internal_person_fee_is_forced_to_zero(apply, store):
    apply(AddNode(NodeKind.PERSON, "ann", fields={"external_fee": 500}))
    assert store.state.node("ann").data.external_fee == 0

    # Normalized straight back: nothing to commit.
    assert not store.dispatch(UpdateNode("ann", {"external_fee": 750}))

    state = apply(UpdateNode("ann", {"is_external": True, "external_fee": 750}))
    assert state.node("ann").data.external_fee == 750


def test_connecting_a_project_auto_titles_budget_and_timeline(apply):
    state = apply(
        AddNode(NodeKind.PROJECT, "p1", fields={"title": "Atlas", "studio": "27b"}),
        AddNode(NodeKind.BUDGET, "b1"),
        AddNode(NodeKind.TIMELINE, "t1"),
        Connect("p1", "b1", "budget", "budget-in"),
        Connect("p1", "t1", "timeline", "timeline-in"),
    )

    assert state.node("b1").title == "Atlas — Budget"
    assert state.node("b1").data.studio is Studio.B27
    assert state.node("t1").title == "Atlas — Timeline"


def test_project_edits_retitle_until_pinned(atlas, apply):
    assert atlas.node("b1").title == "Atlas — Budget"

    state = apply(UpdateNode("p1", {"title": "Atlas II"}))
    assert state.node("b1").title == "Atlas II — Budget"

    state = apply(
        RenameNode("b1", "Atlas retainer"),
        UpdateNode("p1", {"title": "Atlas III", "studio": "27b"}),
    )
    assert state.node("b1").title == "Atlas retainer"
    assert state.node("b1").data.studio is Studio.ANTINOMY


def test_propagation_never_runs_on_hydrate(atlas, store):
    document = store.export(saved_at="2026-03-02T09:00:00+00:00")
    document["nodes"] = [
        {**n, "data": {**n["data"], "title": "Hand edited"}} if n["id"] == "b1" else n
        for n in document["nodes"]
    ]

    assert store.hydrate(document)
    assert store.state.node("b1").title == "Hand edited"
