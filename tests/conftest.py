"""Pytest configuration and fixtures."""

import itertools
from pathlib import Path

import pytest

from bureau.config import BureauConfig
from bureau.models import GraphState, NodeKind
from bureau.persistence import save_snapshot
from bureau.store import (
    AddNode,
    AddResource,
    Connect,
    GraphStore,
    PlaceResource,
    ReducerContext,
)

TODAY = "2026-03-02"


@pytest.fixture
def ctx() -> ReducerContext:
    """Reducer context with sequential ids and a fixed date."""
    counter = itertools.count(1)
    return ReducerContext(new_id=lambda prefix: f"{prefix}-{next(counter)}", today=lambda: TODAY)


@pytest.fixture
def store(ctx: ReducerContext) -> GraphStore:
    return GraphStore(context=ctx)


@pytest.fixture
def apply(store: GraphStore):
    """Dispatch commands, asserting each one commits."""

    def run(*commands) -> GraphState:
        for command in commands:
            assert store.dispatch(command), command
        return store.state

    return run


@pytest.fixture
def atlas(apply) -> GraphState:
    """Project 'Atlas' with one budget and an external alias billed to design.

    p1 -budget-> b1 (design 1000, dev 500)
    a1 (Ada Lovelace, external, fixed 300, phase design) -design-> p1
    """
    return apply(
        AddNode(NodeKind.PROJECT, "p1", fields={"title": "Atlas"}),
        AddNode(NodeKind.BUDGET, "b1", fields={"design_amount": 1000, "dev_amount": 500}),
        Connect("p1", "b1", "budget", "budget-in", edge_id="e-p1-b1"),
        AddResource(
            "Ada Lovelace",
            resource_id="r1",
            fields={"compensation": "external", "dept": "design"},
        ),
        PlaceResource("r1", node_id="a1", fields={"fee_value": 300, "bill_to_phase": "design"}),
        Connect("a1", "p1", "project-out", "design", edge_id="e-a1-p1"),
    )


@pytest.fixture
def config(tmp_path: Path) -> BureauConfig:
    return BureauConfig(
        snapshot=tmp_path / "bureau.json",
        journal=tmp_path / ".bureau" / "journal.jsonl",
    )


@pytest.fixture
def atlas_config(config: BureauConfig, atlas: GraphState) -> BureauConfig:
    """Config whose snapshot file holds the Atlas graph."""
    save_snapshot(config.snapshot, atlas, saved_at="2026-03-02T09:00:00+00:00")
    return config
