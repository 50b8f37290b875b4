"""Connection protocol: which edges are legal and how they are dressed.

An edge is legal only if its (source kind, target kind, source handle,
target handle) tuple matches a whitelist entry. Anything else is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..models import (
    DEPT_COLOURS,
    PEOPLE_KINDS,
    Dept,
    Edge,
    GraphState,
    Node,
    NodeKind,
    Phase,
)

NEUTRAL_EDGE_COLOUR = "rgba(0,0,0,0.35)"

DEPT_HANDLES = frozenset(p.value for p in Phase)


@dataclass(frozen=True)
class Connection:
    """A candidate edge as proposed by the user."""

    source: str | None
    target: str | None
    source_handle: str | None = None
    target_handle: str | None = None


@dataclass(frozen=True)
class ConnectionRule:
    source_kinds: frozenset[NodeKind]
    target_kinds: frozenset[NodeKind]
    source_handle: str
    target_handles: frozenset[str]


WHITELIST: tuple[ConnectionRule, ...] = (
    ConnectionRule(
        frozenset({NodeKind.CAPACITY}),
        PEOPLE_KINDS,
        "capacity-out",
        frozenset({"capacity-in"}),
    ),
    ConnectionRule(
        PEOPLE_KINDS,
        frozenset({NodeKind.PROJECT}),
        "project-out",
        DEPT_HANDLES,
    ),
    ConnectionRule(
        frozenset({NodeKind.PERSON}),
        frozenset({NodeKind.TIMELINE}),
        "timeline-out",
        frozenset({"resource-in"}),
    ),
    ConnectionRule(
        frozenset({NodeKind.PROJECT}),
        frozenset({NodeKind.BUDGET}),
        "budget",
        frozenset({"budget-in"}),
    ),
    ConnectionRule(
        frozenset({NodeKind.PROJECT}),
        frozenset({NodeKind.TIMELINE}),
        "timeline",
        frozenset({"timeline-in"}),
    ),
    ConnectionRule(
        frozenset({NodeKind.BUDGET}),
        frozenset({NodeKind.TURNOVER}),
        "budget-out",
        frozenset({"turnover-in"}),
    ),
)


def is_legal_tuple(
    source_kind: NodeKind | None,
    target_kind: NodeKind | None,
    source_handle: str | None,
    target_handle: str | None,
) -> bool:
    if source_kind is None or target_kind is None:
        return False
    for rule in WHITELIST:
        if source_kind in rule.source_kinds and target_kind in rule.target_kinds:
            return source_handle == rule.source_handle and target_handle in rule.target_handles
    return False


def validate(connection: Connection, state: GraphState) -> bool:
    """Return True if the candidate edge is in the whitelist."""
    if not connection.source or not connection.target:
        return False
    if connection.source == connection.target:
        return False
    return is_legal_tuple(
        state.kind_of(connection.source),
        state.kind_of(connection.target),
        connection.source_handle,
        connection.target_handle,
    )


def is_assignment(state: GraphState, source: str, target: str) -> bool:
    """Person/Alias -> Project edges mark team membership."""
    return state.kind_of(source) in PEOPLE_KINDS and state.kind_of(target) is NodeKind.PROJECT


def assignment_conflict(
    state: GraphState,
    connection: Connection,
    *,
    ignore_edge_id: str | None = None,
) -> bool:
    """True if an Alias would end up holding a second assignment edge.

    Any existing Alias -> Project edge blocks the attempt, judged by endpoint
    kinds rather than the stored marker: to the same project it is a
    redundant reconnect, to a different project it breaks the one-target
    limit. `ignore_edge_id` excludes the edge being rerouted.
    """
    if state.kind_of(connection.source) is not NodeKind.ALIAS:
        return False
    if state.kind_of(connection.target) is not NodeKind.PROJECT:
        return False
    for e in state.edges:
        if e.id == ignore_edge_id:
            continue
        if e.source == connection.source and is_assignment(state, e.source, e.target):
            return True
    return False


def derive_label(source_handle: str | None, target_handle: str | None) -> str:
    if source_handle == "project-out" and target_handle in DEPT_HANDLES:
        return target_handle
    if source_handle == "budget":
        return "budget"
    if source_handle == "timeline-out" and target_handle == "resource-in":
        return "resource"
    if source_handle == "timeline":
        return "timeline"
    if target_handle == "turnover-in":
        return "turnover"
    if target_handle == "capacity-in":
        return "capacity"
    return "linked"


def identity_colour(node: Node | None) -> str:
    """Department colour for people, neutral for everything else."""
    if node is None:
        return NEUTRAL_EDGE_COLOUR
    if node.kind in PEOPLE_KINDS:
        return node.data.color or DEPT_COLOURS[Dept.UNASSIGNED]
    return NEUTRAL_EDGE_COLOUR


def arrow_at_source(source_kind: NodeKind | None, target_kind: NodeKind | None) -> bool:
    """Project -> Budget/Timeline edges point back into the project."""
    return source_kind is NodeKind.PROJECT and target_kind in (NodeKind.BUDGET, NodeKind.TIMELINE)


def dress_edge(state: GraphState, edge: Edge) -> Edge:
    """Re-derive label, colour, arrow and assignment marker from endpoints."""
    source = state.node(edge.source)
    source_kind = source.kind if source else None
    return replace(
        edge,
        label=derive_label(edge.source_handle, edge.target_handle),
        color=identity_colour(source),
        stroke_width=3 if source_kind in PEOPLE_KINDS else 2,
        arrow_at_source=arrow_at_source(source_kind, state.kind_of(edge.target)),
        assignment=is_assignment(state, edge.source, edge.target),
    )


def build_edge(state: GraphState, edge_id: str, connection: Connection) -> Edge | None:
    """Validate and derive a new edge in one step. None if rejected."""
    if not validate(connection, state):
        return None
    if assignment_conflict(state, connection):
        return None
    edge = Edge(
        id=edge_id,
        source=connection.source,
        target=connection.target,
        source_handle=connection.source_handle,
        target_handle=connection.target_handle,
    )
    return dress_edge(state, edge)


def rebuild_edge(state: GraphState, edge: Edge, connection: Connection) -> Edge | None:
    """Reroute an existing edge; missing fields keep the old endpoint/handle."""
    merged = Connection(
        source=connection.source or edge.source,
        target=connection.target or edge.target,
        source_handle=connection.source_handle if connection.source_handle is not None else edge.source_handle,
        target_handle=connection.target_handle if connection.target_handle is not None else edge.target_handle,
    )
    if not validate(merged, state):
        return None
    if assignment_conflict(state, merged, ignore_edge_id=edge.id):
        return None
    rerouted = replace(
        edge,
        source=merged.source,
        target=merged.target,
        source_handle=merged.source_handle,
        target_handle=merged.target_handle,
    )
    return dress_edge(state, rerouted)
