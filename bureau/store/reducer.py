"""Pure (state, command) -> state transitions.

The reducer returns the *same* state object when a command is a no-op, which
is how callers tell success from rejection. Cascades (alias syncing, edge
restyling, auto-titles, dangling references) are not done here; they run
afterwards in a single propagation pass.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable

from ..graph import docking
from ..graph.docking import DockTuning
from ..graph.protocol import Connection, build_edge, rebuild_edge
from ..models import (
    DEFAULT_STUDIO,
    PAYLOAD_TYPES,
    TURNOVER_TITLES,
    AliasData,
    EdgeMode,
    GraphState,
    MasterResource,
    Node,
    NodeKind,
    Position,
    Selection,
    Studio,
    TurnoverCategory,
    ViewMode,
    coerce_fields,
)
from .commands import (
    AddNode,
    AddResource,
    Command,
    Connect,
    DeleteEdge,
    DeleteNode,
    DeleteResource,
    MoveNode,
    PlaceResource,
    Reconnect,
    RelabelEdge,
    RenameNode,
    ResizeNode,
    Select,
    SetEdgeMode,
    SetViewMode,
    UpdateNode,
    UpdateResource,
)

log = logging.getLogger(__name__)

# Fields owned by the registry or derived from other fields.
SYNCED_FIELDS: dict[NodeKind, frozenset[str]] = {
    NodeKind.ALIAS: frozenset({"resource_id", "title", "full_name", "dept", "color"}),
    NodeKind.PERSON: frozenset({"color"}),
}

DEFAULT_POSITIONS: dict[NodeKind, Position] = {
    NodeKind.PERSON: Position(80, 260),
    NodeKind.ALIAS: Position(80, 260),
    NodeKind.CAPACITY: Position(80, 260),
    NodeKind.PROJECT: Position(420, 240),
    NodeKind.BUDGET: Position(820, 240),
    NodeKind.TIMELINE: Position(820, 240),
    NodeKind.TURNOVER: Position(1180, 240),
    NodeKind.LEDGER: Position(1180, 240),
}


def random_id(prefix: str) -> str:
    """`person-1a2b3c`, `edge-1a2b3c4d`."""
    nbytes = 4 if prefix == "edge" else 3
    return f"{prefix}-{secrets.token_hex(nbytes)}"


def _today_iso() -> str:
    return date.today().isoformat()


@dataclass(frozen=True)
class ReducerContext:
    """Everything impure the reducer needs, injected so tests stay deterministic."""

    new_id: Callable[[str], str] = random_id
    today: Callable[[], str] = _today_iso
    tuning: DockTuning = field(default_factory=DockTuning)
    default_studio: Studio = DEFAULT_STUDIO


DEFAULT_CONTEXT = ReducerContext()


def _replace_node(state: GraphState, node: Node) -> GraphState:
    return replace(state, nodes=tuple(node if n.id == node.id else n for n in state.nodes))


def _replace_edge(state: GraphState, edge) -> GraphState:
    return replace(state, edges=tuple(edge if e.id == edge.id else e for e in state.edges))


def _safe_coerce(cls: type, values: dict[str, Any]) -> dict[str, Any] | None:
    try:
        return coerce_fields(cls, values)
    except (TypeError, ValueError) as exc:
        log.debug("rejected field values for %s: %s", cls.__name__, exc)
        return None


# --- Nodes -----------------------------------------------------------------------


def _initial_fields(kind: NodeKind, ctx: ReducerContext) -> dict[str, Any]:
    if kind in (NodeKind.PROJECT, NodeKind.BUDGET, NodeKind.TIMELINE):
        base: dict[str, Any] = {"studio": ctx.default_studio}
    else:
        base = {}
    if kind is NodeKind.TIMELINE:
        today = ctx.today()
        base.update(start_date=today, end_date=today)
    return base


def add_node(state: GraphState, cmd: AddNode, ctx: ReducerContext) -> GraphState:
    try:
        kind = NodeKind(cmd.kind)
    except ValueError:
        log.debug("unknown node kind: %r", cmd.kind)
        return state

    if kind is NodeKind.ALIAS:
        resource_id = str(cmd.fields.get("resource_id", ""))
        extra = {k: v for k, v in cmd.fields.items() if k != "resource_id"}
        return place_resource(
            state,
            PlaceResource(resource_id, node_id=cmd.node_id, position=cmd.position, fields=extra),
            ctx,
        )

    cls = PAYLOAD_TYPES[kind]
    values = _safe_coerce(cls, cmd.fields)
    if values is None:
        return state

    merged = {**_initial_fields(kind, ctx), **values}
    if kind is NodeKind.TURNOVER and "title" not in values:
        category = merged.get("turnover_type", TurnoverCategory.GROSS)
        merged["title"] = TURNOVER_TITLES[category]

    node_id = cmd.node_id or ctx.new_id(kind.value)
    if state.node(node_id) is not None:
        return state

    node = Node(
        id=node_id,
        data=cls(**merged),
        position=cmd.position or DEFAULT_POSITIONS[kind],
    )
    return replace(state, nodes=state.nodes + (node,))


def update_node(state: GraphState, cmd: UpdateNode) -> GraphState:
    node = state.node(cmd.node_id)
    if node is None:
        return state

    blocked = SYNCED_FIELDS.get(node.kind, frozenset())
    changes = {k: v for k, v in cmd.changes.items() if k not in blocked}
    values = _safe_coerce(type(node.data), changes)
    if not values:
        return state

    # A manual title edit pins the title.
    if "title" in values and hasattr(node.data, "auto_title"):
        values["auto_title"] = False

    data = replace(node.data, **values)
    if data == node.data:
        return state
    return _replace_node(state, replace(node, data=data))


def rename_node(state: GraphState, cmd: RenameNode) -> GraphState:
    return update_node(state, UpdateNode(cmd.node_id, {"title": cmd.title}))


def move_node(state: GraphState, cmd: MoveNode, ctx: ReducerContext) -> GraphState:
    node = state.node(cmd.node_id)
    if node is None:
        return state

    target = cmd.position
    if cmd.dragging and docking.is_dockable(node.kind):
        target = docking.snap_position(state, node.id, target, ctx.tuning)

    if target == node.position:
        return state

    moved = {node.id: target}
    if cmd.dragging and node.kind is NodeKind.PROJECT:
        dx = target.x - node.position.x
        dy = target.y - node.position.y
        for other_id in docking.group_drag_targets(state, node.id):
            other = state.node(other_id)
            moved[other_id] = Position(other.position.x + dx, other.position.y + dy)

    return replace(
        state,
        nodes=tuple(replace(n, position=moved[n.id]) if n.id in moved else n for n in state.nodes),
    )


def resize_node(state: GraphState, cmd: ResizeNode) -> GraphState:
    node = state.node(cmd.node_id)
    if node is None:
        return state
    if node.width == cmd.width and node.height == cmd.height:
        return state
    return _replace_node(state, replace(node, width=cmd.width, height=cmd.height))


def delete_node(state: GraphState, cmd: DeleteNode) -> GraphState:
    if state.node(cmd.node_id) is None:
        return state
    return replace(state, nodes=tuple(n for n in state.nodes if n.id != cmd.node_id))


# --- Registry ------------------------------------------------------------------------


def add_resource(state: GraphState, cmd: AddResource, ctx: ReducerContext) -> GraphState:
    name = cmd.name.strip()
    if not name:
        return state
    values = _safe_coerce(MasterResource, cmd.fields)
    if values is None:
        return state
    values.pop("id", None)
    values.pop("name", None)

    resource_id = cmd.resource_id or ctx.new_id("resource")
    if state.resource(resource_id) is not None:
        return state
    resource = MasterResource(id=resource_id, name=name, **values)
    return replace(state, resources=state.resources + (resource,))


def update_resource(state: GraphState, cmd: UpdateResource) -> GraphState:
    resource = state.resource(cmd.resource_id)
    if resource is None:
        return state
    changes = {k: v for k, v in cmd.changes.items() if k != "id"}
    values = _safe_coerce(MasterResource, changes)
    if not values:
        return state
    if "name" in values and not values["name"].strip():
        return state

    updated = replace(resource, **values)
    if updated == resource:
        return state
    return replace(
        state,
        resources=tuple(updated if r.id == resource.id else r for r in state.resources),
    )


def delete_resource(state: GraphState, cmd: DeleteResource) -> GraphState:
    """Drop the record; propagation removes its aliases and their edges."""
    if state.resource(cmd.resource_id) is None:
        return state
    return replace(state, resources=tuple(r for r in state.resources if r.id != cmd.resource_id))


def place_resource(state: GraphState, cmd: PlaceResource, ctx: ReducerContext) -> GraphState:
    resource = state.resource(cmd.resource_id)
    if resource is None:
        return state
    values = _safe_coerce(AliasData, cmd.fields)
    if values is None:
        return state
    for synced in SYNCED_FIELDS[NodeKind.ALIAS]:
        values.pop(synced, None)

    node_id = cmd.node_id or ctx.new_id(NodeKind.ALIAS.value)
    if state.node(node_id) is not None:
        return state

    # Name/department snapshot is filled in by propagation.
    node = Node(
        id=node_id,
        data=AliasData(resource_id=resource.id, **values),
        position=cmd.position or DEFAULT_POSITIONS[NodeKind.ALIAS],
    )
    return replace(state, nodes=state.nodes + (node,))


# --- Edges ---------------------------------------------------------------------------


def connect(state: GraphState, cmd: Connect, ctx: ReducerContext) -> GraphState:
    conn = Connection(cmd.source, cmd.target, cmd.source_handle, cmd.target_handle)
    for e in state.edges:
        if (e.source, e.target, e.source_handle, e.target_handle) == (
            conn.source,
            conn.target,
            conn.source_handle,
            conn.target_handle,
        ):
            return state

    edge_id = cmd.edge_id or ctx.new_id("edge")
    if state.edge(edge_id) is not None:
        return state

    edge = build_edge(state, edge_id, conn)
    if edge is None:
        log.debug("connection rejected: %s", conn)
        return state
    return replace(state, edges=state.edges + (edge,))


def reconnect(state: GraphState, cmd: Reconnect) -> GraphState:
    edge = state.edge(cmd.edge_id)
    if edge is None:
        return state
    conn = Connection(cmd.source, cmd.target, cmd.source_handle, cmd.target_handle)
    rebuilt = rebuild_edge(state, edge, conn)
    if rebuilt is None or rebuilt == edge:
        return state
    return _replace_edge(state, rebuilt)


def delete_edge(state: GraphState, cmd: DeleteEdge) -> GraphState:
    if state.edge(cmd.edge_id) is None:
        return state
    return replace(state, edges=tuple(e for e in state.edges if e.id != cmd.edge_id))


def relabel_edge(state: GraphState, cmd: RelabelEdge) -> GraphState:
    edge = state.edge(cmd.edge_id)
    if edge is None or edge.label == cmd.label:
        return state
    return _replace_edge(state, replace(edge, label=cmd.label))


# --- View ------------------------------------------------------------------------------


def select(state: GraphState, cmd: Select) -> GraphState:
    if cmd.node_id is not None:
        if state.node(cmd.node_id) is None:
            return state
        selection = Selection(node_id=cmd.node_id)
    elif cmd.edge_id is not None:
        if state.edge(cmd.edge_id) is None:
            return state
        selection = Selection(edge_id=cmd.edge_id)
    else:
        selection = Selection()
    if selection == state.selection:
        return state
    return replace(state, selection=selection)


def set_view_mode(state: GraphState, cmd: SetViewMode) -> GraphState:
    try:
        mode = ViewMode(cmd.mode)
    except ValueError:
        return state
    if mode is state.view_mode:
        return state
    return replace(state, view_mode=mode)


def set_edge_mode(state: GraphState, cmd: SetEdgeMode) -> GraphState:
    try:
        mode = EdgeMode(cmd.mode)
    except ValueError:
        return state
    if mode is state.edge_mode:
        return state
    return replace(state, edge_mode=mode)


def reduce(state: GraphState, command: Command, ctx: ReducerContext = DEFAULT_CONTEXT) -> GraphState:
    """Apply one command. Returns `state` itself when nothing changed."""
    if isinstance(command, AddNode):
        return add_node(state, command, ctx)
    if isinstance(command, UpdateNode):
        return update_node(state, command)
    if isinstance(command, RenameNode):
        return rename_node(state, command)
    if isinstance(command, MoveNode):
        return move_node(state, command, ctx)
    if isinstance(command, ResizeNode):
        return resize_node(state, command)
    if isinstance(command, DeleteNode):
        return delete_node(state, command)
    if isinstance(command, AddResource):
        return add_resource(state, command, ctx)
    if isinstance(command, UpdateResource):
        return update_resource(state, command)
    if isinstance(command, DeleteResource):
        return delete_resource(state, command)
    if isinstance(command, PlaceResource):
        return place_resource(state, command, ctx)
    if isinstance(command, Connect):
        return connect(state, command, ctx)
    if isinstance(command, Reconnect):
        return reconnect(state, command)
    if isinstance(command, DeleteEdge):
        return delete_edge(state, command)
    if isinstance(command, RelabelEdge):
        return relabel_edge(state, command)
    if isinstance(command, Select):
        return select(state, command)
    if isinstance(command, SetViewMode):
        return set_view_mode(state, command)
    if isinstance(command, SetEdgeMode):
        return set_edge_mode(state, command)
    raise TypeError(f"unknown command: {type(command).__name__}")
