"""Mutation commands understood by the reducer.

Commands are plain data. `reduce(state, command)` is the only place that
interprets them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from ..models import EdgeMode, NodeKind, Position, ViewMode


# --- Nodes ---------------------------------------------------------------------


@dataclass(frozen=True)
class AddNode:
    kind: NodeKind
    node_id: str | None = None
    position: Position | None = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateNode:
    """Patch kind-specific fields. Unknown fields and `kind` are ignored."""

    node_id: str
    changes: dict[str, Any]


@dataclass(frozen=True)
class RenameNode:
    """Manual title edit; pins the title against auto-titling."""

    node_id: str
    title: str


@dataclass(frozen=True)
class MoveNode:
    node_id: str
    position: Position
    dragging: bool = True


@dataclass(frozen=True)
class ResizeNode:
    node_id: str
    width: float | None
    height: float | None


@dataclass(frozen=True)
class DeleteNode:
    node_id: str


# --- Resource registry -------------------------------------------------------------


@dataclass(frozen=True)
class AddResource:
    name: str
    resource_id: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateResource:
    resource_id: str
    changes: dict[str, Any]


@dataclass(frozen=True)
class DeleteResource:
    resource_id: str


@dataclass(frozen=True)
class PlaceResource:
    """Drop an Alias of a registry resource onto the canvas."""

    resource_id: str
    node_id: str | None = None
    position: Position | None = None
    fields: dict[str, Any] = field(default_factory=dict)


# --- Edges -------------------------------------------------------------------------


@dataclass(frozen=True)
class Connect:
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    edge_id: str | None = None


@dataclass(frozen=True)
class Reconnect:
    """Drag an edge endpoint. None keeps the current value."""

    edge_id: str
    source: str | None = None
    target: str | None = None
    source_handle: str | None = None
    target_handle: str | None = None


@dataclass(frozen=True)
class DeleteEdge:
    edge_id: str


@dataclass(frozen=True)
class RelabelEdge:
    edge_id: str
    label: str


# --- View --------------------------------------------------------------------------


@dataclass(frozen=True)
class Select:
    node_id: str | None = None
    edge_id: str | None = None


@dataclass(frozen=True)
class SetViewMode:
    mode: ViewMode


@dataclass(frozen=True)
class SetEdgeMode:
    mode: EdgeMode


Command = Union[
    AddNode,
    UpdateNode,
    RenameNode,
    MoveNode,
    ResizeNode,
    DeleteNode,
    AddResource,
    UpdateResource,
    DeleteResource,
    PlaceResource,
    Connect,
    Reconnect,
    DeleteEdge,
    RelabelEdge,
    Select,
    SetViewMode,
    SetEdgeMode,
]
