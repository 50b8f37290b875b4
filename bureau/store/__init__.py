"""Graph state container, commands and propagation."""

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
from .propagation import propagate
from .reducer import ReducerContext, reduce
from .store import GraphStore, apply_command

__all__ = [
    "AddNode",
    "AddResource",
    "Command",
    "Connect",
    "DeleteEdge",
    "DeleteNode",
    "DeleteResource",
    "MoveNode",
    "PlaceResource",
    "Reconnect",
    "RelabelEdge",
    "RenameNode",
    "ResizeNode",
    "Select",
    "SetEdgeMode",
    "SetViewMode",
    "UpdateNode",
    "UpdateResource",
    "propagate",
    "ReducerContext",
    "reduce",
    "GraphStore",
    "apply_command",
]
