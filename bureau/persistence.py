"""
Versioned snapshot documents.

The document is the only thing the persistence collaborator stores:

    {
      "version": 1,
      "saved_at": "<ISO-8601>",
      "view_mode": "workflow" | "timeline",
      "edge_mode": "radius" | "bezier",
      "nodes": [{"id", "position": {"x", "y"}, "width", "height", "data": {"kind", ...}}],
      "edges": [{"id", "source", "target", "source_handle", "target_handle", ...}],
      "resources": [{"id", "name", "entity", "dept", "compensation", ...}]
    }

A missing or different version, or any malformed entry, invalidates the
whole document. Loading never yields a partial graph.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .models import (
    DEFAULT_STUDIO,
    PAYLOAD_TYPES,
    Edge,
    EdgeMode,
    GraphState,
    MasterResource,
    Node,
    NodeKind,
    Position,
    ViewMode,
    coerce_fields,
)

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Older documents predate the studio field on these kinds.
STUDIO_KINDS = frozenset({NodeKind.PROJECT, NodeKind.BUDGET, NodeKind.TIMELINE})


class SnapshotError(ValueError):
    """A document that cannot be turned into a graph."""


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def default_state() -> GraphState:
    return GraphState()


# --- Encoding ------------------------------------------------------------------------


def node_to_dict(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "position": {"x": node.position.x, "y": node.position.y},
        "width": node.width,
        "height": node.height,
        "data": _plain(asdict(node.data)),
    }


def to_document(state: GraphState, saved_at: str | None = None) -> dict[str, Any]:
    return {
        "version": SNAPSHOT_VERSION,
        "saved_at": saved_at or datetime.now(timezone.utc).isoformat(),
        "view_mode": state.view_mode.value,
        "edge_mode": state.edge_mode.value,
        "nodes": [node_to_dict(n) for n in state.nodes],
        "edges": [_plain(asdict(e)) for e in state.edges],
        "resources": [_plain(asdict(r)) for r in state.resources],
    }


# --- Decoding ------------------------------------------------------------------------


def _require_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SnapshotError(f"{what} must be an object")
    return value


def _require_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise SnapshotError(f"{what} must be a list")
    return value


def _optional_number(value: Any, what: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotError(f"{what} must be a number")
    try:
        return float(value)
    except OverflowError as exc:
        raise SnapshotError(f"{what} is out of range") from exc


def node_from_dict(raw: Any) -> Node:
    raw = _require_dict(raw, "node")
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise SnapshotError("node id is required")

    data = dict(_require_dict(raw.get("data"), f"node {node_id} data"))
    try:
        kind = NodeKind(data.pop("kind", None))
    except ValueError as exc:
        raise SnapshotError(f"node {node_id} has unknown kind") from exc

    if kind in STUDIO_KINDS and not data.get("studio"):
        data["studio"] = DEFAULT_STUDIO.value

    try:
        payload = PAYLOAD_TYPES[kind](**coerce_fields(PAYLOAD_TYPES[kind], data))
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"node {node_id}: {exc}") from exc

    pos = _require_dict(raw.get("position", {}), f"node {node_id} position")
    return Node(
        id=node_id,
        data=payload,
        position=Position(
            x=_optional_number(pos.get("x", 0), "position.x") or 0.0,
            y=_optional_number(pos.get("y", 0), "position.y") or 0.0,
        ),
        width=_optional_number(raw.get("width"), "width"),
        height=_optional_number(raw.get("height"), "height"),
    )


EDGE_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "source_handle": (str, type(None)),
    "target_handle": (str, type(None)),
    "label": (str,),
    "color": (str,),
    "stroke_width": (int,),
    "arrow_at_source": (bool,),
    "assignment": (bool,),
}


def edge_from_dict(raw: Any) -> Edge:
    raw = _require_dict(raw, "edge")
    allowed = {f.name for f in fields(Edge)}
    values = {k: v for k, v in raw.items() if k in allowed}
    for key in ("id", "source", "target"):
        if not isinstance(values.get(key), str) or not values[key]:
            raise SnapshotError(f"edge {key} is required")
    for key, types in EDGE_FIELD_TYPES.items():
        if key not in values:
            continue
        value = values[key]
        # bool is an int subclass; only the flags may be booleans.
        if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
            raise SnapshotError(f"edge {values['id']}: {key} has the wrong type")
    return Edge(**values)


def resource_from_dict(raw: Any) -> MasterResource:
    raw = _require_dict(raw, "resource")
    resource_id = raw.get("id")
    name = raw.get("name")
    if not isinstance(resource_id, str) or not resource_id:
        raise SnapshotError("resource id is required")
    if not isinstance(name, str):
        raise SnapshotError(f"resource {resource_id} name is required")
    rest = {k: v for k, v in raw.items() if k not in ("id", "name")}
    try:
        return MasterResource(id=resource_id, name=name, **coerce_fields(MasterResource, rest))
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"resource {resource_id}: {exc}") from exc


def parse_document(document: Any) -> GraphState:
    """Build a graph from a document or raise SnapshotError."""
    doc = _require_dict(document, "snapshot")
    if doc.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(f"unsupported snapshot version: {doc.get('version')!r}")

    try:
        view_mode = ViewMode(doc.get("view_mode", ViewMode.WORKFLOW.value))
        edge_mode = EdgeMode(doc.get("edge_mode", EdgeMode.RADIUS.value))
    except ValueError as exc:
        raise SnapshotError(str(exc)) from exc

    nodes = tuple(node_from_dict(n) for n in _require_list(doc.get("nodes"), "nodes"))
    edges = tuple(edge_from_dict(e) for e in _require_list(doc.get("edges"), "edges"))
    resources = tuple(
        resource_from_dict(r) for r in _require_list(doc.get("resources", []), "resources")
    )

    return GraphState(
        nodes=nodes,
        edges=edges,
        resources=resources,
        view_mode=view_mode,
        edge_mode=edge_mode,
    )


def from_document(document: Any) -> GraphState | None:
    """Like parse_document, but an invalid document is simply absent."""
    try:
        return parse_document(document)
    except SnapshotError as exc:
        log.warning("ignoring snapshot: %s", exc)
        return None


# --- Files ---------------------------------------------------------------------------


def read_document(path: Path) -> Any | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("could not read snapshot %s: %s", path, exc)
        return None


def load_snapshot(path: Path) -> GraphState:
    """Load a snapshot file, falling back to an empty graph."""
    document = read_document(path)
    if document is None:
        return default_state()
    return from_document(document) or default_state()


def save_snapshot(path: Path, state: GraphState, saved_at: str | None = None) -> dict[str, Any]:
    document = to_document(state, saved_at=saved_at)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    return document
