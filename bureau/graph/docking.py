"""Magnetic docking between budget and timeline nodes.

The geometry core works on plain rectangles so it can be tested without any
rendering engine. Sizes are whatever the presentation layer measured, or the
per-kind defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..models import DOCKABLE_KINDS, GraphState, Node, NodeKind, Position

DEFAULT_SIZES: dict[NodeKind, tuple[float, float]] = {
    NodeKind.BUDGET: (320.0, 240.0),
    NodeKind.TIMELINE: (260.0, 140.0),
}
FALLBACK_SIZE = (260.0, 140.0)


@dataclass(frozen=True)
class DockTuning:
    gap: float = 12.0  # space between stacked nodes
    snap_distance: float = 28.0  # max vertical distance before a snap
    x_snap_distance: float = 220.0  # max horizontal-centre misalignment
    visual_y_tolerance: float = 10.0
    visual_min_x_overlap: float = 0.35


DEFAULT_TUNING = DockTuning()


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2


@dataclass(frozen=True)
class SnapCandidate:
    x: float
    y: float
    side: str  # "top" when stacked above the neighbour, "bottom" when below
    distance: float
    neighbour_id: str | None = None


@dataclass(frozen=True)
class DockFlags:
    top: bool = False
    bottom: bool = False
    with_id: str | None = None


def is_dockable(kind: NodeKind | None) -> bool:
    return kind in DOCKABLE_KINDS


def node_size(node: Node) -> tuple[float, float]:
    w, h = DEFAULT_SIZES.get(node.kind, FALLBACK_SIZE)
    return (node.width if node.width else w, node.height if node.height else h)


def node_rect(node: Node, position: Position | None = None) -> Rect:
    pos = position or node.position
    w, h = node_size(node)
    return Rect(pos.x, pos.y, w, h)


def x_overlap_ratio(a: Rect, b: Rect) -> float:
    overlap = max(0.0, min(a.right, b.right) - max(a.x, b.x))
    min_w = min(a.width, b.width)
    return overlap / min_w if min_w > 0 else 0.0


def snap_candidate(
    moving: Rect,
    target: Rect,
    tuning: DockTuning = DEFAULT_TUNING,
) -> SnapCandidate | None:
    """Closest stacked slot next to `target`, or None if out of tolerance."""
    if abs(moving.center_x - target.center_x) > tuning.x_snap_distance:
        return None

    y_above = target.y - tuning.gap - moving.height
    y_below = target.bottom + tuning.gap
    dist_above = abs(moving.y - y_above)
    dist_below = abs(moving.y - y_below)

    dist = min(dist_above, dist_below)
    if dist > tuning.snap_distance:
        return None

    if dist_above <= dist_below:
        return SnapCandidate(x=target.x, y=y_above, side="top", distance=dist_above)
    return SnapCandidate(x=target.x, y=y_below, side="bottom", distance=dist_below)


def best_snap(
    moving: Rect,
    others: list[tuple[str, Rect]],
    tuning: DockTuning = DEFAULT_TUNING,
) -> SnapCandidate | None:
    """Smallest vertical distance wins; first seen wins ties."""
    best: SnapCandidate | None = None
    for other_id, rect in others:
        candidate = snap_candidate(moving, rect, tuning)
        if candidate is None:
            continue
        if best is None or candidate.distance < best.distance:
            best = replace(candidate, neighbour_id=other_id)
    return best


def snap_position(
    state: GraphState,
    node_id: str,
    proposed: Position,
    tuning: DockTuning = DEFAULT_TUNING,
) -> Position:
    """Position a dragged node should take; unchanged if nothing is in range."""
    node = state.node(node_id)
    if node is None or not is_dockable(node.kind):
        return proposed

    moving = node_rect(node, proposed)
    others = [
        (n.id, node_rect(n))
        for n in state.nodes
        if n.id != node_id and is_dockable(n.kind)
    ]
    best = best_snap(moving, others, tuning)
    if best is None:
        return proposed
    return Position(best.x, best.y)


def compute_dock_flags(
    rects: dict[str, Rect],
    tuning: DockTuning = DEFAULT_TUNING,
) -> dict[str, DockFlags]:
    """Static docked state from final positions.

    One clip per junction: the upper node gets the bottom flag, the lower
    node gets nothing.
    """
    flags: dict[str, DockFlags] = {}

    for upper_id, upper in rects.items():
        expected_y = upper.bottom + tuning.gap
        best_id: str | None = None
        best_dist = float("inf")

        for lower_id, lower in rects.items():
            if lower_id == upper_id:
                continue
            if x_overlap_ratio(upper, lower) < tuning.visual_min_x_overlap:
                continue
            dist = abs(lower.y - expected_y)
            if dist > tuning.visual_y_tolerance:
                continue
            if dist < best_dist:
                best_dist = dist
                best_id = lower_id

        if best_id is not None:
            flags[upper_id] = DockFlags(bottom=True, with_id=best_id)

    return flags


def compute_dock_state(
    state: GraphState,
    tuning: DockTuning = DEFAULT_TUNING,
) -> dict[str, DockFlags]:
    """Dock flags for every dockable node (undocked nodes get empty flags)."""
    rects = {n.id: node_rect(n) for n in state.nodes if is_dockable(n.kind)}
    flags = compute_dock_flags(rects, tuning)
    return {node_id: flags.get(node_id, DockFlags()) for node_id in rects}


def group_drag_targets(state: GraphState, project_id: str) -> set[str]:
    """Nodes that follow a dragged project: one hop, never other projects."""
    if state.kind_of(project_id) is not NodeKind.PROJECT:
        return set()
    return {
        other
        for other in state.neighbors(project_id)
        if state.kind_of(other) not in (None, NodeKind.PROJECT)
    }
