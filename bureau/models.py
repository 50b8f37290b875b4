"""Data models for the studio operations graph."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Union


class NodeKind(str, Enum):
    """Closed set of node kinds. A node's kind never changes after creation."""

    PERSON = "person"
    ALIAS = "alias"
    CAPACITY = "capacity"
    PROJECT = "project"
    BUDGET = "budget"
    TIMELINE = "timeline"
    TURNOVER = "turnover"
    LEDGER = "ledger"


class Dept(str, Enum):
    UNASSIGNED = "unassigned"
    OPS = "ops"
    DESIGN = "design"
    DEV = "dev"


class Phase(str, Enum):
    """Cost/budget categories."""

    DESIGN = "design"
    DEV = "dev"
    OPS = "ops"


class Studio(str, Enum):
    """The two legal studio entities."""

    B27 = "27b"
    ANTINOMY = "Antinomy Studio"


class Compensation(str, Enum):
    FULL_TIME = "full_time"
    EXTERNAL = "external"


class FeeMode(str, Enum):
    FIXED = "fixed"
    DAY_RATE = "day_rate"


class TurnoverCategory(str, Enum):
    GROSS = "gross"
    DESIGN = "design"
    DEV = "dev"
    OPS = "ops"


class ViewMode(str, Enum):
    WORKFLOW = "workflow"
    TIMELINE = "timeline"


class EdgeMode(str, Enum):
    RADIUS = "radius"
    BEZIER = "bezier"


DEFAULT_STUDIO = Studio.ANTINOMY
CURRENCY = "EUR"

DEPT_COLOURS: dict[Dept, str] = {
    Dept.UNASSIGNED: "#94a3b8",
    Dept.OPS: "#86EFAC",
    Dept.DESIGN: "#F9A8D4",
    Dept.DEV: "#FDE047",
}

DEPT_LABELS: dict[Dept, str] = {
    Dept.UNASSIGNED: "Unassigned",
    Dept.OPS: "Operations",
    Dept.DESIGN: "Design",
    Dept.DEV: "Engineering",
}

TURNOVER_TITLES: dict[TurnoverCategory, str] = {
    TurnoverCategory.GROSS: "Total Turnover",
    TurnoverCategory.DESIGN: "Net Design Turnover",
    TurnoverCategory.DEV: "Net Dev Turnover",
    TurnoverCategory.OPS: "Net Ops Turnover",
}


def dept_colour(dept: Dept) -> str:
    return DEPT_COLOURS.get(dept, DEPT_COLOURS[Dept.UNASSIGNED])


def first_name(full_name: str) -> str:
    """Short label used on alias nodes."""
    parts = full_name.split()
    return parts[0] if parts else ""


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


# --- Kind payloads -----------------------------------------------------------
#
# Each payload carries its discriminant as a non-init field, so it is fixed by
# the class and cannot be passed in or replaced.


@dataclass(frozen=True)
class PersonData:
    """A self-contained org member drawn directly on the canvas."""

    title: str = "New Person"
    dept: Dept = Dept.UNASSIGNED
    color: str = DEPT_COLOURS[Dept.UNASSIGNED]
    is_external: bool = False
    external_fee: float = 0.0
    bill_to_budget_id: str | None = None
    bill_to_phase: Phase | None = Phase.DESIGN
    kind: NodeKind = field(default=NodeKind.PERSON, init=False)


@dataclass(frozen=True)
class AliasData:
    """A placement of a MasterResource; name/dept/color are synced snapshots."""

    resource_id: str = ""
    title: str = ""  # first-name label
    full_name: str = ""
    dept: Dept = Dept.UNASSIGNED
    color: str = DEPT_COLOURS[Dept.UNASSIGNED]
    fee_mode: FeeMode = FeeMode.FIXED
    fee_value: float = 0.0
    bill_to_budget_id: str | None = None
    bill_to_phase: Phase | None = None
    timeline_id: str | None = None
    kind: NodeKind = field(default=NodeKind.ALIAS, init=False)


@dataclass(frozen=True)
class CapacityData:
    title: str = "Capacity"
    kind: NodeKind = field(default=NodeKind.CAPACITY, init=False)


@dataclass(frozen=True)
class ProjectData:
    title: str = "New Project"
    studio: Studio = DEFAULT_STUDIO
    client: str = ""
    filed: bool = False  # collapsed on canvas
    kind: NodeKind = field(default=NodeKind.PROJECT, init=False)


@dataclass(frozen=True)
class BudgetData:
    """Gross phase allocations. Net is always derived, never stored."""

    title: str = "New Budget"
    studio: Studio = DEFAULT_STUDIO
    currency: str = CURRENCY
    design_amount: float = 0.0
    dev_amount: float = 0.0
    ops_amount: float = 0.0
    auto_title: bool = True
    kind: NodeKind = field(default=NodeKind.BUDGET, init=False)

    def gross(self, phase: Phase) -> float:
        if phase is Phase.DESIGN:
            return self.design_amount
        if phase is Phase.DEV:
            return self.dev_amount
        return self.ops_amount


@dataclass(frozen=True)
class TimelineData:
    title: str = "New Timeline"
    studio: Studio = DEFAULT_STUDIO
    start_date: str = ""  # YYYY-MM-DD
    end_date: str = ""
    auto_title: bool = True
    kind: NodeKind = field(default=NodeKind.TIMELINE, init=False)


@dataclass(frozen=True)
class TurnoverData:
    title: str = TURNOVER_TITLES[TurnoverCategory.GROSS]
    currency: str = CURRENCY
    turnover_type: TurnoverCategory = TurnoverCategory.GROSS
    kind: NodeKind = field(default=NodeKind.TURNOVER, init=False)


@dataclass(frozen=True)
class LedgerData:
    title: str = "Ledger"
    currency: str = CURRENCY
    kind: NodeKind = field(default=NodeKind.LEDGER, init=False)


NodeData = Union[
    PersonData,
    AliasData,
    CapacityData,
    ProjectData,
    BudgetData,
    TimelineData,
    TurnoverData,
    LedgerData,
]

PAYLOAD_TYPES: dict[NodeKind, type] = {
    NodeKind.PERSON: PersonData,
    NodeKind.ALIAS: AliasData,
    NodeKind.CAPACITY: CapacityData,
    NodeKind.PROJECT: ProjectData,
    NodeKind.BUDGET: BudgetData,
    NodeKind.TIMELINE: TimelineData,
    NodeKind.TURNOVER: TurnoverData,
    NodeKind.LEDGER: LedgerData,
}

PEOPLE_KINDS = frozenset({NodeKind.PERSON, NodeKind.ALIAS})
DOCKABLE_KINDS = frozenset({NodeKind.BUDGET, NodeKind.TIMELINE})


@dataclass(frozen=True)
class Node:
    id: str
    data: NodeData
    position: Position = field(default_factory=Position)
    width: float | None = None  # measured by the presentation layer
    height: float | None = None

    @property
    def kind(self) -> NodeKind:
        return self.data.kind

    @property
    def title(self) -> str:
        return self.data.title


@dataclass(frozen=True)
class Edge:
    """Directed, port-qualified connection with denormalized label/color."""

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    label: str = "linked"
    color: str = "rgba(0,0,0,0.35)"
    stroke_width: int = 2
    arrow_at_source: bool = False  # arrowhead drawn at the source end
    assignment: bool = False  # Person/Alias -> Project team membership


@dataclass(frozen=True)
class MasterResource:
    """Canonical registry record of a staffable person."""

    id: str
    name: str
    entity: Studio = DEFAULT_STUDIO
    dept: Dept = Dept.UNASSIGNED
    compensation: Compensation = Compensation.FULL_TIME
    contract_start: str | None = None  # full-time only
    contract_end: str | None = None
    annual_salary: float = 0.0
    hourly_rate: float = 0.0  # external only

    @property
    def is_external(self) -> bool:
        return self.compensation is Compensation.EXTERNAL


@dataclass(frozen=True)
class Selection:
    node_id: str | None = None
    edge_id: str | None = None


@dataclass(frozen=True)
class GraphState:
    """Immutable snapshot of the whole graph.

    Mutations never touch a snapshot; they produce a new one.
    """

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    resources: tuple[MasterResource, ...] = ()
    selection: Selection = field(default_factory=Selection)
    view_mode: ViewMode = ViewMode.WORKFLOW
    edge_mode: EdgeMode = EdgeMode.RADIUS

    def node(self, node_id: str | None) -> Node | None:
        if not node_id:
            return None
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def kind_of(self, node_id: str | None) -> NodeKind | None:
        n = self.node(node_id)
        return n.kind if n else None

    def edge(self, edge_id: str | None) -> Edge | None:
        if not edge_id:
            return None
        for e in self.edges:
            if e.id == edge_id:
                return e
        return None

    def resource(self, resource_id: str | None) -> MasterResource | None:
        if not resource_id:
            return None
        for r in self.resources:
            if r.id == resource_id:
                return r
        return None

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [n for n in self.nodes if n.kind is kind]

    def neighbors(self, node_id: str) -> set[str]:
        """One-hop neighbours in either direction."""
        out: set[str] = set()
        for e in self.edges:
            if e.source == node_id:
                out.add(e.target)
            if e.target == node_id:
                out.add(e.source)
        return out


# --- Field coercion ------------------------------------------------------------
#
# Shared by the reducer (patches from the UI) and the snapshot loader. Raises
# ValueError on values that cannot represent the field.

ENUM_FIELDS: dict[str, type[Enum]] = {
    "dept": Dept,
    "bill_to_phase": Phase,
    "studio": Studio,
    "entity": Studio,
    "fee_mode": FeeMode,
    "turnover_type": TurnoverCategory,
    "compensation": Compensation,
}
NULLABLE_FIELDS = frozenset(
    {"bill_to_phase", "bill_to_budget_id", "timeline_id", "contract_start", "contract_end"}
)
FLOAT_FIELDS = frozenset(
    {
        "external_fee",
        "fee_value",
        "design_amount",
        "dev_amount",
        "ops_amount",
        "annual_salary",
        "hourly_rate",
    }
)
BOOL_FIELDS = frozenset({"is_external", "auto_title", "filed"})


def coerce_value(name: str, value: Any) -> Any:
    if value is None or value == "":
        if name in NULLABLE_FIELDS:
            return None
    if name in ENUM_FIELDS:
        return ENUM_FIELDS[name](value)
    if name in FLOAT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"{name} must be a number")
        try:
            return float(value)
        except OverflowError as exc:
            raise ValueError(f"{name} is out of range") from exc
    if name in BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be a boolean")
        return value
    if value is None:
        raise ValueError(f"{name} may not be empty")
    return str(value)


def init_field_names(cls: type) -> list[str]:
    """Constructor fields of a payload/record dataclass (never `kind`)."""
    return [f.name for f in fields(cls) if f.init]


def coerce_fields(cls: type, values: dict[str, Any]) -> dict[str, Any]:
    """Keep only fields `cls` accepts, coerced to their types."""
    allowed = set(init_field_names(cls))
    return {k: coerce_value(k, v) for k, v in values.items() if k in allowed}
