"""Derived financial and team rollups.

Everything here is a pure function of a GraphState snapshot. Nothing is
cached: callers recompute on every read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..models import (
    AliasData,
    BudgetData,
    FeeMode,
    GraphState,
    NodeKind,
    PEOPLE_KINDS,
    PersonData,
    Phase,
    TimelineData,
    TurnoverCategory,
    TurnoverData,
)
from .protocol import DEPT_HANDLES

FALLBACK_DEBIT_COLOUR = "#999999"
ACTIVITY_PAD_DAYS = 14


def safe_num(value: object) -> float:
    """Coerce anything non-finite (or non-numeric) to zero."""
    try:
        n = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


@dataclass(frozen=True)
class PhaseAmounts:
    design: float = 0.0
    dev: float = 0.0
    ops: float = 0.0

    def get(self, phase: Phase) -> float:
        return getattr(self, phase.value)

    @property
    def total(self) -> float:
        return self.design + self.dev + self.ops


@dataclass(frozen=True)
class DebitLine:
    person_id: str
    person_name: str
    phase: Phase
    amount: float
    color: str = FALLBACK_DEBIT_COLOUR


@dataclass(frozen=True)
class ProjectDebits:
    lines: tuple[DebitLine, ...] = ()
    by_phase: PhaseAmounts = field(default_factory=PhaseAmounts)

    @property
    def total(self) -> float:
        return self.by_phase.total


@dataclass(frozen=True)
class BudgetNet:
    budget_id: str
    project_id: str | None
    debits: ProjectDebits
    gross: PhaseAmounts
    net: PhaseAmounts

    @property
    def gross_total(self) -> float:
        return self.gross.total

    @property
    def net_total(self) -> float:
        return self.net.total


@dataclass(frozen=True)
class ProjectBudgetTotals:
    gross: float
    net: float
    budget_count: int


@dataclass(frozen=True)
class TurnoverValue:
    category: TurnoverCategory
    value: float
    gross_total: float
    net_total: float
    budget_count: int

    @property
    def debit_delta(self) -> float:
        return max(0.0, self.gross_total - self.net_total)


@dataclass(frozen=True)
class LedgerTotals:
    gross_total: float = 0.0
    net_total: float = 0.0
    net: PhaseAmounts = field(default_factory=PhaseAmounts)
    debits_total: float = 0.0
    debits_count: int = 0
    budget_count: int = 0

    @property
    def overrun(self) -> PhaseAmounts:
        """Phases whose aggregate net went negative (others are zero)."""
        return PhaseAmounts(
            design=min(0.0, self.net.design),
            dev=min(0.0, self.net.dev),
            ops=min(0.0, self.net.ops),
        )

    @property
    def overrun_total(self) -> float:
        return self.overrun.total

    @property
    def has_overrun(self) -> bool:
        return self.overrun_total < 0


@dataclass(frozen=True)
class CapacityStatus:
    label: str
    color: str


def _phase_or_none(value: object) -> Phase | None:
    if isinstance(value, Phase):
        return value
    if isinstance(value, str) and value in DEPT_HANDLES:
        return Phase(value)
    return None


# --- Structure lookups ---------------------------------------------------------


def budget_ids_for_project(state: GraphState, project_id: str) -> list[str]:
    """Budgets linked to a project, tolerating either edge direction."""
    ids: list[str] = []
    for e in state.edges:
        if e.source == project_id and state.kind_of(e.source) is NodeKind.PROJECT:
            other = e.target
        elif e.target == project_id and state.kind_of(e.target) is NodeKind.PROJECT:
            other = e.source
        else:
            continue
        if state.kind_of(other) is NodeKind.BUDGET and other not in ids:
            ids.append(other)
    return ids


def project_for_budget(state: GraphState, budget_id: str) -> str | None:
    """The (at most one) project a budget belongs to."""
    for e in state.edges:
        if e.target == budget_id and state.kind_of(e.source) is NodeKind.PROJECT:
            return e.source
        if e.source == budget_id and state.kind_of(e.target) is NodeKind.PROJECT:
            return e.target
    return None


def timeline_ids_for_project(state: GraphState, project_id: str) -> list[str]:
    ids: list[str] = []
    for e in state.edges:
        if e.source != project_id and e.target != project_id:
            continue
        other = e.target if e.source == project_id else e.source
        if state.kind_of(other) is NodeKind.TIMELINE and other not in ids:
            ids.append(other)
    return ids


def compute_project_timeline_count(state: GraphState, project_id: str) -> int:
    return len(timeline_ids_for_project(state, project_id))


def owner_project_id(state: GraphState, node_id: str) -> str | None:
    """Project feeding a budget/timeline through its budget/timeline port."""
    for e in state.edges:
        if e.target == node_id and e.source_handle in ("budget", "timeline"):
            return e.source
    return None


def project_ids_for_person(state: GraphState, person_id: str) -> set[str]:
    ids: set[str] = set()
    for other in state.neighbors(person_id):
        if state.kind_of(other) is NodeKind.PROJECT:
            ids.add(other)
    return ids


# --- Debits ------------------------------------------------------------------


def _debit_for_edge(state: GraphState, source_id: str, target_handle: str | None) -> DebitLine | None:
    node = state.node(source_id)
    if node is None:
        return None

    data = node.data
    if isinstance(data, AliasData):
        resource = state.resource(data.resource_id)
        if resource is None or not resource.is_external:
            return None
        # Day-rate fees are informational only.
        if data.fee_mode is not FeeMode.FIXED:
            return None
        amount = safe_num(data.fee_value)
        name = resource.name
        explicit_phase = data.bill_to_phase
    elif isinstance(data, PersonData):
        if not data.is_external:
            return None
        amount = safe_num(data.external_fee)
        name = data.title
        explicit_phase = data.bill_to_phase
    else:
        return None

    if amount <= 0:
        return None

    phase = _phase_or_none(explicit_phase) or _phase_or_none(target_handle) or Phase.DESIGN
    return DebitLine(
        person_id=source_id,
        person_name=name,
        phase=phase,
        amount=amount,
        color=data.color or FALLBACK_DEBIT_COLOUR,
    )


def _bill_to_budget(state: GraphState, person_id: str) -> str | None:
    node = state.node(person_id)
    if node is None:
        return None
    return getattr(node.data, "bill_to_budget_id", None) or None


def compute_project_debits(
    state: GraphState,
    project_id: str,
    *,
    budget_id: str | None = None,
) -> ProjectDebits:
    """External debits against a project, optionally scoped to one budget.

    A debit with an explicit target budget counts only there. An unscoped
    debit counts only when the project has exactly one budget.
    """
    project_budgets = budget_ids_for_project(state, project_id)
    lines: list[DebitLine] = []

    for e in state.edges:
        if e.target != project_id or state.kind_of(e.target) is not NodeKind.PROJECT:
            continue
        if state.kind_of(e.source) not in PEOPLE_KINDS:
            continue

        line = _debit_for_edge(state, e.source, e.target_handle)
        if line is None:
            continue

        if budget_id is not None:
            bill_to = _bill_to_budget(state, e.source)
            if bill_to:
                if bill_to != budget_id:
                    continue
            elif project_budgets != [budget_id]:
                continue

        lines.append(line)

    totals = {p: 0.0 for p in Phase}
    for line in lines:
        totals[line.phase] += safe_num(line.amount)

    return ProjectDebits(
        lines=tuple(lines),
        by_phase=PhaseAmounts(
            design=totals[Phase.DESIGN],
            dev=totals[Phase.DEV],
            ops=totals[Phase.OPS],
        ),
    )


def excluded_unscoped_debits(state: GraphState, project_id: str) -> list[DebitLine]:
    """Unscoped debits that no budget picks up because the project has several."""
    if len(budget_ids_for_project(state, project_id)) < 2:
        return []
    dropped = []
    for line in compute_project_debits(state, project_id).lines:
        if not _bill_to_budget(state, line.person_id):
            dropped.append(line)
    return dropped


# --- Budgets ---------------------------------------------------------------------


def compute_budget_net(state: GraphState, budget_id: str) -> BudgetNet | None:
    """Gross vs net for one budget. None when the id is not a budget."""
    node = state.node(budget_id)
    if node is None or not isinstance(node.data, BudgetData):
        return None
    budget = node.data

    gross = PhaseAmounts(
        design=safe_num(budget.design_amount),
        dev=safe_num(budget.dev_amount),
        ops=safe_num(budget.ops_amount),
    )

    project_id = project_for_budget(state, budget_id)
    if project_id:
        debits = compute_project_debits(state, project_id, budget_id=budget_id)
    else:
        debits = ProjectDebits()

    # Net may go negative.
    net = PhaseAmounts(
        design=safe_num(gross.design - debits.by_phase.design),
        dev=safe_num(gross.dev - debits.by_phase.dev),
        ops=safe_num(gross.ops - debits.by_phase.ops),
    )
    return BudgetNet(
        budget_id=budget_id,
        project_id=project_id,
        debits=debits,
        gross=gross,
        net=net,
    )


def compute_project_budget_totals(state: GraphState, project_id: str) -> ProjectBudgetTotals:
    budget_ids = budget_ids_for_project(state, project_id)
    gross = 0.0
    net = 0.0
    for bid in budget_ids:
        calc = compute_budget_net(state, bid)
        if calc is None:
            continue
        gross += safe_num(calc.gross_total)
        net += safe_num(calc.net_total)
    return ProjectBudgetTotals(gross=gross, net=net, budget_count=len(budget_ids))


# --- Team ------------------------------------------------------------------------


def resolve_display_name(state: GraphState, node_id: str) -> str:
    """Live name: aliases read the registry, not their own snapshot."""
    node = state.node(node_id)
    if node is None:
        return ""
    if isinstance(node.data, AliasData):
        resource = state.resource(node.data.resource_id)
        if resource is not None:
            return resource.name.strip()
        return node.data.full_name.strip()
    return node.data.title.strip()


def compute_project_team_by_dept(state: GraphState, project_id: str) -> dict[Phase, list[str]]:
    sets: dict[Phase, set[str]] = {p: set() for p in Phase}
    if state.kind_of(project_id) is not NodeKind.PROJECT:
        return {dept: [] for dept in sets}

    for e in state.edges:
        if e.target == project_id and state.kind_of(e.source) in PEOPLE_KINDS:
            dept = _phase_or_none(e.target_handle)
            person_id = e.source
        elif e.source == project_id and state.kind_of(e.target) in PEOPLE_KINDS:
            dept = _phase_or_none(e.source_handle)
            person_id = e.target
        else:
            continue
        if dept is None:
            continue
        sets[dept].add(person_id)

    def by_name(ids: set[str]) -> list[str]:
        return sorted(ids, key=lambda pid: (resolve_display_name(state, pid).lower(), pid))

    return {dept: by_name(ids) for dept, ids in sets.items()}


# --- Aggregation nodes ------------------------------------------------------------


def _turnover_figure(calc: BudgetNet, category: TurnoverCategory) -> float:
    if category is TurnoverCategory.GROSS:
        return calc.gross_total
    return calc.net.get(Phase(category.value))


def compute_turnover(state: GraphState, turnover_id: str) -> TurnoverValue | None:
    """Sum one category over budgets wired into this turnover node."""
    node = state.node(turnover_id)
    if node is None or not isinstance(node.data, TurnoverData):
        return None
    category = node.data.turnover_type

    incoming = []
    for e in state.edges:
        if e.target == turnover_id and e.source not in incoming:
            incoming.append(e.source)

    value = gross_total = net_total = 0.0
    count = 0
    for bid in incoming:
        calc = compute_budget_net(state, bid)
        if calc is None:
            continue
        count += 1
        value += safe_num(_turnover_figure(calc, category))
        gross_total += safe_num(calc.gross_total)
        net_total += safe_num(calc.net_total)

    return TurnoverValue(
        category=category,
        value=value,
        gross_total=gross_total,
        net_total=net_total,
        budget_count=count,
    )


def compute_ledger(state: GraphState) -> LedgerTotals:
    """Totals across every budget in the graph, wired or not."""
    gross_total = net_total = debits_total = 0.0
    net = {p: 0.0 for p in Phase}
    debits_count = 0
    budget_count = 0

    for node in state.nodes_of_kind(NodeKind.BUDGET):
        calc = compute_budget_net(state, node.id)
        if calc is None:
            continue
        budget_count += 1
        gross_total += safe_num(calc.gross_total)
        net_total += safe_num(calc.net_total)
        for phase in Phase:
            net[phase] += safe_num(calc.net.get(phase))
        debits_total += safe_num(calc.debits.total)
        debits_count += len(calc.debits.lines)

    return LedgerTotals(
        gross_total=gross_total,
        net_total=net_total,
        net=PhaseAmounts(design=net[Phase.DESIGN], dev=net[Phase.DEV], ops=net[Phase.OPS]),
        debits_total=debits_total,
        debits_count=debits_count,
        budget_count=budget_count,
    )


# --- Capacity --------------------------------------------------------------------


def capacity_status(project_count: int) -> CapacityStatus:
    if project_count <= 0:
        return CapacityStatus("Available", "#60a5fa")
    if project_count == 1:
        return CapacityStatus("Lightly Allocated", "#16a34a")
    if project_count <= 3:
        return CapacityStatus("In Motion", "#dc2626")
    if project_count <= 5:
        return CapacityStatus("At Capacity", "#4c1d95")
    return CapacityStatus("Overallocated", "#111827")


def compute_capacity(state: GraphState, person_id: str) -> CapacityStatus | None:
    if state.kind_of(person_id) not in PEOPLE_KINDS:
        return None
    return capacity_status(len(project_ids_for_person(state, person_id)))


# --- Timelines -------------------------------------------------------------------


@dataclass(frozen=True)
class LanePlacement:
    timeline_id: str
    title: str
    lane: int
    start: date
    end: date


@dataclass(frozen=True)
class MasterTimeline:
    start: date
    end: date
    span_days: int
    lane_count: int
    placed: tuple[LanePlacement, ...]


def parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def compute_master_timeline(state: GraphState) -> MasterTimeline | None:
    """Pack every dated timeline into the fewest non-overlapping lanes.

    Returns None when no timeline has usable dates.
    """
    items: list[tuple[date, date, str, str]] = []
    for node in state.nodes_of_kind(NodeKind.TIMELINE):
        data: TimelineData = node.data  # type: ignore[assignment]
        start = parse_iso_date(data.start_date)
        end = parse_iso_date(data.end_date)
        if start is None or end is None:
            continue
        items.append((start, max(start, end), node.id, data.title))

    if not items:
        return None

    items.sort(key=lambda x: x[0])

    lane_ends: list[date] = []
    placed: list[LanePlacement] = []
    for start, end, node_id, title in items:
        lane = next((i for i, last in enumerate(lane_ends) if start > last), -1)
        if lane == -1:
            lane = len(lane_ends)
            lane_ends.append(end)
        else:
            lane_ends[lane] = end
        placed.append(LanePlacement(node_id, title, lane, start, end))

    min_start = min(p.start for p in placed)
    max_end = max(p.end for p in placed)
    return MasterTimeline(
        start=min_start,
        end=max_end,
        span_days=max(1, (max_end - min_start).days + 1),
        lane_count=len(lane_ends),
        placed=tuple(placed),
    )


def project_date_range(state: GraphState, project_id: str) -> tuple[date, date] | None:
    """Range of the timeline fed by the project's timeline port."""
    for e in state.edges:
        if e.source != project_id or e.source_handle != "timeline":
            continue
        node = state.node(e.target)
        if node is None or not isinstance(node.data, TimelineData):
            return None
        start = parse_iso_date(node.data.start_date)
        end = parse_iso_date(node.data.end_date)
        if start is None or end is None:
            return None
        return start, end
    return None


def project_activity(
    state: GraphState,
    project_id: str,
    on: date,
    *,
    pad_days: int = ACTIVITY_PAD_DAYS,
) -> str:
    """'active', 'near', 'inactive' or 'unscheduled' on a given date."""
    r = project_date_range(state, project_id)
    if r is None:
        return "unscheduled"
    start, end = r
    if start <= on <= end:
        return "active"
    pad = timedelta(days=pad_days)
    if start - pad <= on <= end + pad:
        return "near"
    return "inactive"
