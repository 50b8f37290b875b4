"""Tests for budget, team, capacity and timeline rollups."""

from datetime import date

import pytest

from bureau.graph.rollups import (
    capacity_status,
    compute_budget_net,
    compute_capacity,
    compute_ledger,
    compute_master_timeline,
    compute_project_budget_totals,
    compute_project_debits,
    compute_project_team_by_dept,
    compute_project_timeline_count,
    compute_turnover,
    excluded_unscoped_debits,
    owner_project_id,
    project_activity,
    safe_num,
)
from bureau.models import (
    BudgetData,
    Edge,
    GraphState,
    Node,
    NodeKind,
    Phase,
    ProjectData,
    TimelineData,
)
from bureau.store import (
    AddNode,
    AddResource,
    Connect,
    PlaceResource,
    UpdateNode,
    UpdateResource,
)


def test_unconnected_budget_nets_to_gross():
    state = GraphState(nodes=(Node("b1", BudgetData(design_amount=1000, dev_amount=500)),))

    calc = compute_budget_net(state, "b1")

    assert calc.project_id is None
    assert calc.net == calc.gross
    assert (calc.net.design, calc.net.dev, calc.net.ops) == (1000, 500, 0)
    assert calc.gross_total == 1500


def test_budget_net_is_none_for_other_kinds():
    state = GraphState(nodes=(Node("p1", ProjectData()),))
    assert compute_budget_net(state, "p1") is None
    assert compute_budget_net(state, "missing") is None


def test_non_finite_amounts_count_as_zero():
    state = GraphState(nodes=(Node("b1", BudgetData(design_amount=float("nan"), dev_amount=float("inf"))),))

    calc = compute_budget_net(state, "b1")

    assert calc.gross.design == 0
    assert calc.gross.dev == 0
    assert safe_num("abc") == 0
    assert safe_num(None) == 0


def test_single_budget_absorbs_unscoped_external_fee(atlas):
    calc = compute_budget_net(atlas, "b1")

    assert calc.project_id == "p1"
    assert calc.net.design == 700
    assert calc.net.dev == 500
    assert len(calc.debits.lines) == 1
    line = calc.debits.lines[0]
    assert line.person_name == "Ada Lovelace"
    assert line.phase is Phase.DESIGN
    assert line.amount == 300


def test_unscoped_fee_is_excluded_when_project_has_two_budgets(atlas, apply):
    state = apply(
        AddNode(NodeKind.BUDGET, "b2", fields={"design_amount": 400}),
        Connect("p1", "b2", "budget", "budget-in", edge_id="e-p1-b2"),
    )

    assert compute_budget_net(state, "b1").net.design == 1000
    assert compute_budget_net(state, "b2").net.design == 400
    dropped = excluded_unscoped_debits(state, "p1")
    assert [d.amount for d in dropped] == [300]


def test_scoped_fee_counts_only_against_its_budget(atlas, apply):
    state = apply(
        AddNode(NodeKind.BUDGET, "b2", fields={"design_amount": 400}),
        Connect("p1", "b2", "budget", "budget-in", edge_id="e-p1-b2"),
        UpdateNode("a1", {"bill_to_budget_id": "b2"}),
    )

    assert compute_budget_net(state, "b1").net.design == 1000
    assert compute_budget_net(state, "b2").net.design == 100
    assert excluded_unscoped_debits(state, "p1") == []


def test_day_rate_and_internal_fees_never_debit(atlas, apply):
    state = apply(UpdateNode("a1", {"fee_mode": "day_rate"}))
    assert compute_budget_net(state, "b1").net.design == 1000

    state = apply(
        UpdateNode("a1", {"fee_mode": "fixed"}),
        UpdateResource("r1", {"compensation": "full_time"}),
    )
    assert compute_budget_net(state, "b1").debits.lines == ()


def test_phase_falls_back_to_the_assignment_handle(atlas, apply):
    state = apply(
        AddResource("Grace Hopper", resource_id="r2", fields={"compensation": "external"}),
        PlaceResource("r2", node_id="a2", fields={"fee_value": 50}),
        Connect("a2", "p1", "project-out", "dev", edge_id="e-a2-p1"),
    )

    debits = compute_project_debits(state, "p1")

    assert debits.by_phase.design == 300
    assert debits.by_phase.dev == 50
    assert compute_budget_net(state, "b1").net.dev == 450


def test_external_person_fee_uses_its_bill_to_phase(atlas, apply):
    state = apply(
        AddNode(NodeKind.PERSON, "ext", fields={"title": "Lin", "is_external": True, "external_fee": 120}),
        Connect("ext", "p1", "project-out", "ops", edge_id="e-ext"),
    )

    lines = {line.person_id: line for line in compute_budget_net(state, "b1").debits.lines}

    # Persons default to billing design regardless of the department handle.
    assert lines["ext"].phase is Phase.DESIGN
    assert compute_budget_net(state, "b1").net.design == 580


def test_project_budget_totals(atlas):
    totals = compute_project_budget_totals(atlas, "p1")

    assert totals.budget_count == 1
    assert totals.gross == 1500
    assert totals.net == 1200


def test_turnover_sums_category_over_wired_budgets(atlas, apply):
    state = apply(
        AddNode(NodeKind.TURNOVER, "gross"),
        AddNode(NodeKind.TURNOVER, "design", fields={"turnover_type": "design"}),
        Connect("b1", "gross", "budget-out", "turnover-in"),
        Connect("b1", "design", "budget-out", "turnover-in"),
    )

    gross = compute_turnover(state, "gross")
    design = compute_turnover(state, "design")

    assert gross.value == 1500
    assert gross.budget_count == 1
    assert gross.debit_delta == 300
    assert design.value == 700
    assert compute_turnover(state, "b1") is None


def test_ledger_spans_all_budgets_and_reports_overruns(atlas, apply):
    state = apply(
        UpdateNode("b1", {"design_amount": 100}),
        AddNode(NodeKind.BUDGET, "loose", fields={"ops_amount": 250}),
    )

    ledger = compute_ledger(state)

    assert ledger.budget_count == 2
    assert ledger.gross_total == 850
    assert ledger.net.design == -200
    assert ledger.net.ops == 250
    assert ledger.debits_total == 300
    assert ledger.debits_count == 1
    assert ledger.overrun.design == -200
    assert ledger.overrun_total == -200
    assert ledger.has_overrun


@pytest.mark.parametrize(
    "count,label",
    [
        (0, "Available"),
        (1, "Lightly Allocated"),
        (2, "In Motion"),
        (3, "In Motion"),
        (4, "At Capacity"),
        (5, "At Capacity"),
        (6, "Overallocated"),
    ],
)
def test_capacity_thresholds(count, label):
    assert capacity_status(count).label == label


def test_capacity_follows_project_connections(apply):
    state = apply(AddNode(NodeKind.PERSON, "ann"))
    assert compute_capacity(state, "ann").label == "Available"

    state = apply(
        AddNode(NodeKind.PROJECT, "p1"),
        AddNode(NodeKind.PROJECT, "p2"),
        Connect("ann", "p1", "project-out", "design"),
        Connect("ann", "p2", "project-out", "dev"),
    )

    status = compute_capacity(state, "ann")
    assert status.label == "In Motion"
    assert status.color == "#dc2626"
    assert compute_capacity(state, "p1") is None


def test_team_by_department_is_sorted_by_live_name(atlas, apply):
    state = apply(
        AddNode(NodeKind.PERSON, "zed", fields={"title": "Zed"}),
        AddNode(NodeKind.PERSON, "bea", fields={"title": "Bea"}),
        Connect("zed", "p1", "project-out", "design"),
        Connect("bea", "p1", "project-out", "design"),
        Connect("bea", "p1", "project-out", "ops"),
        UpdateResource("r1", {"name": "Cora Lovelace"}),
    )

    team = compute_project_team_by_dept(state, "p1")

    assert team[Phase.DESIGN] == ["bea", "a1", "zed"]
    assert team[Phase.OPS] == ["bea"]
    assert team[Phase.DEV] == []
    assert compute_project_team_by_dept(state, "b1") == {p: [] for p in Phase}


def _timeline(node_id: str, start: str, end: str) -> Node:
    return Node(node_id, TimelineData(title=node_id, start_date=start, end_date=end))


def test_master_timeline_packs_lanes_greedily():
    state = GraphState(
        nodes=(
            _timeline("t1", "2026-01-01", "2026-01-10"),
            _timeline("t2", "2026-01-05", "2026-01-20"),
            _timeline("t3", "2026-01-11", "2026-01-15"),
            _timeline("undated", "", ""),
        )
    )

    master = compute_master_timeline(state)
    lanes = {p.timeline_id: p.lane for p in master.placed}

    assert lanes == {"t1": 0, "t2": 1, "t3": 0}
    assert master.lane_count == 2
    assert master.start == date(2026, 1, 1)
    assert master.end == date(2026, 1, 20)
    assert master.span_days == 20


def test_master_timeline_clamps_inverted_ranges():
    state = GraphState(nodes=(_timeline("t1", "2026-02-10", "2026-02-01"),))

    master = compute_master_timeline(state)

    assert master.placed[0].end == date(2026, 2, 10)
    assert master.span_days == 1
    assert compute_master_timeline(GraphState()) is None


def test_project_activity_and_owner():
    state = GraphState(
        nodes=(
            Node("p1", ProjectData()),
            Node("p2", ProjectData()),
            _timeline("t1", "2026-03-01", "2026-03-31"),
        ),
        edges=(Edge("e1", "p1", "t1", "timeline", "timeline-in"),),
    )

    assert project_activity(state, "p1", date(2026, 3, 15)) == "active"
    assert project_activity(state, "p1", date(2026, 4, 10)) == "near"
    assert project_activity(state, "p1", date(2026, 2, 20)) == "near"
    assert project_activity(state, "p1", date(2026, 5, 1)) == "inactive"
    assert project_activity(state, "p2", date(2026, 3, 15)) == "unscheduled"
    assert owner_project_id(state, "t1") == "p1"
    assert compute_project_timeline_count(state, "p1") == 1
    assert compute_project_timeline_count(state, "p2") == 0
