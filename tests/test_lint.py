"""Golden tests for graph lint rules."""

from bureau.lint import GraphLint, at_or_above
from bureau.models import (
    AliasData,
    BudgetData,
    Edge,
    GraphState,
    Node,
    NodeKind,
    PersonData,
    ProjectData,
)
from bureau.store import AddNode, Connect, UpdateNode


def _rules(results) -> list[str]:
    return sorted(r.rule for r in results)


def test_store_built_graph_is_clean(atlas):
    results = GraphLint(atlas).run_all()
    assert at_or_above(results, "warning") == []


def test_hand_edited_snapshot_errors():
    state = GraphState(
        nodes=(
            Node("p1", ProjectData()),
            Node("p2", ProjectData()),
            Node("b1", BudgetData()),
            Node("ann", PersonData()),
            Node("a1", AliasData(resource_id="gone")),
        ),
        edges=(
            Edge("bad", "b1", "p1", "budget", "budget-in"),
            Edge("loose", "p1", "nowhere", "budget", "budget-in"),
            Edge("as1", "a1", "p1", "project-out", "design"),
            Edge("as2", "a1", "p2", "project-out", "dev"),
            Edge("ok", "ann", "p1", "project-out", "ops"),
        ),
    )

    results = GraphLint(state).run_all()
    by_rule = {r.rule: r for r in results}

    assert _rules(at_or_above(results, "error")) == [
        "dangling-edge",
        "duplicate-assignment",
        "invalid-edge",
        "orphan-alias",
    ]
    assert by_rule["invalid-edge"].subject == "bad"
    assert by_rule["dangling-edge"].subject == "loose"
    assert "nowhere" in by_rule["dangling-edge"].message
    assert by_rule["duplicate-assignment"].subject == "a1"
    assert by_rule["orphan-alias"].subject == "a1"


def test_budget_shared_by_two_projects_warns():
    state = GraphState(
        nodes=(Node("p1", ProjectData()), Node("p2", ProjectData()), Node("b1", BudgetData())),
        edges=(
            Edge("e1", "p1", "b1", "budget", "budget-in"),
            Edge("e2", "p2", "b1", "budget", "budget-in"),
        ),
    )

    results = GraphLint(state).check_budget_multi_project()

    assert len(results) == 1
    assert results[0].level == "warning"
    assert results[0].subject == "b1"


def test_unscoped_debit_on_multi_budget_project_warns(atlas, apply):
    state = apply(
        AddNode(NodeKind.BUDGET, "b2"),
        Connect("p1", "b2", "budget", "budget-in"),
    )

    results = GraphLint(state).check_unscoped_debits()
    assert len(results) == 1
    assert results[0].rule == "unscoped-debit-excluded"
    assert results[0].subject == "a1"
    assert "Ada Lovelace" in results[0].message

    state = apply(UpdateNode("a1", {"bill_to_budget_id": "b2"}))
    assert GraphLint(state).check_unscoped_debits() == []


def test_overrun_is_info(atlas, apply):
    state = apply(UpdateNode("b1", {"design_amount": 100}))

    results = GraphLint(state).run_all()

    assert [r.rule for r in results] == ["budget-overrun"]
    assert results[0].level == "info"
    assert "-200.00" in results[0].message
    assert at_or_above(results, "warning") == []
    assert str(results[0]).startswith("INFO: [budget-overrun] b1")
