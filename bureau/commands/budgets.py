"""Budget, turnover and ledger reports."""

from __future__ import annotations

from dataclasses import asdict

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import BureauConfig
from ..graph.rollups import (
    BudgetNet,
    PhaseAmounts,
    compute_budget_net,
    compute_ledger,
    compute_turnover,
)
from ..models import GraphState, NodeKind
from .common import currency_title, emit_json, load_state, money, signed_money


def _amounts_dict(amounts: PhaseAmounts) -> dict[str, float]:
    return {**asdict(amounts), "total": amounts.total}


def _project_title(state: GraphState, project_id: str | None) -> str:
    node = state.node(project_id)
    return node.title if node else ""


def _budget_rows(state: GraphState) -> list[tuple[str, BudgetNet]]:
    rows = []
    for node in state.nodes_of_kind(NodeKind.BUDGET):
        calc = compute_budget_net(state, node.id)
        if calc is not None:
            rows.append((node.title, calc))
    return rows


def _budget_to_dict(state: GraphState, title: str, calc: BudgetNet) -> dict:
    return {
        "id": calc.budget_id,
        "title": title,
        "project_id": calc.project_id,
        "project": _project_title(state, calc.project_id),
        "gross": _amounts_dict(calc.gross),
        "debits": [
            {
                "person_id": line.person_id,
                "person": line.person_name,
                "phase": line.phase.value,
                "amount": line.amount,
            }
            for line in calc.debits.lines
        ],
        "net": _amounts_dict(calc.net),
    }


def run_budgets(config: BureauConfig, *, output_json: bool = False) -> int:
    """Gross vs net for every budget, with the external debits behind it."""
    state = load_state(config)
    rows = _budget_rows(state)

    if output_json:
        emit_json([_budget_to_dict(state, title, calc) for title, calc in rows])
        return 0

    console = Console()
    if not rows:
        console.print("[dim]No budgets.[/dim]")
        return 0

    table = Table(title=currency_title("Budgets"))
    table.add_column("Budget", style="cyan")
    table.add_column("Project")
    table.add_column("Gross", justify="right")
    table.add_column("Debits", justify="right")
    table.add_column("Net", justify="right")
    for title, calc in rows:
        table.add_row(
            escape(title),
            escape(_project_title(state, calc.project_id)) or "[dim]-[/dim]",
            money(calc.gross_total),
            money(calc.debits.total),
            signed_money(calc.net_total),
        )
    console.print(table)

    lines = [(title, line) for title, calc in rows for line in calc.debits.lines]
    if lines:
        debits = Table(title=currency_title("External debits"))
        debits.add_column("Budget", style="cyan")
        debits.add_column("Person")
        debits.add_column("Phase", style="magenta")
        debits.add_column("Amount", justify="right")
        for title, line in lines:
            debits.add_row(escape(title), escape(line.person_name), line.phase.value, money(line.amount))
        console.print(debits)
    return 0


def run_ledger(config: BureauConfig, *, output_json: bool = False) -> int:
    """Studio-wide totals plus every turnover node."""
    state = load_state(config)
    ledger = compute_ledger(state)

    turnovers = []
    for node in state.nodes_of_kind(NodeKind.TURNOVER):
        value = compute_turnover(state, node.id)
        if value is not None:
            turnovers.append((node, value))

    if output_json:
        emit_json(
            {
                "ledger": {
                    "budget_count": ledger.budget_count,
                    "gross_total": ledger.gross_total,
                    "net_total": ledger.net_total,
                    "net": _amounts_dict(ledger.net),
                    "debits_total": ledger.debits_total,
                    "debits_count": ledger.debits_count,
                    "overrun": _amounts_dict(ledger.overrun),
                },
                "turnovers": [
                    {
                        "id": node.id,
                        "title": node.title,
                        "category": value.category.value,
                        "value": value.value,
                        "budget_count": value.budget_count,
                        "debit_delta": value.debit_delta,
                    }
                    for node, value in turnovers
                ],
            }
        )
        return 0

    console = Console()
    console.print(f"[bold]Ledger[/bold] ({ledger.budget_count} budgets)")
    console.print(f"  Gross: {money(ledger.gross_total)}")
    console.print(f"  Debits: {money(ledger.debits_total)} across {ledger.debits_count} lines")
    console.print(f"  Net: {signed_money(ledger.net_total)}")
    for phase, amount in asdict(ledger.net).items():
        console.print(f"    {phase}: {signed_money(amount)}")
    if ledger.has_overrun:
        console.print(f"  [red]Overrun: {money(ledger.overrun_total)}[/red]")

    if turnovers:
        table = Table(title=currency_title("Turnover"))
        table.add_column("Node", style="cyan")
        table.add_column("Category", style="magenta")
        table.add_column("Budgets", justify="right")
        table.add_column("Value", justify="right")
        for node, value in turnovers:
            table.add_row(
                escape(node.title),
                value.category.value,
                str(value.budget_count),
                signed_money(value.value),
            )
        console.print(table)
    return 0
