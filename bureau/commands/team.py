"""Project team and capacity reports."""

from __future__ import annotations

from datetime import date

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import BureauConfig
from ..graph.rollups import (
    compute_capacity,
    compute_project_budget_totals,
    compute_project_team_by_dept,
    compute_project_timeline_count,
    project_activity,
    project_ids_for_person,
    resolve_display_name,
)
from ..models import DEPT_LABELS, Dept, NodeKind, PEOPLE_KINDS
from .common import emit_json, load_state, money, signed_money


def run_team(
    config: BureauConfig,
    project_id: str,
    *,
    on: date | None = None,
    output_json: bool = False,
) -> int:
    """Team by department plus the project's budget and schedule summary."""
    state = load_state(config)
    console = Console(stderr=True)

    project = state.node(project_id)
    if project is None or project.kind is not NodeKind.PROJECT:
        console.print(f"Project not found: {escape(project_id)}", style="bold red")
        return 1

    team = compute_project_team_by_dept(state, project_id)
    totals = compute_project_budget_totals(state, project_id)
    timelines = compute_project_timeline_count(state, project_id)
    activity = project_activity(state, project_id, on or date.today())

    if output_json:
        emit_json(
            {
                "id": project_id,
                "title": project.title,
                "team": {
                    dept.value: [{"id": pid, "name": resolve_display_name(state, pid)} for pid in ids]
                    for dept, ids in team.items()
                },
                "budgets": {
                    "count": totals.budget_count,
                    "gross": totals.gross,
                    "net": totals.net,
                },
                "timeline_count": timelines,
                "activity": activity,
            }
        )
        return 0

    out = Console()
    out.print(f"[bold]{escape(project.title)}[/bold] [dim]({escape(project_id)})[/dim]")
    for dept, ids in team.items():
        label = DEPT_LABELS[Dept(dept.value)]
        names = ", ".join(escape(resolve_display_name(state, pid)) for pid in ids) or "[dim]-[/dim]"
        out.print(f"  {label}: {names}")
    out.print(
        f"  Budgets: {totals.budget_count}  gross {money(totals.gross)}  net {signed_money(totals.net)}"
    )
    out.print(f"  Timelines: {timelines}  ({activity})")
    return 0


def run_capacity(config: BureauConfig, *, output_json: bool = False) -> int:
    """Allocation status for every person and alias on the canvas."""
    state = load_state(config)

    rows = []
    for node in state.nodes:
        if node.kind not in PEOPLE_KINDS:
            continue
        status = compute_capacity(state, node.id)
        if status is None:
            continue
        rows.append((node, len(project_ids_for_person(state, node.id)), status))
    rows.sort(key=lambda r: (resolve_display_name(state, r[0].id).lower(), r[0].id))

    if output_json:
        emit_json(
            [
                {
                    "id": node.id,
                    "name": resolve_display_name(state, node.id),
                    "dept": node.data.dept.value,
                    "projects": count,
                    "status": status.label,
                    "color": status.color,
                }
                for node, count, status in rows
            ]
        )
        return 0

    console = Console()
    if not rows:
        console.print("[dim]No people on the canvas.[/dim]")
        return 0

    table = Table(title="Capacity")
    table.add_column("Name", style="cyan")
    table.add_column("Department")
    table.add_column("Projects", justify="right")
    table.add_column("Status")
    for node, count, status in rows:
        table.add_row(
            escape(resolve_display_name(state, node.id)),
            DEPT_LABELS[node.data.dept],
            str(count),
            f"[{status.color}]{status.label}[/{status.color}]",
        )
    console.print(table)
    return 0
