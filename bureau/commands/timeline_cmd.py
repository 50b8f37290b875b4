"""Master timeline and dock state reports."""

from __future__ import annotations

from datetime import date

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import BureauConfig
from ..graph.docking import compute_dock_state
from ..graph.rollups import compute_master_timeline, owner_project_id, project_activity
from ..models import NodeKind
from .common import emit_json, load_state


def run_timeline(config: BureauConfig, *, on: date | None = None, output_json: bool = False) -> int:
    """Lane layout of every dated timeline and project activity on a date."""
    state = load_state(config)
    on = on or date.today()
    master = compute_master_timeline(state)
    activity = {
        node.id: (node.title, project_activity(state, node.id, on))
        for node in state.nodes_of_kind(NodeKind.PROJECT)
    }

    if output_json:
        emit_json(
            {
                "on": on.isoformat(),
                "range": (
                    None
                    if master is None
                    else {
                        "start": master.start.isoformat(),
                        "end": master.end.isoformat(),
                        "span_days": master.span_days,
                        "lane_count": master.lane_count,
                    }
                ),
                "timelines": [
                    {
                        "id": p.timeline_id,
                        "title": p.title,
                        "lane": p.lane,
                        "start": p.start.isoformat(),
                        "end": p.end.isoformat(),
                        "project_id": owner_project_id(state, p.timeline_id),
                    }
                    for p in (master.placed if master else ())
                ],
                "activity": {pid: status for pid, (_, status) in activity.items()},
            }
        )
        return 0

    console = Console()
    if master is None:
        console.print("[dim]No dated timelines.[/dim]")
    else:
        console.print(
            f"[bold]Master timeline[/bold] {master.start} to {master.end} "
            f"({master.span_days} days, {master.lane_count} lanes)"
        )
        table = Table()
        table.add_column("Lane", justify="right")
        table.add_column("Timeline", style="cyan")
        table.add_column("Start")
        table.add_column("End")
        for p in sorted(master.placed, key=lambda p: (p.lane, p.start)):
            table.add_row(str(p.lane + 1), escape(p.title), p.start.isoformat(), p.end.isoformat())
        console.print(table)

    if activity:
        console.print(f"\n[bold]Projects on {on.isoformat()}[/bold]")
        styles = {"active": "green", "near": "yellow", "inactive": "dim", "unscheduled": "dim"}
        for title, status in activity.values():
            console.print(f"  {escape(title)}: [{styles[status]}]{status}[/{styles[status]}]")
    return 0


def run_dock(config: BureauConfig, *, output_json: bool = False) -> int:
    """Which budget/timeline nodes are visually docked to each other."""
    state = load_state(config)
    flags = compute_dock_state(state, config.dock)

    if output_json:
        emit_json(
            {
                node_id: {"top": f.top, "bottom": f.bottom, "with": f.with_id}
                for node_id, f in flags.items()
            }
        )
        return 0

    console = Console()
    docked = [(node_id, f) for node_id, f in flags.items() if f.bottom]
    if not docked:
        console.print("[dim]No docked nodes.[/dim]")
        return 0
    for node_id, f in docked:
        upper = state.node(node_id)
        lower = state.node(f.with_id)
        lower_title = lower.title if lower else f.with_id
        console.print(f"  {escape(upper.title)} [dim]docked above[/dim] {escape(lower_title)}")
    return 0
