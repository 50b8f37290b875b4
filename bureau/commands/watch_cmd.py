"""Watch command - live rollup summary of a snapshot file."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.markup import escape

from ..config import BureauConfig
from ..graph.rollups import compute_ledger
from ..lint import GraphLint, at_or_above
from ..models import GraphState
from ..watcher import run_watch_loop
from .common import money


def summarize(state: GraphState) -> str:
    """One-line summary of a freshly loaded snapshot."""
    ledger = compute_ledger(state)
    problems = len(at_or_above(GraphLint(state).run_all(), "warning"))
    text = (
        f"{len(state.nodes)} nodes, {len(state.edges)} edges, "
        f"{ledger.budget_count} budgets, net {money(ledger.net_total)}"
    )
    if problems:
        text += f", {problems} lint problems"
    return text


def run_watch(config: BureauConfig) -> None:
    """
    Watch the snapshot file and print a summary whenever it changes.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    console.print(f"[bold]Watching[/bold] {escape(str(config.snapshot))}")
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    reloads = 0

    def on_change(state: GraphState) -> None:
        nonlocal reloads
        reloads += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {summarize(state)}", highlight=False)

    try:
        run_watch_loop(config.snapshot, on_change)
    except KeyboardInterrupt:
        pass
    console.print()
    console.print(f"[bold]Stopped.[/bold] {reloads} reloads.")
