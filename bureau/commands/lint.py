"""Lint command implementation."""

import json
from pathlib import Path

from rich.console import Console

from ..config import BureauConfig
from ..lint import GraphLint, LintResult, at_or_above
from ..persistence import SnapshotError, parse_document, read_document


def run_lint(config: BureauConfig, fail_on: str = "error", output_json: bool = False) -> int:
    """Run integrity checks on the snapshot file.

    Unlike the report commands, an unreadable snapshot is itself a failure
    here rather than an empty graph.

    Returns:
        Exit code (0 = success, 1 = failures found)
    """
    console = Console(stderr=True)
    path: Path = config.snapshot

    document = read_document(path)
    if document is None:
        console.print(f"Snapshot not found or unreadable: {path}", style="bold red")
        return 1
    try:
        state = parse_document(document)
    except SnapshotError as exc:
        console.print(f"Invalid snapshot: {exc}", style="bold red")
        return 1

    results = GraphLint(state).run_all()

    # Sort by level (errors first)
    level_order = {"error": 0, "warning": 1, "info": 2}
    results.sort(key=lambda r: (level_order.get(r.level, 99), r.rule, r.subject))

    counts = {"error": 0, "warning": 0, "info": 0}
    for r in results:
        counts[r.level] = counts.get(r.level, 0) + 1

    if output_json:
        _output_json(results, counts)
    else:
        _print_human_output(console, results, counts)

    return 1 if at_or_above(results, fail_on) else 0


def _output_json(results: list[LintResult], counts: dict[str, int]) -> None:
    output = {
        "errors": [r.to_dict() for r in results if r.level == "error"],
        "warnings": [r.to_dict() for r in results if r.level == "warning"],
        "info": [r.to_dict() for r in results if r.level == "info"],
        "summary": {
            "errors": counts["error"],
            "warnings": counts["warning"],
            "info": counts["info"],
        },
    }
    print(json.dumps(output, indent=2))


def _print_human_output(console: Console, results: list[LintResult], counts: dict[str, int]) -> None:
    styles = {"error": "bold red", "warning": "yellow", "info": "dim"}
    for r in results:
        console.print(str(r), style=styles[r.level], highlight=False, markup=False)

    if results:
        console.print()
    summary = f"{counts['error']} errors, {counts['warning']} warnings, {counts['info']} info"
    if counts["error"]:
        console.print(f"✗ {summary}", style="bold red")
    else:
        console.print(f"✓ {summary}", style="green")
