"""CLI entrypoint for bureau."""

import sys
from datetime import date
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_FILENAME, load_config
from .models import Dept


def _parse_date(ctx: click.Context, param: click.Parameter, value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not an ISO date (YYYY-MM-DD).")


_on_option = click.option(
    "--on",
    callback=_parse_date,
    default=None,
    metavar="YYYY-MM-DD",
    help="Date to evaluate project activity on (defaults to today)",
)
_json_option = click.option("--json", "output_json", is_flag=True, help="Output results as JSON")


@click.group()
@click.version_option(__version__, prog_name="bureau")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Path to {CONFIG_FILENAME} (defaults to ./{CONFIG_FILENAME})",
)
@click.option(
    "--snapshot",
    "-s",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Snapshot document to read (overrides [paths] snapshot)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, snapshot: Path | None) -> None:
    """bureau - graph truth model for studio operations planning.

    Reports budgets, team allocation and schedules from a saved canvas
    snapshot, and checks the snapshot's integrity.
    """
    from dataclasses import replace

    ctx.ensure_object(dict)
    path = config_path or Path.cwd() / CONFIG_FILENAME
    if config_path is not None and not config_path.exists():
        raise click.BadParameter(f"File '{config_path}' does not exist.", param_hint="--config")
    try:
        config = load_config(path)
    except ValueError as exc:
        raise click.ClickException(f"{path}: {exc}")

    if snapshot is not None:
        config = replace(config, snapshot=snapshot)
    ctx.obj["config"] = config


@cli.command()
@_json_option
@click.pass_context
def budgets(ctx: click.Context, output_json: bool) -> None:
    """Gross, debits and net for every budget."""
    from .commands.budgets import run_budgets

    sys.exit(run_budgets(ctx.obj["config"], output_json=output_json))


@cli.command()
@_json_option
@click.pass_context
def ledger(ctx: click.Context, output_json: bool) -> None:
    """Studio-wide totals, overruns and turnover nodes."""
    from .commands.budgets import run_ledger

    sys.exit(run_ledger(ctx.obj["config"], output_json=output_json))


@cli.command()
@click.argument("project_id")
@_on_option
@_json_option
@click.pass_context
def team(ctx: click.Context, project_id: str, on: date | None, output_json: bool) -> None:
    """Team by department for PROJECT_ID."""
    from .commands.team import run_team

    sys.exit(run_team(ctx.obj["config"], project_id, on=on, output_json=output_json))


@cli.command()
@_json_option
@click.pass_context
def capacity(ctx: click.Context, output_json: bool) -> None:
    """Allocation status for every person and alias."""
    from .commands.team import run_capacity

    sys.exit(run_capacity(ctx.obj["config"], output_json=output_json))


@cli.command()
@_on_option
@_json_option
@click.pass_context
def timeline(ctx: click.Context, on: date | None, output_json: bool) -> None:
    """Master timeline lanes and project activity."""
    from .commands.timeline_cmd import run_timeline

    sys.exit(run_timeline(ctx.obj["config"], on=on, output_json=output_json))


@cli.command()
@_json_option
@click.pass_context
def dock(ctx: click.Context, output_json: bool) -> None:
    """Docked budget/timeline pairs."""
    from .commands.timeline_cmd import run_dock

    sys.exit(run_dock(ctx.obj["config"], output_json=output_json))


@cli.command()
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@_json_option
@click.pass_context
def lint(ctx: click.Context, fail_on: str, output_json: bool) -> None:
    """Check the snapshot for integrity problems.

    Errors (illegal or dangling edges, duplicate assignments, orphan aliases)
    only appear in hand-edited snapshots. Warnings flag budgets shared by
    several projects and external fees that no budget absorbs. Info lists
    phase overruns.
    """
    from .commands.lint import run_lint

    sys.exit(run_lint(ctx.obj["config"], fail_on, output_json))


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Print a rollup summary whenever the snapshot changes.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    run_watch(ctx.obj["config"])


# -----------------------------------------------------------------------------
# Registry and journal
# -----------------------------------------------------------------------------


@cli.group()
def resource() -> None:
    """Edit the master resource registry."""
    pass


@resource.command("add")
@click.argument("name")
@click.option(
    "--dept",
    type=click.Choice([d.value for d in Dept]),
    default=Dept.UNASSIGNED.value,
    show_default=True,
)
@click.option("--external", is_flag=True, help="External contractor (fees can debit budgets)")
@click.option("--id", "resource_id", default=None, help="Explicit resource id")
@click.pass_context
def resource_add(ctx: click.Context, name: str, dept: str, external: bool, resource_id: str | None) -> None:
    """Add NAME to the registry."""
    from .commands.resource_cmd import run_resource_add

    sys.exit(run_resource_add(ctx.obj["config"], name, dept=dept, external=external, resource_id=resource_id))


@resource.command("remove")
@click.argument("resource_id")
@click.pass_context
def resource_remove(ctx: click.Context, resource_id: str) -> None:
    """Remove RESOURCE_ID, its aliases and their edges."""
    from .commands.resource_cmd import run_resource_remove

    sys.exit(run_resource_remove(ctx.obj["config"], resource_id))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@_json_option
@click.pass_context
def journal(ctx: click.Context, last_n: int | None, output_json: bool) -> None:
    """Show the mutation journal."""
    from .commands.resource_cmd import run_journal

    run_journal(ctx.obj["config"], last_n=last_n, output_json=output_json)


if __name__ == "__main__":
    cli()
