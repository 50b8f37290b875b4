"""Graph truth model: connection protocol, rollups and docking geometry."""

from .protocol import Connection, build_edge, rebuild_edge, validate
from .rollups import (
    compute_budget_net,
    compute_capacity,
    compute_ledger,
    compute_project_budget_totals,
    compute_project_team_by_dept,
    compute_project_timeline_count,
    compute_turnover,
)
from .docking import DockTuning, compute_dock_state, snap_position

__all__ = [
    "Connection",
    "build_edge",
    "rebuild_edge",
    "validate",
    "compute_budget_net",
    "compute_capacity",
    "compute_ledger",
    "compute_project_budget_totals",
    "compute_project_team_by_dept",
    "compute_project_timeline_count",
    "compute_turnover",
    "DockTuning",
    "compute_dock_state",
    "snap_position",
]
