"""Helpers shared by the report commands."""

from __future__ import annotations

import json
from typing import Any

from ..config import BureauConfig
from ..models import CURRENCY, GraphState
from ..persistence import load_snapshot


def load_state(config: BureauConfig) -> GraphState:
    return load_snapshot(config.snapshot)


def money(value: float) -> str:
    return f"{value:,.2f}"


def signed_money(value: float) -> str:
    """Money with red styling when negative."""
    text = money(value)
    return f"[red]{text}[/red]" if value < 0 else text


def currency_title(title: str) -> str:
    return f"{title} ({CURRENCY})"


def emit_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))
