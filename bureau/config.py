from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .graph.docking import DEFAULT_TUNING, DockTuning
from .models import DEFAULT_STUDIO, Studio

CONFIG_FILENAME = "bureau.toml"
DEFAULT_SNAPSHOT = Path("bureau.json")
DEFAULT_JOURNAL = Path(".bureau") / "journal.jsonl"


@dataclass(frozen=True)
class BureauConfig:
    dock: DockTuning = DEFAULT_TUNING
    default_studio: Studio = DEFAULT_STUDIO
    snapshot: Path = field(default=DEFAULT_SNAPSHOT)
    journal: Path = field(default=DEFAULT_JOURNAL)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _positive_float(table: dict[str, Any], key: str, default: float) -> float:
    raw = table.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"dock.{key} must be a number")
    value = float(raw)
    if value < 0:
        raise ValueError(f"dock.{key} must not be negative")
    return value


def _load_dock(table: dict[str, Any]) -> DockTuning:
    d = DEFAULT_TUNING
    overlap = _positive_float(table, "visual_min_x_overlap", d.visual_min_x_overlap)
    if overlap > 1:
        raise ValueError("dock.visual_min_x_overlap must be between 0 and 1")
    return DockTuning(
        gap=_positive_float(table, "gap", d.gap),
        snap_distance=_positive_float(table, "snap_distance", d.snap_distance),
        x_snap_distance=_positive_float(table, "x_snap_distance", d.x_snap_distance),
        visual_y_tolerance=_positive_float(table, "visual_y_tolerance", d.visual_y_tolerance),
        visual_min_x_overlap=overlap,
    )


def _resolve(base: Path, raw: Any, default: Path, key: str) -> Path:
    if raw is None:
        value = default
    elif isinstance(raw, str) and raw.strip():
        value = Path(raw.strip())
    else:
        raise ValueError(f"paths.{key} must be a non-empty string")
    return value if value.is_absolute() else base / value


def load_config(path: Path) -> BureauConfig:
    """
    Load `bureau.toml`.

    Relative paths resolve against the file's directory. A missing file
    yields defaults rooted at that directory.
    """
    import tomllib

    base = path.parent
    if not path.exists():
        return BureauConfig(snapshot=base / DEFAULT_SNAPSHOT, journal=base / DEFAULT_JOURNAL)

    data = tomllib.loads(path.read_text(encoding="utf-8"))

    defaults = _coerce_dict(data.get("defaults"))
    studio_raw = str(defaults.get("studio", DEFAULT_STUDIO.value)).strip()
    try:
        studio = Studio(studio_raw)
    except ValueError as exc:
        valid = ", ".join(s.value for s in Studio)
        raise ValueError(f"defaults.studio must be one of: {valid}") from exc

    paths = _coerce_dict(data.get("paths"))
    return BureauConfig(
        dock=_load_dock(_coerce_dict(data.get("dock"))),
        default_studio=studio,
        snapshot=_resolve(base, paths.get("snapshot"), DEFAULT_SNAPSHOT, "snapshot"),
        journal=_resolve(base, paths.get("journal"), DEFAULT_JOURNAL, "journal"),
    )
