"""
Append-only journal of committed graph mutations.

Each committed command is recorded with what it created and what it erased
(nodes, edges, registry records), so a cascade such as deleting a resource
shows its full cost in one line. Format: JSON Lines, never rewritten.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .models import GraphState


@dataclass
class ChangeCounts:
    """Ids that appeared in (created) or vanished from (erased) the graph."""

    nodes: list[str] = field(default_factory=list)
    edges: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.nodes or self.edges or self.resources)


@dataclass
class JournalEntry:
    timestamp: str
    command: str
    params: dict[str, Any]
    created: ChangeCounts
    erased: ChangeCounts

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "command": self.command,
            "params": self.params,
            "created": asdict(self.created),
            "erased": asdict(self.erased),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        return cls(
            timestamp=data["timestamp"],
            command=data["command"],
            params=data.get("params", {}),
            created=ChangeCounts(**data.get("created", {})),
            erased=ChangeCounts(**data.get("erased", {})),
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def diff_states(before: GraphState, after: GraphState) -> tuple[ChangeCounts, ChangeCounts]:
    """(created, erased) ids between two snapshots."""

    def ids(items) -> list[str]:
        return [x.id for x in items]

    created = ChangeCounts()
    erased = ChangeCounts()
    for attr in ("nodes", "edges", "resources"):
        old = ids(getattr(before, attr))
        new = ids(getattr(after, attr))
        old_set, new_set = set(old), set(new)
        setattr(created, attr, [i for i in new if i not in old_set])
        setattr(erased, attr, [i for i in old if i not in new_set])
    return created, erased


class MutationJournal:
    """JSON Lines journal at `<dir>/journal.jsonl`."""

    def __init__(self, path: Path):
        self.path = path

    def record(self, command: Any, before: GraphState, after: GraphState) -> JournalEntry:
        created, erased = diff_states(before, after)
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            command=type(command).__name__,
            params=_jsonable(asdict(command)),
            created=created,
            erased=erased,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), separators=(",", ":")) + "\n")
        return entry

    def read(self, last_n: int | None = None) -> list[JournalEntry]:
        if not self.path.exists():
            return []
        entries = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(JournalEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError):
                    continue  # Skip malformed lines
        if last_n is not None:
            return entries[-last_n:] if last_n > 0 else []
        return entries


def format_entry(entry: JournalEntry) -> str:
    lines = [f"[{entry.timestamp}] {entry.command}"]
    for label, counts in (("Created", entry.created), ("Erased", entry.erased)):
        if not counts:
            continue
        parts = []
        if counts.nodes:
            parts.append(f"{len(counts.nodes)} nodes")
        if counts.edges:
            parts.append(f"{len(counts.edges)} edges")
        if counts.resources:
            parts.append(f"{len(counts.resources)} resources")
        lines.append(f"  {label}: {', '.join(parts)}")
    return "\n".join(lines)
