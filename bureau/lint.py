"""Integrity lint for graph snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .graph.protocol import is_legal_tuple
from .graph.rollups import compute_budget_net, excluded_unscoped_debits
from .models import AliasData, GraphState, NodeKind, PEOPLE_KINDS, Phase

LEVELS = ("info", "warning", "error")


@dataclass
class LintResult:
    """A single lint finding."""

    level: Literal["error", "warning", "info"]
    rule: str
    subject: str  # node or edge id
    message: str

    def __str__(self) -> str:
        return f"{self.level.upper()}: [{self.rule}] {self.subject} - {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {
            "level": self.level,
            "rule": self.rule,
            "subject": self.subject,
            "message": self.message,
        }


def at_or_above(results: list[LintResult], level: str) -> list[LintResult]:
    floor = LEVELS.index(level)
    return [r for r in results if LEVELS.index(r.level) >= floor]


class GraphLint:
    """Collection of integrity checks over one snapshot.

    A graph built only through the store never trips the error-level rules;
    they exist for hand-edited or foreign snapshot files.
    """

    def __init__(self, state: GraphState):
        self.state = state

    def run_all(self) -> list[LintResult]:
        results = []
        results.extend(self.check_dangling_edges())
        results.extend(self.check_invalid_edges())
        results.extend(self.check_duplicate_assignments())
        results.extend(self.check_orphan_aliases())
        results.extend(self.check_budget_multi_project())
        results.extend(self.check_unscoped_debits())
        results.extend(self.check_budget_overruns())
        return results

    def check_dangling_edges(self) -> list[LintResult]:
        results = []
        for e in self.state.edges:
            missing = [nid for nid in (e.source, e.target) if self.state.node(nid) is None]
            if missing:
                results.append(
                    LintResult(
                        level="error",
                        rule="dangling-edge",
                        subject=e.id,
                        message=f"Endpoint(s) missing: {', '.join(missing)}",
                    )
                )
        return results

    def check_invalid_edges(self) -> list[LintResult]:
        """Edges whose (kinds, handles) tuple is outside the whitelist."""
        results = []
        for e in self.state.edges:
            source_kind = self.state.kind_of(e.source)
            target_kind = self.state.kind_of(e.target)
            if source_kind is None or target_kind is None:
                continue  # reported as dangling
            if e.source == e.target or not is_legal_tuple(
                source_kind, target_kind, e.source_handle, e.target_handle
            ):
                results.append(
                    LintResult(
                        level="error",
                        rule="invalid-edge",
                        subject=e.id,
                        message=(
                            f"{source_kind.value}:{e.source_handle} -> "
                            f"{target_kind.value}:{e.target_handle} is not a legal connection"
                        ),
                    )
                )
        return results

    def check_duplicate_assignments(self) -> list[LintResult]:
        results = []
        for alias in self.state.nodes_of_kind(NodeKind.ALIAS):
            targets = [
                e.target
                for e in self.state.edges
                if e.source == alias.id and self.state.kind_of(e.target) is NodeKind.PROJECT
            ]
            if len(targets) > 1:
                results.append(
                    LintResult(
                        level="error",
                        rule="duplicate-assignment",
                        subject=alias.id,
                        message=f"Alias '{alias.title}' has {len(targets)} project assignments",
                    )
                )
        return results

    def check_orphan_aliases(self) -> list[LintResult]:
        results = []
        for alias in self.state.nodes_of_kind(NodeKind.ALIAS):
            data: AliasData = alias.data  # type: ignore[assignment]
            if self.state.resource(data.resource_id) is None:
                results.append(
                    LintResult(
                        level="error",
                        rule="orphan-alias",
                        subject=alias.id,
                        message=f"Resource '{data.resource_id}' is not in the registry",
                    )
                )
        return results

    def check_budget_multi_project(self) -> list[LintResult]:
        results = []
        for budget in self.state.nodes_of_kind(NodeKind.BUDGET):
            projects = {
                other
                for other in self.state.neighbors(budget.id)
                if self.state.kind_of(other) is NodeKind.PROJECT
            }
            if len(projects) > 1:
                results.append(
                    LintResult(
                        level="warning",
                        rule="budget-multi-project",
                        subject=budget.id,
                        message=(
                            f"Budget '{budget.title}' is linked to {len(projects)} projects; "
                            "only the first is used for debits"
                        ),
                    )
                )
        return results

    def check_unscoped_debits(self) -> list[LintResult]:
        """External fees dropped because the project has several budgets and no bill-to."""
        results = []
        for project in self.state.nodes_of_kind(NodeKind.PROJECT):
            for line in excluded_unscoped_debits(self.state, project.id):
                if self.state.kind_of(line.person_id) not in PEOPLE_KINDS:
                    continue
                results.append(
                    LintResult(
                        level="warning",
                        rule="unscoped-debit-excluded",
                        subject=line.person_id,
                        message=(
                            f"{line.person_name}'s {line.phase.value} fee of {line.amount:,.2f} "
                            f"on '{project.title}' counts against no budget; set a bill-to budget"
                        ),
                    )
                )
        return results

    def check_budget_overruns(self) -> list[LintResult]:
        results = []
        for budget in self.state.nodes_of_kind(NodeKind.BUDGET):
            calc = compute_budget_net(self.state, budget.id)
            if calc is None:
                continue
            for phase in Phase:
                net = calc.net.get(phase)
                if net < 0:
                    results.append(
                        LintResult(
                            level="info",
                            rule="budget-overrun",
                            subject=budget.id,
                            message=f"'{budget.title}' {phase.value} net is {net:,.2f}",
                        )
                    )
        return results
