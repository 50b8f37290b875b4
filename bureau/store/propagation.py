"""Post-commit propagation of denormalized fields.

`propagate(previous, current)` runs every rule once, in order, after each
committed mutation. Rules compare the two snapshots to find what changed and
return a corrected snapshot; they never see a half-applied cascade.

Rules:
- drop_dangling: aliases of deleted resources, edges to missing nodes,
  stale billing/timeline links and selection.
- sync_people: person colour/fee normalization; alias name, department and
  colour from the registry, and field clearing on compensation changes.
- restyle_edges: edge colour follows the source's identity colour.
- auto_titles: "<Project> — Budget/Timeline" on (re)connect or project edit.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ..graph.protocol import identity_colour
from ..models import (
    PEOPLE_KINDS,
    AliasData,
    BudgetData,
    Compensation,
    GraphState,
    Node,
    NodeKind,
    PersonData,
    ProjectData,
    Selection,
    TimelineData,
    dept_colour,
    first_name,
)

Rule = Callable[[GraphState, GraphState], GraphState]

AUTO_TITLE_SUFFIX: dict[NodeKind, str] = {
    NodeKind.BUDGET: "Budget",
    NodeKind.TIMELINE: "Timeline",
}


def _map_nodes(state: GraphState, fn: Callable[[Node], Node]) -> GraphState:
    changed = False
    out = []
    for n in state.nodes:
        m = fn(n)
        changed = changed or m is not n
        out.append(m)
    return replace(state, nodes=tuple(out)) if changed else state


def drop_dangling(previous: GraphState, current: GraphState) -> GraphState:
    resource_ids = {r.id for r in current.resources}
    nodes = tuple(
        n
        for n in current.nodes
        if not (isinstance(n.data, AliasData) and n.data.resource_id not in resource_ids)
    )
    node_ids = {n.id for n in nodes}
    edges = tuple(e for e in current.edges if e.source in node_ids and e.target in node_ids)
    edge_ids = {e.id for e in edges}

    budget_ids = {n.id for n in nodes if n.kind is NodeKind.BUDGET}
    timeline_ids = {n.id for n in nodes if n.kind is NodeKind.TIMELINE}

    def unlink(n: Node) -> Node:
        data = n.data
        changes = {}
        if isinstance(data, (PersonData, AliasData)):
            if data.bill_to_budget_id and data.bill_to_budget_id not in budget_ids:
                changes["bill_to_budget_id"] = None
        if isinstance(data, AliasData):
            if data.timeline_id and data.timeline_id not in timeline_ids:
                changes["timeline_id"] = None
        return replace(n, data=replace(data, **changes)) if changes else n

    sel = current.selection
    selection = Selection(
        node_id=sel.node_id if sel.node_id in node_ids else None,
        edge_id=sel.edge_id if sel.edge_id in edge_ids else None,
    )

    if len(nodes) != len(current.nodes) or len(edges) != len(current.edges) or selection != sel:
        current = replace(current, nodes=nodes, edges=edges, selection=selection)
    return _map_nodes(current, unlink)


def _sync_person(data: PersonData) -> PersonData:
    color = dept_colour(data.dept)
    fee = data.external_fee if data.is_external else 0.0
    if color == data.color and fee == data.external_fee:
        return data
    return replace(data, color=color, external_fee=fee)


def sync_people(previous: GraphState, current: GraphState) -> GraphState:
    def sync(n: Node) -> Node:
        data = n.data
        if isinstance(data, PersonData):
            synced = _sync_person(data)
            return n if synced is data else replace(n, data=synced)

        if not isinstance(data, AliasData):
            return n
        resource = current.resource(data.resource_id)
        if resource is None:
            return n

        changes = {
            "title": first_name(resource.name),
            "full_name": resource.name,
            "dept": resource.dept,
            "color": dept_colour(resource.dept),
        }
        before = previous.resource(data.resource_id)
        if before is not None and before.compensation is not resource.compensation:
            if resource.compensation is Compensation.EXTERNAL:
                changes["timeline_id"] = None
            else:
                changes["bill_to_budget_id"] = None
                changes["fee_value"] = 0.0

        synced = replace(data, **changes)
        return n if synced == data else replace(n, data=synced)

    return _map_nodes(current, sync)


def restyle_edges(previous: GraphState, current: GraphState) -> GraphState:
    changed = False
    edges = []
    for e in current.edges:
        source = current.node(e.source)
        color = identity_colour(source)
        width = 3 if source is not None and source.kind in PEOPLE_KINDS else 2
        if e.color != color or e.stroke_width != width:
            e = replace(e, color=color, stroke_width=width)
            changed = True
        edges.append(e)
    return replace(current, edges=tuple(edges)) if changed else current


def _project_identity(state: GraphState, project_id: str) -> tuple[str, object] | None:
    node = state.node(project_id)
    if node is None or not isinstance(node.data, ProjectData):
        return None
    return node.data.title, node.data.studio


def auto_titles(previous: GraphState, current: GraphState) -> GraphState:
    """Retitle auto-titled budgets/timelines fed by a project.

    Triggers when the feeding edge is new or rerouted, or when the project's
    title or studio changed.
    """
    previous_edges = {e.id: e for e in previous.edges}
    updates: dict[str, tuple[str, object]] = {}

    for e in current.edges:
        target_kind = current.kind_of(e.target)
        if current.kind_of(e.source) is not NodeKind.PROJECT or target_kind not in AUTO_TITLE_SUFFIX:
            continue
        identity = _project_identity(current, e.source)
        if identity is None:
            continue

        old = previous_edges.get(e.id)
        rerouted = old is None or (old.source, old.target) != (e.source, e.target)
        project_edited = _project_identity(previous, e.source) != identity
        if rerouted or project_edited:
            title, studio = identity
            updates[e.target] = (f"{title} — {AUTO_TITLE_SUFFIX[target_kind]}", studio)

    if not updates:
        return current

    def retitle(n: Node) -> Node:
        if n.id not in updates:
            return n
        data = n.data
        if not isinstance(data, (BudgetData, TimelineData)) or not data.auto_title:
            return n
        title, studio = updates[n.id]
        if data.title == title and data.studio == studio:
            return n
        return replace(n, data=replace(data, title=title, studio=studio))

    return _map_nodes(current, retitle)


RULES: tuple[Rule, ...] = (drop_dangling, sync_people, restyle_edges, auto_titles)


def propagate(previous: GraphState, current: GraphState) -> GraphState:
    for rule in RULES:
        current = rule(previous, current)
    return current
