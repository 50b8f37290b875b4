"""Single state container for the graph.

All writes go through `dispatch`, which reduces, propagates and then swaps
the whole snapshot in one step. Readers holding an older snapshot never see
a partially updated graph.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..journal import MutationJournal
from ..models import GraphState
from ..persistence import default_state, from_document, to_document
from .commands import Command
from .propagation import propagate
from .reducer import DEFAULT_CONTEXT, ReducerContext, reduce

log = logging.getLogger(__name__)

Listener = Callable[[GraphState], None]


def apply_command(
    state: GraphState,
    command: Command,
    ctx: ReducerContext = DEFAULT_CONTEXT,
) -> GraphState:
    """Reduce then propagate. Returns `state` itself for a no-op.

    A change that propagation normalizes straight back (a fee on an internal
    person, say) also counts as a no-op.
    """
    reduced = reduce(state, command, ctx)
    if reduced is state:
        return state
    result = propagate(state, reduced)
    return state if result == state else result


class GraphStore:
    def __init__(
        self,
        state: GraphState | None = None,
        *,
        context: ReducerContext = DEFAULT_CONTEXT,
        journal: MutationJournal | None = None,
    ):
        self._state = state or default_state()
        self._listeners: list[Listener] = []
        self.context = context
        self.journal = journal

    @property
    def state(self) -> GraphState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: GraphState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def dispatch(self, command: Command) -> bool:
        """Apply a command. False means it was rejected or changed nothing."""
        before = self._state
        after = apply_command(before, command, self.context)
        if after is before:
            log.debug("no-op command: %s", type(command).__name__)
            return False
        if self.journal is not None:
            self.journal.record(command, before, after)
        self._commit(after)
        return True

    def hydrate(self, document: Any) -> bool:
        """Replace the graph from a snapshot document.

        An invalid document resets to the empty graph and returns False.
        """
        state = from_document(document)
        if state is None:
            self.reset()
            return False
        self._commit(state)
        return True

    def reset(self) -> None:
        self._commit(default_state())

    def export(self, saved_at: str | None = None) -> dict[str, Any]:
        return to_document(self._state, saved_at=saved_at)
