"""
History stack — bounded linear undo / redo over :mod:`core.actions`.

The state is an immutable value; every operation returns a new
:class:`HistoryState` and never mutates its input, so a state can be
shared freely (e.g. handed to a UI layer) while the session moves on.

- :func:`record_action` pushes onto the undo stack, evicts the oldest
  entries beyond ``limit`` and always clears the redo stack.
- :func:`pop_undo` / :func:`pop_redo` move the top action across and
  return it together with the new state; the caller replays it through
  :func:`core.executor.reverse_action` / :func:`core.executor.apply_action`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from core.actions import GameAction

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True, slots=True)
class HistoryState:
    """Invariant: ``len(undo_stack) <= limit``."""
    undo_stack: tuple[GameAction, ...] = ()
    redo_stack: tuple[GameAction, ...] = ()
    limit: int = DEFAULT_HISTORY_LIMIT


@dataclass(frozen=True, slots=True)
class HistoryPop:
    """Result of :func:`pop_undo` / :func:`pop_redo`."""
    action: GameAction
    new_state: HistoryState


def create_history_state(limit: int = DEFAULT_HISTORY_LIMIT) -> HistoryState:
    """Empty history.  Raises ValueError on a negative *limit*."""
    if limit < 0:
        raise ValueError(f"History limit must be >= 0, got {limit}")
    return HistoryState(limit=limit)


def record_action(state: HistoryState, action: GameAction) -> HistoryState:
    undo = state.undo_stack + (action,)
    if len(undo) > state.limit:
        evicted = len(undo) - state.limit
        undo = undo[evicted:]
        logger.debug("History limit %d reached; evicted %d oldest", state.limit, evicted)
    return replace(state, undo_stack=undo, redo_stack=())


def pop_undo(state: HistoryState) -> Optional[HistoryPop]:
    """Move the most recent action onto the redo stack.  ``None`` if empty."""
    if not state.undo_stack:
        return None
    action = state.undo_stack[-1]
    return HistoryPop(
        action=action,
        new_state=replace(
            state,
            undo_stack=state.undo_stack[:-1],
            redo_stack=state.redo_stack + (action,),
        ),
    )


def pop_redo(state: HistoryState) -> Optional[HistoryPop]:
    """Move the most recently undone action back onto the undo stack."""
    if not state.redo_stack:
        return None
    action = state.redo_stack[-1]
    return HistoryPop(
        action=action,
        new_state=replace(
            state,
            undo_stack=state.undo_stack + (action,),
            redo_stack=state.redo_stack[:-1],
        ),
    )


def can_undo(state: HistoryState) -> bool:
    return bool(state.undo_stack)


def can_redo(state: HistoryState) -> bool:
    return bool(state.redo_stack)


def clear_history(state: HistoryState) -> HistoryState:
    """Empty both stacks, keeping the limit (e.g. on loading another game)."""
    return replace(state, undo_stack=(), redo_stack=())


def get_undo_count(state: HistoryState) -> int:
    return len(state.undo_stack)


def get_redo_count(state: HistoryState) -> int:
    return len(state.redo_stack)
