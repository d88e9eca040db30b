"""
GameSession — the per-document editing context.

One session is created when a game is opened and discarded when it is
closed.  It owns everything that used to be global mutable state:

- the live :class:`~core.model.Game`
- its :class:`~core.history.HistoryState`
- the debounced :class:`~infrastructure.autosave.Autosave`
- "document changed" subscribers (a presentation layer re-renders on it)

Every mutation method goes through :mod:`core.game_actions`, records the
returned action, schedules an autosave and notifies subscribers.  Undo /
redo replay the recorded action through the same engine.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from core import game_actions
from core.actions import GameAction, action_display_name
from core.executor import apply_action, reverse_action
from core.game_actions import ActionResult, SetCurrentAnchorResult
from core.history import (
    DEFAULT_HISTORY_LIMIT,
    HistoryState,
    can_redo,
    can_undo,
    clear_history,
    create_history_state,
    pop_redo,
    pop_undo,
    record_action,
)
from core.model import Game, Tone
from infrastructure.autosave import Autosave

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Game], None]


class GameSession:
    """Editing context for one open game."""

    def __init__(
        self,
        game: Game,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        autosave: Optional[Autosave] = None,
    ) -> None:
        self._game = game
        self._history: HistoryState = create_history_state(history_limit)
        self._autosave = autosave
        self._listeners: list[ChangeListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def game(self) -> Game:
        return self._game

    @property
    def game_id(self) -> str:
        return self._game.id

    @property
    def history(self) -> HistoryState:
        return self._history

    @property
    def can_undo(self) -> bool:
        return can_undo(self._history)

    @property
    def can_redo(self) -> bool:
        return can_redo(self._history)

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call *listener* after every change.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        if self._autosave is not None:
            self._autosave.save(self._game)
        for listener in list(self._listeners):
            listener(self._game)

    def _commit(self, result: Optional[ActionResult]) -> Optional[GameAction]:
        if result is None:
            return None
        self._history = record_action(self._history, result.action)
        self._changed()
        return result.action

    # ------------------------------------------------------------------
    # Undo / Redo
    # ------------------------------------------------------------------

    def undo(self) -> Optional[GameAction]:
        """Invert the most recent action.  Returns it, or ``None`` if
        there is nothing to undo."""
        popped = pop_undo(self._history)
        if popped is None:
            return None
        self._game = reverse_action(self._game, popped.action)
        self._history = popped.new_state
        logger.debug("Undo: %s", action_display_name(popped.action))
        self._changed()
        return popped.action

    def redo(self) -> Optional[GameAction]:
        """Re-apply the most recently undone action."""
        popped = pop_redo(self._history)
        if popped is None:
            return None
        self._game = apply_action(self._game, popped.action)
        self._history = popped.new_state
        logger.debug("Redo: %s", action_display_name(popped.action))
        self._changed()
        return popped.action

    # ------------------------------------------------------------------
    # Periods / Events / Scenes
    # ------------------------------------------------------------------

    def add_period(
        self, index: Optional[int] = None, name: Optional[str] = None,
        tone: Tone | str = Tone.LIGHT,
    ) -> GameAction:
        kwargs: dict[str, Any] = {"tone": tone}
        if name is not None:
            kwargs["name"] = name
        return self._commit(game_actions.add_period(self._game, index, **kwargs))

    def delete_period(self, period_id: str) -> Optional[GameAction]:
        return self._commit(game_actions.delete_period(self._game, period_id))

    def edit_period(self, period_id: str, updates: Mapping[str, Any]) -> Optional[GameAction]:
        return self._commit(game_actions.edit_period(self._game, period_id, updates))

    def reorder_periods(self, from_index: int, to_index: int) -> Optional[GameAction]:
        return self._commit(game_actions.reorder_periods(self._game, from_index, to_index))

    def add_event(
        self, period_id: str, name: Optional[str] = None, tone: Tone | str = Tone.LIGHT,
    ) -> Optional[GameAction]:
        kwargs: dict[str, Any] = {"tone": tone}
        if name is not None:
            kwargs["name"] = name
        return self._commit(game_actions.add_event(self._game, period_id, **kwargs))

    def delete_event(self, period_id: str, event_id: str) -> Optional[GameAction]:
        return self._commit(game_actions.delete_event(self._game, period_id, event_id))

    def edit_event(
        self, period_id: str, event_id: str, updates: Mapping[str, Any],
    ) -> Optional[GameAction]:
        return self._commit(game_actions.edit_event(self._game, period_id, event_id, updates))

    def reorder_events(self, period_id: str, from_index: int, to_index: int) -> Optional[GameAction]:
        return self._commit(
            game_actions.reorder_events(self._game, period_id, from_index, to_index)
        )

    def add_scene(
        self, period_id: str, event_id: str, name: Optional[str] = None,
        tone: Tone | str = Tone.LIGHT,
    ) -> Optional[GameAction]:
        kwargs: dict[str, Any] = {"tone": tone}
        if name is not None:
            kwargs["name"] = name
        return self._commit(game_actions.add_scene(self._game, period_id, event_id, **kwargs))

    def delete_scene(self, period_id: str, event_id: str, scene_id: str) -> Optional[GameAction]:
        return self._commit(
            game_actions.delete_scene(self._game, period_id, event_id, scene_id)
        )

    def edit_scene(
        self, period_id: str, event_id: str, scene_id: str, updates: Mapping[str, Any],
    ) -> Optional[GameAction]:
        return self._commit(
            game_actions.edit_scene(self._game, period_id, event_id, scene_id, updates)
        )

    def reorder_scenes(
        self, period_id: str, event_id: str, from_index: int, to_index: int,
    ) -> Optional[GameAction]:
        return self._commit(
            game_actions.reorder_scenes(self._game, period_id, event_id, from_index, to_index)
        )

    # ------------------------------------------------------------------
    # Game metadata / legacies
    # ------------------------------------------------------------------

    def edit_game_metadata(self, updates: Mapping[str, Any]) -> GameAction:
        return self._commit(game_actions.edit_game_metadata(self._game, updates))

    def add_legacy(self, name: str, description: Optional[str] = None) -> GameAction:
        return self._commit(game_actions.add_legacy(self._game, name, description))

    def remove_legacy(self, legacy_id: str) -> Optional[GameAction]:
        return self._commit(game_actions.remove_legacy(self._game, legacy_id))

    def edit_legacy(self, legacy_id: str, updates: Mapping[str, Any]) -> Optional[GameAction]:
        return self._commit(game_actions.edit_legacy(self._game, legacy_id, updates))

    # ------------------------------------------------------------------
    # Anchors
    # ------------------------------------------------------------------

    def create_anchor(self, name: str, description: Optional[str] = None) -> GameAction:
        return self._commit(game_actions.create_anchor(self._game, name, description))

    def edit_anchor(self, anchor_id: str, updates: Mapping[str, Any]) -> Optional[GameAction]:
        return self._commit(game_actions.edit_anchor(self._game, anchor_id, updates))

    def delete_anchor(self, anchor_id: str) -> Optional[GameAction]:
        return self._commit(game_actions.delete_anchor(self._game, anchor_id))

    def set_current_anchor(
        self,
        anchor_id: str,
        period_id: str,
        *,
        round_number: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[SetCurrentAnchorResult]:
        """Place an anchor and make it current.  A no-op placement (already
        placed and current) is returned but not recorded."""
        result = game_actions.set_current_anchor(
            self._game, anchor_id, period_id, round_number=round_number, notes=notes,
        )
        if result is not None and result.action is not None:
            self._commit(ActionResult(result.action))
        return result

    def clear_current_anchor(self) -> Optional[GameAction]:
        return self._commit(game_actions.clear_current_anchor(self._game))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def replace_game(self, game: Game) -> None:
        """Swap in a different version (e.g. a restored snapshot).  History
        is cleared because recorded actions no longer apply."""
        self._game = game
        self._history = clear_history(self._history)
        self._changed()

    def flush(self) -> None:
        if self._autosave is not None:
            self._autosave.flush()

    def close(self) -> None:
        """Persist pending edits and drop history and subscribers."""
        if self._closed:
            return
        self.flush()
        self._history = clear_history(self._history)
        self._listeners.clear()
        self._closed = True
        logger.info("Closed session for game %s", self._game.id)

    def discard(self) -> None:
        """Close without persisting pending edits (e.g. the game was deleted).
        Waits for an autosave write already in progress."""
        if self._autosave is not None:
            self._autosave.cancel()
        self._history = clear_history(self._history)
        self._listeners.clear()
        self._closed = True
