"""
Mutation engine — applies and inverts :mod:`core.actions` against a Game.

Two entry points share one implementation:

- :func:`apply_action` / :func:`reverse_action` are pure: they clone the
  game, replay the action on the clone and return it.  Used by undo /
  redo replay.
- :func:`execute` mutates a game in place.  The construct-and-apply
  helpers in :mod:`core.game_actions` build an action and then call it,
  so both paths always produce identical results.

Dispatch is purely on ``action.type``.  Unknown tags are logged and the
document is left untouched; replay never raises on persisted history.

Invariant: ``reverse_action(apply_action(g, a), a)`` equals ``g`` up to
the root ``updated_at``, which both directions refresh.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Mapping, Sequence

from core.actions import (
    ActionType,
    AddLegacyAction,
    ClearCurrentAnchorAction,
    CreateAnchorAction,
    CreateEventAction,
    CreatePeriodAction,
    CreateSceneAction,
    DeleteAnchorAction,
    DeleteEventAction,
    DeletePeriodAction,
    DeleteSceneAction,
    EditAnchorAction,
    EditEventAction,
    EditGameMetadataAction,
    EditLegacyAction,
    EditPeriodAction,
    EditSceneAction,
    GameAction,
    IndexedPlacement,
    RemoveLegacyAction,
    ReorderEventsAction,
    ReorderPeriodsAction,
    ReorderScenesAction,
    SetCurrentAnchorAction,
    UnknownAction,
)
from core.clone import deep_clone
from core.model import (
    GAME_METADATA_FIELDS,
    Game,
    coerce_tone,
    find_by_id,
    find_event,
    find_scene,
    index_of,
    now_iso,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def apply_action(game: Game, action: GameAction) -> Game:
    """Return a new game with *action* applied.  *game* is not modified."""
    result = deep_clone(game)
    execute(result, action)
    return result


def reverse_action(game: Game, action: GameAction) -> Game:
    """Return a new game with *action* inverted.  *game* is not modified."""
    result = deep_clone(game)
    execute(result, action, reverse=True)
    return result


def execute(game: Game, action: GameAction, *, reverse: bool = False) -> None:
    """Apply (or invert, with *reverse*) *action* to *game* in place.

    Refreshes the root ``updated_at`` unless the tag is unknown.
    """
    handlers = None if isinstance(action, UnknownAction) else _HANDLERS.get(action.type)
    if handlers is None:
        logger.warning("Unknown action type %r; document left unchanged", action.type)
        return
    forward, backward = handlers
    (backward if reverse else forward)(game, action)
    game.updated_at = now_iso()
    logger.debug("%s %s", "Reversed" if reverse else "Applied", action.type.value)


# ------------------------------------------------------------------
# List primitives
# ------------------------------------------------------------------

def _insert(items: list, index: int, entity: Any) -> None:
    items.insert(index, deep_clone(entity))


def _remove(items: list, entity_id: str) -> None:
    pos = index_of(items, entity_id)
    if pos < 0:
        logger.debug("Remove skipped: %s not present", entity_id)
        return
    del items[pos]


def _reorder(items: list, order: Sequence[str]) -> None:
    """Rebuild *items* in *order*.  Ids no longer present are dropped,
    and so are entities whose id is missing from *order*."""
    by_id = {item.id: item for item in items}
    rebuilt = [by_id[i] for i in order if i in by_id]
    if len(rebuilt) != len(items):
        logger.debug("Reorder dropped %d entities", len(items) - len(rebuilt))
    items[:] = rebuilt


def _assign(entity: Any, values: Mapping[str, Any]) -> None:
    """Shallow-merge *values* into *entity*.

    Keys that are not fields of the entity are ignored.  ``updated_at``
    is taken from *values* when recorded there, otherwise refreshed.
    """
    names = {f.name for f in dataclasses.fields(entity)}
    for key, value in values.items():
        if key not in names or key in ("id", "created_at"):
            continue
        if key == "tone":
            value = coerce_tone(value)
        setattr(entity, key, deep_clone(value))
    if "updated_at" in names and "updated_at" not in values:
        entity.updated_at = now_iso()


def _restore_placements(game: Game, captured: Sequence[IndexedPlacement]) -> None:
    for item in sorted(captured, key=lambda p: p.index):
        _insert(game.anchor_placements, item.index, item.placement)


# ------------------------------------------------------------------
# Periods
# ------------------------------------------------------------------

def _create_period(game: Game, a: CreatePeriodAction) -> None:
    _insert(game.periods, a.index, a.period)


def _uncreate_period(game: Game, a: CreatePeriodAction) -> None:
    _remove(game.periods, a.period_id)


def _delete_period(game: Game, a: DeletePeriodAction) -> None:
    _remove(game.periods, a.period_id)


def _undelete_period(game: Game, a: DeletePeriodAction) -> None:
    _insert(game.periods, a.index, a.period)


def _edit_period(values_attr: str) -> Callable[[Game, EditPeriodAction], None]:
    def handler(game: Game, a: EditPeriodAction) -> None:
        period = find_by_id(game.periods, a.period_id)
        if period is not None:
            _assign(period, getattr(a, values_attr))
    return handler


# ------------------------------------------------------------------
# Events
# ------------------------------------------------------------------

def _create_event(game: Game, a: CreateEventAction) -> None:
    period = find_by_id(game.periods, a.period_id)
    if period is not None:
        _insert(period.events, a.index, a.event)


def _uncreate_event(game: Game, a: CreateEventAction) -> None:
    period = find_by_id(game.periods, a.period_id)
    if period is not None:
        _remove(period.events, a.event_id)


def _delete_event(game: Game, a: DeleteEventAction) -> None:
    period = find_by_id(game.periods, a.period_id)
    if period is not None:
        _remove(period.events, a.event_id)


def _undelete_event(game: Game, a: DeleteEventAction) -> None:
    period = find_by_id(game.periods, a.period_id)
    if period is not None:
        _insert(period.events, a.index, a.event)


def _edit_event(values_attr: str) -> Callable[[Game, EditEventAction], None]:
    def handler(game: Game, a: EditEventAction) -> None:
        event = find_event(game, a.period_id, a.event_id)
        if event is not None:
            _assign(event, getattr(a, values_attr))
    return handler


# ------------------------------------------------------------------
# Scenes
# ------------------------------------------------------------------

def _create_scene(game: Game, a: CreateSceneAction) -> None:
    event = find_event(game, a.period_id, a.event_id)
    if event is not None:
        _insert(event.scenes, a.index, a.scene)


def _uncreate_scene(game: Game, a: CreateSceneAction) -> None:
    event = find_event(game, a.period_id, a.event_id)
    if event is not None:
        _remove(event.scenes, a.scene_id)


def _delete_scene(game: Game, a: DeleteSceneAction) -> None:
    event = find_event(game, a.period_id, a.event_id)
    if event is not None:
        _remove(event.scenes, a.scene_id)


def _undelete_scene(game: Game, a: DeleteSceneAction) -> None:
    event = find_event(game, a.period_id, a.event_id)
    if event is not None:
        _insert(event.scenes, a.index, a.scene)


def _edit_scene(values_attr: str) -> Callable[[Game, EditSceneAction], None]:
    def handler(game: Game, a: EditSceneAction) -> None:
        scene = find_scene(game, a.period_id, a.event_id, a.scene_id)
        if scene is not None:
            _assign(scene, getattr(a, values_attr))
    return handler


# ------------------------------------------------------------------
# Game metadata / legacies
# ------------------------------------------------------------------

def _edit_metadata(values_attr: str) -> Callable[[Game, EditGameMetadataAction], None]:
    def handler(game: Game, a: EditGameMetadataAction) -> None:
        values = getattr(a, values_attr)
        for key in GAME_METADATA_FIELDS:
            if key in values:
                setattr(game, key, deep_clone(values[key]))
    return handler


def _add_legacy(game: Game, a: AddLegacyAction) -> None:
    _insert(game.legacies, a.index, a.legacy)


def _unadd_legacy(game: Game, a: AddLegacyAction) -> None:
    _remove(game.legacies, a.legacy.id)


def _remove_legacy(game: Game, a: RemoveLegacyAction) -> None:
    _remove(game.legacies, a.legacy.id)


def _unremove_legacy(game: Game, a: RemoveLegacyAction) -> None:
    _insert(game.legacies, a.index, a.legacy)


def _edit_legacy(values_attr: str) -> Callable[[Game, EditLegacyAction], None]:
    def handler(game: Game, a: EditLegacyAction) -> None:
        legacy = find_by_id(game.legacies, a.legacy_id)
        if legacy is not None:
            _assign(legacy, getattr(a, values_attr))
    return handler


# ------------------------------------------------------------------
# Reorders
# ------------------------------------------------------------------

def _reorder_periods(order_attr: str) -> Callable[[Game, ReorderPeriodsAction], None]:
    def handler(game: Game, a: ReorderPeriodsAction) -> None:
        _reorder(game.periods, getattr(a, order_attr))
    return handler


def _reorder_events(order_attr: str) -> Callable[[Game, ReorderEventsAction], None]:
    def handler(game: Game, a: ReorderEventsAction) -> None:
        period = find_by_id(game.periods, a.period_id)
        if period is not None:
            _reorder(period.events, getattr(a, order_attr))
    return handler


def _reorder_scenes(order_attr: str) -> Callable[[Game, ReorderScenesAction], None]:
    def handler(game: Game, a: ReorderScenesAction) -> None:
        event = find_event(game, a.period_id, a.event_id)
        if event is not None:
            _reorder(event.scenes, getattr(a, order_attr))
    return handler


# ------------------------------------------------------------------
# Anchors
# ------------------------------------------------------------------

def _create_anchor(game: Game, a: CreateAnchorAction) -> None:
    _insert(game.anchors, a.index, a.anchor)


def _uncreate_anchor(game: Game, a: CreateAnchorAction) -> None:
    _remove(game.anchors, a.anchor.id)


def _delete_anchor(game: Game, a: DeleteAnchorAction) -> None:
    _remove(game.anchors, a.anchor_id)
    game.anchor_placements[:] = [
        p for p in game.anchor_placements if p.anchor_id != a.anchor_id
    ]
    if game.current_anchor_id == a.anchor_id:
        game.current_anchor_id = None


def _undelete_anchor(game: Game, a: DeleteAnchorAction) -> None:
    _insert(game.anchors, a.index, a.anchor)
    _restore_placements(game, a.associated_placements)
    if a.was_current_anchor:
        game.current_anchor_id = a.anchor_id


def _edit_anchor(values_attr: str) -> Callable[[Game, EditAnchorAction], None]:
    def handler(game: Game, a: EditAnchorAction) -> None:
        anchor = find_by_id(game.anchors, a.anchor_id)
        if anchor is not None:
            _assign(anchor, getattr(a, values_attr))
    return handler


def _set_current_anchor(game: Game, a: SetCurrentAnchorAction) -> None:
    for item in a.removed_placements:
        _remove(game.anchor_placements, item.placement.id)
    if a.placement_created:
        game.anchor_placements.append(deep_clone(a.placement))
    game.current_anchor_id = a.anchor_id


def _unset_current_anchor(game: Game, a: SetCurrentAnchorAction) -> None:
    if a.placement_created:
        _remove(game.anchor_placements, a.placement.id)
    _restore_placements(game, a.removed_placements)
    game.current_anchor_id = a.previous_anchor_id


def _clear_current_anchor(game: Game, a: ClearCurrentAnchorAction) -> None:
    game.current_anchor_id = None


def _unclear_current_anchor(game: Game, a: ClearCurrentAnchorAction) -> None:
    game.current_anchor_id = a.previous_anchor_id


# ------------------------------------------------------------------
# Dispatch table: tag → (apply, invert)
# ------------------------------------------------------------------

_HANDLERS: dict[ActionType, tuple[Callable[[Game, Any], None], Callable[[Game, Any], None]]] = {
    ActionType.CREATE_PERIOD: (_create_period, _uncreate_period),
    ActionType.DELETE_PERIOD: (_delete_period, _undelete_period),
    ActionType.EDIT_PERIOD: (_edit_period("new_values"), _edit_period("previous_values")),
    ActionType.CREATE_EVENT: (_create_event, _uncreate_event),
    ActionType.DELETE_EVENT: (_delete_event, _undelete_event),
    ActionType.EDIT_EVENT: (_edit_event("new_values"), _edit_event("previous_values")),
    ActionType.CREATE_SCENE: (_create_scene, _uncreate_scene),
    ActionType.DELETE_SCENE: (_delete_scene, _undelete_scene),
    ActionType.EDIT_SCENE: (_edit_scene("new_values"), _edit_scene("previous_values")),
    ActionType.EDIT_GAME_METADATA: (_edit_metadata("new_values"), _edit_metadata("previous_values")),
    ActionType.ADD_LEGACY: (_add_legacy, _unadd_legacy),
    ActionType.REMOVE_LEGACY: (_remove_legacy, _unremove_legacy),
    ActionType.EDIT_LEGACY: (_edit_legacy("new_values"), _edit_legacy("previous_values")),
    ActionType.REORDER_PERIODS: (_reorder_periods("new_order"), _reorder_periods("previous_order")),
    ActionType.REORDER_EVENTS: (_reorder_events("new_order"), _reorder_events("previous_order")),
    ActionType.REORDER_SCENES: (_reorder_scenes("new_order"), _reorder_scenes("previous_order")),
    ActionType.CREATE_ANCHOR: (_create_anchor, _uncreate_anchor),
    ActionType.DELETE_ANCHOR: (_delete_anchor, _undelete_anchor),
    ActionType.EDIT_ANCHOR: (_edit_anchor("new_values"), _edit_anchor("previous_values")),
    ActionType.SET_CURRENT_ANCHOR: (_set_current_anchor, _unset_current_anchor),
    ActionType.CLEAR_CURRENT_ANCHOR: (_clear_current_anchor, _unclear_current_anchor),
}
