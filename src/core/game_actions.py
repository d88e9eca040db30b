"""
Construct-and-apply helpers — the primary edit surface.

Each helper resolves its target path, captures whatever the inverse will
need (previous values, the deleted subtree, the old id order), builds the
action and hands it to :func:`core.executor.execute`.  The game passed in
is mutated in place and the action is returned so the caller can record
it in history.

Not-found targets return ``None``; nothing is raised and nothing changes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from core.actions import (
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
)
from core.clone import deep_clone
from core.errors import ValidationError
from core.executor import execute
from core.limits import (
    would_exceed_event_cap,
    would_exceed_legacy_cap,
    would_exceed_period_cap,
    would_exceed_scene_cap,
)
from core.model import (
    ANCHOR_EDITABLE_FIELDS,
    DEFAULT_EVENT_NAME,
    DEFAULT_PERIOD_NAME,
    DEFAULT_SCENE_NAME,
    EVENT_EDITABLE_FIELDS,
    GAME_METADATA_FIELDS,
    LEGACY_EDITABLE_FIELDS,
    PERIOD_EDITABLE_FIELDS,
    SCENE_EDITABLE_FIELDS,
    Game,
    Tone,
    coerce_tone,
    create_anchor_placement,
    create_new_anchor,
    create_new_event,
    create_new_legacy,
    create_new_period,
    create_new_scene,
    find_by_id,
    find_event,
    find_scene,
    index_of,
    now_iso,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a helper: the action that was applied."""
    action: GameAction


@dataclass(frozen=True, slots=True)
class SetCurrentAnchorResult:
    """Outcome of :func:`set_current_anchor`.

    ``action`` is ``None`` when the anchor was already placed on the
    period *and* already current; nothing should be recorded then.
    """
    action: Optional[SetCurrentAnchorAction]
    was_already_placed: bool


def _apply(game: Game, action: GameAction) -> ActionResult:
    execute(game, action)
    return ActionResult(action)


def _diff(entity: Any, updates: Mapping[str, Any], editable: Sequence[str]) -> tuple[dict, dict]:
    """Capture ``(previous_values, new_values)`` for the editable keys in
    *updates*.  Timestamped entities also record their ``updated_at`` so
    the inverse restores it exactly."""
    previous: dict[str, Any] = {}
    new: dict[str, Any] = {}
    for key, value in updates.items():
        if key not in editable:
            continue
        if key == "tone":
            value = coerce_tone(value)
        previous[key] = deep_clone(getattr(entity, key))
        new[key] = deep_clone(value)
    if hasattr(entity, "updated_at"):
        previous["updated_at"] = entity.updated_at
        new["updated_at"] = now_iso()
    return previous, new


def _moved_order(ids: list[str], from_index: int, to_index: int) -> Optional[list[str]]:
    if not (0 <= from_index < len(ids) and 0 <= to_index < len(ids)):
        logger.debug("Reorder %d -> %d out of range for %d items",
                     from_index, to_index, len(ids))
        return None
    moved = list(ids)
    moved.insert(to_index, moved.pop(from_index))
    return moved


# ------------------------------------------------------------------
# Periods
# ------------------------------------------------------------------

def add_period(
    game: Game,
    index: Optional[int] = None,
    name: str = DEFAULT_PERIOD_NAME,
    tone: Tone | str = Tone.LIGHT,
) -> ActionResult:
    """Insert a new period at *index* (end of the timeline when ``None``)."""
    would_exceed_period_cap(len(game.periods))
    period = create_new_period(name, tone)
    if index is None:
        index = len(game.periods)
    index = max(0, min(index, len(game.periods)))
    return _apply(game, CreatePeriodAction(
        period_id=period.id, index=index, period=period,
    ))


def delete_period(game: Game, period_id: str) -> Optional[ActionResult]:
    """Remove a period together with all its events and scenes."""
    index = index_of(game.periods, period_id)
    if index < 0:
        return None
    return _apply(game, DeletePeriodAction(
        period_id=period_id, index=index, period=deep_clone(game.periods[index]),
    ))


def edit_period(game: Game, period_id: str, updates: Mapping[str, Any]) -> Optional[ActionResult]:
    period = find_by_id(game.periods, period_id)
    if period is None:
        return None
    previous, new = _diff(period, updates, PERIOD_EDITABLE_FIELDS)
    return _apply(game, EditPeriodAction(
        period_id=period_id, previous_values=previous, new_values=new,
    ))


def reorder_periods(game: Game, from_index: int, to_index: int) -> Optional[ActionResult]:
    if from_index == to_index:
        return None
    previous = [p.id for p in game.periods]
    new = _moved_order(previous, from_index, to_index)
    if new is None:
        return None
    return _apply(game, ReorderPeriodsAction(
        previous_order=tuple(previous), new_order=tuple(new),
    ))


# ------------------------------------------------------------------
# Events
# ------------------------------------------------------------------

def add_event(
    game: Game,
    period_id: str,
    name: str = DEFAULT_EVENT_NAME,
    tone: Tone | str = Tone.LIGHT,
) -> Optional[ActionResult]:
    """Append a new event to the end of a period."""
    period = find_by_id(game.periods, period_id)
    if period is None:
        return None
    would_exceed_event_cap(len(period.events))
    event = create_new_event(name, tone)
    return _apply(game, CreateEventAction(
        period_id=period_id, event_id=event.id, index=len(period.events), event=event,
    ))


def delete_event(game: Game, period_id: str, event_id: str) -> Optional[ActionResult]:
    period = find_by_id(game.periods, period_id)
    if period is None:
        return None
    index = index_of(period.events, event_id)
    if index < 0:
        return None
    return _apply(game, DeleteEventAction(
        period_id=period_id,
        event_id=event_id,
        index=index,
        event=deep_clone(period.events[index]),
    ))


def edit_event(
    game: Game, period_id: str, event_id: str, updates: Mapping[str, Any],
) -> Optional[ActionResult]:
    event = find_event(game, period_id, event_id)
    if event is None:
        return None
    previous, new = _diff(event, updates, EVENT_EDITABLE_FIELDS)
    return _apply(game, EditEventAction(
        period_id=period_id, event_id=event_id, previous_values=previous, new_values=new,
    ))


def reorder_events(
    game: Game, period_id: str, from_index: int, to_index: int,
) -> Optional[ActionResult]:
    if from_index == to_index:
        return None
    period = find_by_id(game.periods, period_id)
    if period is None:
        return None
    previous = [e.id for e in period.events]
    new = _moved_order(previous, from_index, to_index)
    if new is None:
        return None
    return _apply(game, ReorderEventsAction(
        period_id=period_id, previous_order=tuple(previous), new_order=tuple(new),
    ))


# ------------------------------------------------------------------
# Scenes
# ------------------------------------------------------------------

def add_scene(
    game: Game,
    period_id: str,
    event_id: str,
    name: str = DEFAULT_SCENE_NAME,
    tone: Tone | str = Tone.LIGHT,
) -> Optional[ActionResult]:
    """Append a new scene to the end of an event."""
    event = find_event(game, period_id, event_id)
    if event is None:
        return None
    would_exceed_scene_cap(len(event.scenes))
    scene = create_new_scene(name, tone)
    return _apply(game, CreateSceneAction(
        period_id=period_id,
        event_id=event_id,
        scene_id=scene.id,
        index=len(event.scenes),
        scene=scene,
    ))


def delete_scene(
    game: Game, period_id: str, event_id: str, scene_id: str,
) -> Optional[ActionResult]:
    event = find_event(game, period_id, event_id)
    if event is None:
        return None
    index = index_of(event.scenes, scene_id)
    if index < 0:
        return None
    return _apply(game, DeleteSceneAction(
        period_id=period_id,
        event_id=event_id,
        scene_id=scene_id,
        index=index,
        scene=deep_clone(event.scenes[index]),
    ))


def edit_scene(
    game: Game, period_id: str, event_id: str, scene_id: str, updates: Mapping[str, Any],
) -> Optional[ActionResult]:
    scene = find_scene(game, period_id, event_id, scene_id)
    if scene is None:
        return None
    previous, new = _diff(scene, updates, SCENE_EDITABLE_FIELDS)
    return _apply(game, EditSceneAction(
        period_id=period_id,
        event_id=event_id,
        scene_id=scene_id,
        previous_values=previous,
        new_values=new,
    ))


def reorder_scenes(
    game: Game, period_id: str, event_id: str, from_index: int, to_index: int,
) -> Optional[ActionResult]:
    if from_index == to_index:
        return None
    event = find_event(game, period_id, event_id)
    if event is None:
        return None
    previous = [s.id for s in event.scenes]
    new = _moved_order(previous, from_index, to_index)
    if new is None:
        return None
    return _apply(game, ReorderScenesAction(
        period_id=period_id,
        event_id=event_id,
        previous_order=tuple(previous),
        new_order=tuple(new),
    ))


# ------------------------------------------------------------------
# Game metadata / legacies
# ------------------------------------------------------------------

def edit_game_metadata(game: Game, updates: Mapping[str, Any]) -> ActionResult:
    """Edit root-level settings.

    Only keys of :data:`core.model.GAME_METADATA_FIELDS` present in
    *updates* are recorded; an explicit ``None`` counts as present.
    Raises ValidationError if ``name`` is given but blank.
    """
    previous: dict[str, Any] = {}
    new: dict[str, Any] = {}
    for key in GAME_METADATA_FIELDS:
        if key not in updates:
            continue
        value = updates[key]
        if key == "name":
            value = (value or "").strip()
            if not value:
                raise ValidationError("Game name cannot be empty")
        previous[key] = deep_clone(getattr(game, key))
        new[key] = deep_clone(value)
    return _apply(game, EditGameMetadataAction(previous_values=previous, new_values=new))


def add_legacy(game: Game, name: str, description: Optional[str] = None) -> ActionResult:
    would_exceed_legacy_cap(len(game.legacies))
    legacy = create_new_legacy(name, description)
    return _apply(game, AddLegacyAction(legacy=legacy, index=len(game.legacies)))


def remove_legacy(game: Game, legacy_id: str) -> Optional[ActionResult]:
    index = index_of(game.legacies, legacy_id)
    if index < 0:
        return None
    return _apply(game, RemoveLegacyAction(
        legacy=deep_clone(game.legacies[index]), index=index,
    ))


def edit_legacy(game: Game, legacy_id: str, updates: Mapping[str, Any]) -> Optional[ActionResult]:
    legacy = find_by_id(game.legacies, legacy_id)
    if legacy is None:
        return None
    previous, new = _diff(legacy, updates, LEGACY_EDITABLE_FIELDS)
    return _apply(game, EditLegacyAction(
        legacy_id=legacy_id, previous_values=previous, new_values=new,
    ))


# ------------------------------------------------------------------
# Anchors
# ------------------------------------------------------------------

def create_anchor(game: Game, name: str, description: Optional[str] = None) -> ActionResult:
    anchor = create_new_anchor(name, description)
    return _apply(game, CreateAnchorAction(anchor=anchor, index=len(game.anchors)))


def edit_anchor(game: Game, anchor_id: str, updates: Mapping[str, Any]) -> Optional[ActionResult]:
    anchor = find_by_id(game.anchors, anchor_id)
    if anchor is None:
        return None
    previous, new = _diff(anchor, updates, ANCHOR_EDITABLE_FIELDS)
    return _apply(game, EditAnchorAction(
        anchor_id=anchor_id, previous_values=previous, new_values=new,
    ))


def _placements_for(game: Game, anchor_id: str) -> tuple[IndexedPlacement, ...]:
    return tuple(
        IndexedPlacement(index=i, placement=deep_clone(p))
        for i, p in enumerate(game.anchor_placements)
        if p.anchor_id == anchor_id
    )


def delete_anchor(game: Game, anchor_id: str) -> Optional[ActionResult]:
    """Remove an anchor and every placement that references it."""
    index = index_of(game.anchors, anchor_id)
    if index < 0:
        return None
    return _apply(game, DeleteAnchorAction(
        anchor_id=anchor_id,
        index=index,
        anchor=deep_clone(game.anchors[index]),
        associated_placements=_placements_for(game, anchor_id),
        was_current_anchor=game.current_anchor_id == anchor_id,
    ))


def set_current_anchor(
    game: Game,
    anchor_id: str,
    period_id: str,
    *,
    round_number: Optional[int] = None,
    notes: Optional[str] = None,
) -> Optional[SetCurrentAnchorResult]:
    """Place *anchor_id* on *period_id* and make it current.

    An anchor holds at most one placement: placing it elsewhere removes
    its previous placements.  Returns ``None`` if either id does not
    resolve.
    """
    if find_by_id(game.anchors, anchor_id) is None:
        return None
    if find_by_id(game.periods, period_id) is None:
        return None

    existing = next(
        (p for p in game.anchor_placements
         if p.anchor_id == anchor_id and p.period_id == period_id),
        None,
    )
    if existing is not None:
        if game.current_anchor_id == anchor_id:
            return SetCurrentAnchorResult(action=None, was_already_placed=True)
        action = SetCurrentAnchorAction(
            anchor_id=anchor_id,
            period_id=period_id,
            placement=deep_clone(existing),
            placement_created=False,
            removed_placements=(),
            previous_anchor_id=game.current_anchor_id,
        )
        execute(game, action)
        return SetCurrentAnchorResult(action=action, was_already_placed=True)

    placement = create_anchor_placement(
        anchor_id, period_id, round_number=round_number, notes=notes,
    )
    action = SetCurrentAnchorAction(
        anchor_id=anchor_id,
        period_id=period_id,
        placement=placement,
        placement_created=True,
        removed_placements=_placements_for(game, anchor_id),
        previous_anchor_id=game.current_anchor_id,
    )
    execute(game, action)
    return SetCurrentAnchorResult(action=action, was_already_placed=False)


def clear_current_anchor(game: Game) -> Optional[ActionResult]:
    if game.current_anchor_id is None:
        return None
    return _apply(game, ClearCurrentAnchorAction(previous_anchor_id=game.current_anchor_id))
