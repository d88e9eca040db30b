"""
Action algebra — immutable, self-contained descriptions of mutations.

Every mutation of a :class:`~core.model.Game` is described by exactly one
action value.  An action carries everything needed to both *apply* and
*invert* itself without looking anything up elsewhere:

- creates / deletes hold a deep copy of the entity (with descendants)
  and its list position,
- edits hold ``previous_values`` and ``new_values``,
- reorders hold the full id sequence before and after the move.

The tag lives in ``type`` (an :class:`ActionType`).  Known variants carry
it as a class attribute; :class:`UnknownAction` carries the raw tag of a
persisted action this version does not recognise.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from core.model import (
    Anchor,
    AnchorPlacement,
    Event,
    Legacy,
    Period,
    Scene,
    now_iso,
)


class ActionType(str, Enum):
    CREATE_PERIOD = "CREATE_PERIOD"
    DELETE_PERIOD = "DELETE_PERIOD"
    EDIT_PERIOD = "EDIT_PERIOD"
    CREATE_EVENT = "CREATE_EVENT"
    DELETE_EVENT = "DELETE_EVENT"
    EDIT_EVENT = "EDIT_EVENT"
    CREATE_SCENE = "CREATE_SCENE"
    DELETE_SCENE = "DELETE_SCENE"
    EDIT_SCENE = "EDIT_SCENE"
    EDIT_GAME_METADATA = "EDIT_GAME_METADATA"
    ADD_LEGACY = "ADD_LEGACY"
    REMOVE_LEGACY = "REMOVE_LEGACY"
    EDIT_LEGACY = "EDIT_LEGACY"
    REORDER_PERIODS = "REORDER_PERIODS"
    REORDER_EVENTS = "REORDER_EVENTS"
    REORDER_SCENES = "REORDER_SCENES"
    CREATE_ANCHOR = "CREATE_ANCHOR"
    DELETE_ANCHOR = "DELETE_ANCHOR"
    EDIT_ANCHOR = "EDIT_ANCHOR"
    SET_CURRENT_ANCHOR = "SET_CURRENT_ANCHOR"
    CLEAR_CURRENT_ANCHOR = "CLEAR_CURRENT_ANCHOR"


ACTION_DISPLAY_NAMES: dict[ActionType, str] = {
    ActionType.CREATE_PERIOD: "Create Period",
    ActionType.DELETE_PERIOD: "Delete Period",
    ActionType.EDIT_PERIOD: "Edit Period",
    ActionType.CREATE_EVENT: "Create Event",
    ActionType.DELETE_EVENT: "Delete Event",
    ActionType.EDIT_EVENT: "Edit Event",
    ActionType.CREATE_SCENE: "Create Scene",
    ActionType.DELETE_SCENE: "Delete Scene",
    ActionType.EDIT_SCENE: "Edit Scene",
    ActionType.EDIT_GAME_METADATA: "Edit Game Settings",
    ActionType.ADD_LEGACY: "Add Legacy",
    ActionType.REMOVE_LEGACY: "Remove Legacy",
    ActionType.EDIT_LEGACY: "Edit Legacy",
    ActionType.REORDER_PERIODS: "Reorder Periods",
    ActionType.REORDER_EVENTS: "Reorder Events",
    ActionType.REORDER_SCENES: "Reorder Scenes",
    ActionType.CREATE_ANCHOR: "Create Anchor",
    ActionType.DELETE_ANCHOR: "Delete Anchor",
    ActionType.EDIT_ANCHOR: "Edit Anchor",
    ActionType.SET_CURRENT_ANCHOR: "Set Current Anchor",
    ActionType.CLEAR_CURRENT_ANCHOR: "Clear Current Anchor",
}


def action_display_name(action: "GameAction") -> str:
    """Human label for history menus; unknown tags fall back to the raw tag."""
    try:
        return ACTION_DISPLAY_NAMES[ActionType(action.type)]
    except ValueError:
        return str(action.type)


@dataclass(frozen=True, slots=True)
class IndexedPlacement:
    """An anchor placement together with its position in
    ``Game.anchor_placements`` at capture time."""
    index: int
    placement: AnchorPlacement


# ------------------------------------------------------------------
# Periods / Events / Scenes
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CreatePeriodAction:
    type: ClassVar[ActionType] = ActionType.CREATE_PERIOD
    period_id: str
    index: int
    period: Period
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class DeletePeriodAction:
    type: ClassVar[ActionType] = ActionType.DELETE_PERIOD
    period_id: str
    index: int
    period: Period
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class EditPeriodAction:
    type: ClassVar[ActionType] = ActionType.EDIT_PERIOD
    period_id: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class CreateEventAction:
    type: ClassVar[ActionType] = ActionType.CREATE_EVENT
    period_id: str
    event_id: str
    index: int
    event: Event
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class DeleteEventAction:
    type: ClassVar[ActionType] = ActionType.DELETE_EVENT
    period_id: str
    event_id: str
    index: int
    event: Event
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class EditEventAction:
    type: ClassVar[ActionType] = ActionType.EDIT_EVENT
    period_id: str
    event_id: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class CreateSceneAction:
    type: ClassVar[ActionType] = ActionType.CREATE_SCENE
    period_id: str
    event_id: str
    scene_id: str
    index: int
    scene: Scene
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class DeleteSceneAction:
    type: ClassVar[ActionType] = ActionType.DELETE_SCENE
    period_id: str
    event_id: str
    scene_id: str
    index: int
    scene: Scene
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class EditSceneAction:
    type: ClassVar[ActionType] = ActionType.EDIT_SCENE
    period_id: str
    event_id: str
    scene_id: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


# ------------------------------------------------------------------
# Game-level records
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EditGameMetadataAction:
    """Keys are a subset of :data:`core.model.GAME_METADATA_FIELDS`.
    A key present with value ``None`` is an explicit clear."""
    type: ClassVar[ActionType] = ActionType.EDIT_GAME_METADATA
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class AddLegacyAction:
    type: ClassVar[ActionType] = ActionType.ADD_LEGACY
    legacy: Legacy
    index: int
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class RemoveLegacyAction:
    type: ClassVar[ActionType] = ActionType.REMOVE_LEGACY
    legacy: Legacy
    index: int
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class EditLegacyAction:
    type: ClassVar[ActionType] = ActionType.EDIT_LEGACY
    legacy_id: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


# ------------------------------------------------------------------
# Reorders
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ReorderPeriodsAction:
    type: ClassVar[ActionType] = ActionType.REORDER_PERIODS
    previous_order: tuple[str, ...]
    new_order: tuple[str, ...]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class ReorderEventsAction:
    type: ClassVar[ActionType] = ActionType.REORDER_EVENTS
    period_id: str
    previous_order: tuple[str, ...]
    new_order: tuple[str, ...]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class ReorderScenesAction:
    type: ClassVar[ActionType] = ActionType.REORDER_SCENES
    period_id: str
    event_id: str
    previous_order: tuple[str, ...]
    new_order: tuple[str, ...]
    timestamp: str = field(default_factory=now_iso)


# ------------------------------------------------------------------
# Anchors
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CreateAnchorAction:
    type: ClassVar[ActionType] = ActionType.CREATE_ANCHOR
    anchor: Anchor
    index: int
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class DeleteAnchorAction:
    type: ClassVar[ActionType] = ActionType.DELETE_ANCHOR
    anchor_id: str
    index: int
    anchor: Anchor
    associated_placements: tuple[IndexedPlacement, ...]
    was_current_anchor: bool
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class EditAnchorAction:
    type: ClassVar[ActionType] = ActionType.EDIT_ANCHOR
    anchor_id: str
    previous_values: dict[str, Any]
    new_values: dict[str, Any]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class SetCurrentAnchorAction:
    """Make *anchor_id* current, placed on *period_id*.

    ``placement`` is the placement that is active afterwards.  When
    ``placement_created`` is False it already existed and only
    ``current_anchor_id`` changes.  ``removed_placements`` is always
    present (empty when nothing was superseded).
    """
    type: ClassVar[ActionType] = ActionType.SET_CURRENT_ANCHOR
    anchor_id: str
    period_id: str
    placement: AnchorPlacement
    placement_created: bool
    removed_placements: tuple[IndexedPlacement, ...]
    previous_anchor_id: Optional[str]
    timestamp: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class ClearCurrentAnchorAction:
    type: ClassVar[ActionType] = ActionType.CLEAR_CURRENT_ANCHOR
    previous_anchor_id: Optional[str]
    timestamp: str = field(default_factory=now_iso)


# ------------------------------------------------------------------
# Forward compatibility
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UnknownAction:
    """A decoded action whose tag this version does not recognise.

    Replaying it (either direction) leaves the document unchanged.
    """
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=now_iso)


GameAction = Union[
    CreatePeriodAction,
    DeletePeriodAction,
    EditPeriodAction,
    CreateEventAction,
    DeleteEventAction,
    EditEventAction,
    CreateSceneAction,
    DeleteSceneAction,
    EditSceneAction,
    EditGameMetadataAction,
    AddLegacyAction,
    RemoveLegacyAction,
    EditLegacyAction,
    ReorderPeriodsAction,
    ReorderEventsAction,
    ReorderScenesAction,
    CreateAnchorAction,
    DeleteAnchorAction,
    EditAnchorAction,
    SetCurrentAnchorAction,
    ClearCurrentAnchorAction,
    UnknownAction,
]

ACTION_CLASSES: dict[ActionType, type] = {
    cls.type: cls
    for cls in (
        CreatePeriodAction, DeletePeriodAction, EditPeriodAction,
        CreateEventAction, DeleteEventAction, EditEventAction,
        CreateSceneAction, DeleteSceneAction, EditSceneAction,
        EditGameMetadataAction,
        AddLegacyAction, RemoveLegacyAction, EditLegacyAction,
        ReorderPeriodsAction, ReorderEventsAction, ReorderScenesAction,
        CreateAnchorAction, DeleteAnchorAction, EditAnchorAction,
        SetCurrentAnchorAction, ClearCurrentAnchorAction,
    )
}
