"""
API routes for Microscope Canvas.
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import Any, Optional

from core.errors import ValidationError
from core.history import get_redo_count, get_undo_count
from formats.codec import (
    action_to_dict,
    game_to_dict,
    metadata_to_dict,
    metadata_updates_from_dict,
    updates_from_dict,
)
from infrastructure.game_io import GameImportError
from infrastructure.persistence import GameNotFoundError
from services.game_service import GameService, SnapshotNotFoundError
from services.game_session import GameSession


router = APIRouter(prefix="/api")

# Singleton service, created in main.py and attached here
_service: Optional[GameService] = None


def init_service(service: GameService) -> None:
    global _service
    _service = service


def svc() -> GameService:
    if _service is None:
        raise RuntimeError("GameService not initialized")
    return _service


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class CreateGameRequest(BaseModel):
    name: str


class ImportRequest(BaseModel):
    content: str


class EditRequest(BaseModel):
    fields: dict


class CreateEntityRequest(BaseModel):
    name: Optional[str] = None
    tone: str = "light"
    index: Optional[int] = None


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class NamedRequest(BaseModel):
    name: str
    description: Optional[str] = None


class PlaceAnchorRequest(BaseModel):
    period_id: str
    round_number: Optional[int] = None
    notes: Optional[str] = None


class SnapshotRequest(BaseModel):
    version_name: Optional[str] = None


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _session(game_id: str) -> GameSession:
    try:
        return svc().session(game_id)
    except GameNotFoundError:
        raise HTTPException(404, f"Game not found: {game_id}")


def _state(session: GameSession) -> dict[str, Any]:
    return {
        "game": game_to_dict(session.game),
        "undoCount": get_undo_count(session.history),
        "redoCount": get_redo_count(session.history),
    }


def _result(session: GameSession, action, *, required: bool = True) -> dict[str, Any]:
    """Response of a mutation.  *required* turns a ``None`` action (an id
    that did not resolve) into a 404."""
    if action is None and required:
        raise HTTPException(404, "Entity not found")
    return {"action": action_to_dict(action) if action is not None else None, **_state(session)}


def _mutate(game_id: str, op, *, required: bool = True) -> dict[str, Any]:
    session = _session(game_id)
    try:
        action = op(session)
    except ValidationError as e:
        raise HTTPException(422, str(e))
    return _result(session, action, required=required)


def _updates(fields: dict) -> dict[str, Any]:
    try:
        return updates_from_dict(fields)
    except ValidationError as e:
        raise HTTPException(422, str(e))


# ------------------------------------------------------------------
# Games
# ------------------------------------------------------------------

@router.get("/games")
def list_games():
    """List stored games, most recently updated first."""
    return [metadata_to_dict(m) for m in svc().list_games()]


@router.post("/games")
def create_game(req: CreateGameRequest):
    try:
        session = svc().create_game(req.name)
    except ValidationError as e:
        raise HTTPException(422, str(e))
    return _state(session)


@router.post("/games/import")
def import_game(req: ImportRequest):
    """Import an exported JSON file as a new game."""
    try:
        session = svc().import_json(req.content)
    except GameImportError as e:
        raise HTTPException(400, {"code": e.code.value, "message": str(e)})
    return _state(session)


@router.get("/games/{game_id}")
def get_game(game_id: str):
    return _state(_session(game_id))


@router.delete("/games/{game_id}")
def delete_game(game_id: str):
    try:
        removed = svc().delete_game(game_id)
    except GameNotFoundError:
        raise HTTPException(404, f"Game not found: {game_id}")
    return {"deleted": game_id, "snapshotsRemoved": removed}


@router.post("/games/{game_id}/close")
def close_game(game_id: str):
    svc().close_game(game_id)
    return {"closed": game_id}


@router.post("/games/{game_id}/save")
def save_game(game_id: str):
    try:
        game = svc().save_game(game_id)
    except GameNotFoundError:
        raise HTTPException(404, f"Game not found: {game_id}")
    return {"saved": game.id, "updatedAt": game.updated_at}


@router.patch("/games/{game_id}/metadata")
def edit_metadata(game_id: str, req: EditRequest):
    """Edit root settings (name, focus, players, palette, ...)."""
    try:
        updates = metadata_updates_from_dict(req.fields)
    except ValidationError as e:
        raise HTTPException(422, str(e))
    return _mutate(game_id, lambda s: s.edit_game_metadata(updates))


# ------------------------------------------------------------------
# Undo / Redo
# ------------------------------------------------------------------

@router.post("/games/{game_id}/undo")
def undo(game_id: str):
    return _mutate(game_id, lambda s: s.undo(), required=False)


@router.post("/games/{game_id}/redo")
def redo(game_id: str):
    return _mutate(game_id, lambda s: s.redo(), required=False)


# ------------------------------------------------------------------
# Periods
# ------------------------------------------------------------------

@router.post("/games/{game_id}/periods")
def add_period(game_id: str, req: CreateEntityRequest):
    return _mutate(game_id, lambda s: s.add_period(req.index, req.name, req.tone))


@router.post("/games/{game_id}/periods/reorder")
def reorder_periods(game_id: str, req: ReorderRequest):
    return _mutate(
        game_id, lambda s: s.reorder_periods(req.from_index, req.to_index), required=False,
    )


@router.patch("/games/{game_id}/periods/{period_id}")
def edit_period(game_id: str, period_id: str, req: EditRequest):
    updates = _updates(req.fields)
    return _mutate(game_id, lambda s: s.edit_period(period_id, updates))


@router.delete("/games/{game_id}/periods/{period_id}")
def delete_period(game_id: str, period_id: str):
    return _mutate(game_id, lambda s: s.delete_period(period_id))


# ------------------------------------------------------------------
# Events
# ------------------------------------------------------------------

@router.post("/games/{game_id}/periods/{period_id}/events")
def add_event(game_id: str, period_id: str, req: CreateEntityRequest):
    return _mutate(game_id, lambda s: s.add_event(period_id, req.name, req.tone))


@router.post("/games/{game_id}/periods/{period_id}/events/reorder")
def reorder_events(game_id: str, period_id: str, req: ReorderRequest):
    return _mutate(
        game_id,
        lambda s: s.reorder_events(period_id, req.from_index, req.to_index),
        required=False,
    )


@router.patch("/games/{game_id}/periods/{period_id}/events/{event_id}")
def edit_event(game_id: str, period_id: str, event_id: str, req: EditRequest):
    updates = _updates(req.fields)
    return _mutate(game_id, lambda s: s.edit_event(period_id, event_id, updates))


@router.delete("/games/{game_id}/periods/{period_id}/events/{event_id}")
def delete_event(game_id: str, period_id: str, event_id: str):
    return _mutate(game_id, lambda s: s.delete_event(period_id, event_id))


# ------------------------------------------------------------------
# Scenes
# ------------------------------------------------------------------

@router.post("/games/{game_id}/periods/{period_id}/events/{event_id}/scenes")
def add_scene(game_id: str, period_id: str, event_id: str, req: CreateEntityRequest):
    return _mutate(game_id, lambda s: s.add_scene(period_id, event_id, req.name, req.tone))


@router.post("/games/{game_id}/periods/{period_id}/events/{event_id}/scenes/reorder")
def reorder_scenes(game_id: str, period_id: str, event_id: str, req: ReorderRequest):
    return _mutate(
        game_id,
        lambda s: s.reorder_scenes(period_id, event_id, req.from_index, req.to_index),
        required=False,
    )


@router.patch("/games/{game_id}/periods/{period_id}/events/{event_id}/scenes/{scene_id}")
def edit_scene(game_id: str, period_id: str, event_id: str, scene_id: str, req: EditRequest):
    updates = _updates(req.fields)
    return _mutate(game_id, lambda s: s.edit_scene(period_id, event_id, scene_id, updates))


@router.delete("/games/{game_id}/periods/{period_id}/events/{event_id}/scenes/{scene_id}")
def delete_scene(game_id: str, period_id: str, event_id: str, scene_id: str):
    return _mutate(game_id, lambda s: s.delete_scene(period_id, event_id, scene_id))


# ------------------------------------------------------------------
# Legacies
# ------------------------------------------------------------------

@router.post("/games/{game_id}/legacies")
def add_legacy(game_id: str, req: NamedRequest):
    return _mutate(game_id, lambda s: s.add_legacy(req.name, req.description))


@router.patch("/games/{game_id}/legacies/{legacy_id}")
def edit_legacy(game_id: str, legacy_id: str, req: EditRequest):
    updates = _updates(req.fields)
    return _mutate(game_id, lambda s: s.edit_legacy(legacy_id, updates))


@router.delete("/games/{game_id}/legacies/{legacy_id}")
def remove_legacy(game_id: str, legacy_id: str):
    return _mutate(game_id, lambda s: s.remove_legacy(legacy_id))


# ------------------------------------------------------------------
# Anchors
# ------------------------------------------------------------------

@router.post("/games/{game_id}/anchors")
def create_anchor(game_id: str, req: NamedRequest):
    return _mutate(game_id, lambda s: s.create_anchor(req.name, req.description))


@router.post("/games/{game_id}/anchors/clear-current")
def clear_current_anchor(game_id: str):
    return _mutate(game_id, lambda s: s.clear_current_anchor(), required=False)


@router.patch("/games/{game_id}/anchors/{anchor_id}")
def edit_anchor(game_id: str, anchor_id: str, req: EditRequest):
    updates = _updates(req.fields)
    return _mutate(game_id, lambda s: s.edit_anchor(anchor_id, updates))


@router.delete("/games/{game_id}/anchors/{anchor_id}")
def delete_anchor(game_id: str, anchor_id: str):
    return _mutate(game_id, lambda s: s.delete_anchor(anchor_id))


@router.post("/games/{game_id}/anchors/{anchor_id}/place")
def place_anchor(game_id: str, anchor_id: str, req: PlaceAnchorRequest):
    """Place an anchor on a period and make it the current anchor."""
    session = _session(game_id)
    result = session.set_current_anchor(
        anchor_id, req.period_id, round_number=req.round_number, notes=req.notes,
    )
    if result is None:
        raise HTTPException(404, "Anchor or period not found")
    return {
        **_result(session, result.action, required=False),
        "wasAlreadyPlaced": result.was_already_placed,
    }


# ------------------------------------------------------------------
# Snapshots
# ------------------------------------------------------------------

@router.get("/games/{game_id}/snapshots")
def list_snapshots(game_id: str):
    _session(game_id)
    return [metadata_to_dict(m) for m in svc().list_snapshots(game_id)]


@router.post("/games/{game_id}/snapshots")
def create_snapshot(game_id: str, req: SnapshotRequest):
    """Record a version.  ``snapshot`` is null when nothing changed."""
    _session(game_id)
    snapshot = svc().create_snapshot(game_id, req.version_name)
    if snapshot is None:
        return {"created": False, "snapshot": None}
    return {
        "created": True,
        "snapshot": {
            "id": snapshot.id,
            "timestamp": snapshot.timestamp,
            "versionName": snapshot.version_name,
            "changeSummary": snapshot.change_summary,
        },
    }


@router.post("/games/{game_id}/snapshots/{snapshot_id}/restore")
def restore_snapshot(game_id: str, snapshot_id: str):
    _session(game_id)
    try:
        session = svc().restore_snapshot(game_id, snapshot_id)
    except SnapshotNotFoundError:
        raise HTTPException(404, f"Snapshot not found: {snapshot_id}")
    except ValidationError as e:
        raise HTTPException(422, str(e))
    return _state(session)


# ------------------------------------------------------------------
# Export
# ------------------------------------------------------------------

@router.get("/games/{game_id}/export/json", response_class=PlainTextResponse)
def export_json(game_id: str, include_history: bool = False):
    _session(game_id)
    return svc().export_json(game_id, include_history=include_history)


@router.get("/games/{game_id}/export/markdown", response_class=PlainTextResponse)
def export_markdown(game_id: str):
    _session(game_id)
    return svc().export_markdown(game_id)
