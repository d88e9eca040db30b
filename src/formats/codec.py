"""
Dict codec — model / action / snapshot dataclasses ⇄ JSON-safe dicts.

The JSON form uses camelCase keys (``createdAt``, ``currentAnchorId``)
so exported files stay compatible with existing Microscope Canvas
exports.  Python objects keep snake_case attributes.

Encoding is generic over dataclasses.  Decoding is driven by the field
type hints, so a malformed payload fails with a ValidationError naming
the offending path instead of producing a half-built object.
"""
from __future__ import annotations

import dataclasses
import functools
import re
import typing
from enum import Enum
from typing import Any, Mapping, Union

from core.actions import (
    ACTION_CLASSES,
    ActionType,
    EditGameMetadataAction,
    GameAction,
    UnknownAction,
)
from core.errors import ValidationError
from core.model import Game, GameMetadata, now_iso
from core.snapshot import GameSnapshot, SnapshotMetadata

# Nullable fields that are written as ``null`` rather than omitted
_ALWAYS_EMIT = frozenset({"current_anchor_id", "previous_anchor_id"})

_CAMEL_RE = re.compile(r"([A-Z])")


def to_camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: "_" + m.group(1).lower(), name)


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------

def to_dict(obj: Any) -> Any:
    """Encode a dataclass (or container of them) as JSON-safe data."""
    if isinstance(obj, UnknownAction):
        return {**obj.payload, "type": obj.type, "timestamp": obj.timestamp}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        out: dict[str, Any] = {}
        tag = getattr(type(obj), "type", None)
        if isinstance(tag, ActionType):
            out["type"] = tag.value
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if value is None and f.name not in _ALWAYS_EMIT:
                continue
            out[to_camel(f.name)] = to_dict(value)
        return out
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [to_dict(v) for v in obj]
    if isinstance(obj, dict):
        # Edit value maps: attribute names become JSON keys
        return {to_camel(k): to_dict(v) for k, v in obj.items()}
    return obj


def game_to_dict(game: Game) -> dict[str, Any]:
    return to_dict(game)


def snapshot_to_dict(snapshot: GameSnapshot) -> dict[str, Any]:
    return to_dict(snapshot)


def action_to_dict(action: GameAction) -> dict[str, Any]:
    return to_dict(action)


def metadata_to_dict(metadata: GameMetadata | SnapshotMetadata) -> dict[str, Any]:
    return to_dict(metadata)


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------

@functools.lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _decode(hint: Any, value: Any, where: str) -> Any:
    if hint is Any:
        return value
    origin = typing.get_origin(hint)
    if origin is Union:
        if value is None:
            return None
        inner = [a for a in typing.get_args(hint) if a is not type(None)]
        return _decode(inner[0], value, where)
    if value is None:
        raise ValidationError(f"{where}: unexpected null")
    if origin is list:
        if not isinstance(value, list):
            raise ValidationError(f"{where}: expected a list")
        (item,) = typing.get_args(hint)
        return [_decode(item, v, f"{where}[{i}]") for i, v in enumerate(value)]
    if origin is tuple:
        if not isinstance(value, list):
            raise ValidationError(f"{where}: expected a list")
        item = typing.get_args(hint)[0]
        return tuple(_decode(item, v, f"{where}[{i}]") for i, v in enumerate(value))
    if origin is dict:
        if not isinstance(value, dict):
            raise ValidationError(f"{where}: expected an object")
        return dict(value)
    if isinstance(hint, type) and issubclass(hint, Enum):
        try:
            return hint(value)
        except ValueError:
            raise ValidationError(f"{where}: invalid value {value!r}") from None
    if dataclasses.is_dataclass(hint):
        return _from_dict(hint, value, where)
    if hint is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{where}: expected a boolean")
        return value
    if hint is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{where}: expected an integer")
        return value
    if hint is str:
        if not isinstance(value, str):
            raise ValidationError(f"{where}: expected a string")
        return value
    return value


def _from_dict(cls: type, data: Any, where: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValidationError(f"{where}: expected an object")
    hints = _hints(cls)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        key = to_camel(f.name)
        if key not in data:
            has_default = (
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING
            )
            if not has_default:
                raise ValidationError(f"{where}: missing field '{key}'")
            continue
        path = f"{where}.{key}"
        if f.name in ("previous_values", "new_values"):
            kwargs[f.name] = _decode_values(cls, data[key], path)
        else:
            kwargs[f.name] = _decode(hints[f.name], data[key], path)
    return cls(**kwargs)


def _decode_values(cls: type, raw: Any, where: str) -> dict[str, Any]:
    """Edit value maps: camelCase keys back to attribute names.  Game
    metadata values are typed by the matching :class:`Game` field."""
    if not isinstance(raw, Mapping):
        raise ValidationError(f"{where}: expected an object")
    values = {to_snake(k): v for k, v in raw.items()}
    if cls is EditGameMetadataAction:
        game_hints = _hints(Game)
        return {
            k: _decode(game_hints[k], v, f"{where}.{to_camel(k)}") if k in game_hints else v
            for k, v in values.items()
        }
    return values


def game_from_dict(data: Mapping[str, Any]) -> Game:
    """Decode a (migrated) game dict.  Raises ValidationError."""
    return _from_dict(Game, data, "game")


def snapshot_from_dict(data: Mapping[str, Any]) -> GameSnapshot:
    return _from_dict(GameSnapshot, data, "snapshot")


def action_from_dict(data: Mapping[str, Any]) -> GameAction:
    """Decode an action.  Unrecognised tags become :class:`UnknownAction`."""
    if not isinstance(data, Mapping) or "type" not in data:
        raise ValidationError("action: missing field 'type'")
    tag = data["type"]
    try:
        cls = ACTION_CLASSES[ActionType(tag)]
    except ValueError:
        payload = {k: v for k, v in data.items() if k not in ("type", "timestamp")}
        return UnknownAction(
            type=str(tag),
            payload=payload,
            timestamp=data.get("timestamp") or now_iso(),
        )
    return _from_dict(cls, data, f"action<{tag}>")


def updates_from_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """Decode an entity edit (``{"name": ..., "tone": ...}``) from JSON keys."""
    return _decode_values(dict, data, "updates")


def metadata_updates_from_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """Decode a game settings edit; nested values (focuses, palette, ...)
    become model objects."""
    return _decode_values(EditGameMetadataAction, data, "updates")
