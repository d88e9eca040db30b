"""
Document model — the Game tree and its auxiliary collections.

The Game is the **single in-memory representation** of a timeline:

    Game ─┬─ periods[]  ── events[] ── scenes[]      (the timeline spine)
          ├─ legacies[] / focuses[] / players[]       (flat named records)
          └─ anchors[] + anchor_placements[]          (recurring characters)

Entities are plain mutable dataclasses addressed by stable UUID strings.
All structural mutation goes through ``core.executor`` so that every
change has an invertible :mod:`core.actions` record; the factories here
only build well-formed *detached* entities.

Timestamps are ISO 8601 UTC strings (millisecond precision, ``Z``
suffix) so they sort lexically and survive a JSON round trip unchanged.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Protocol, TypeVar

from core.errors import ValidationError

SCHEMA_VERSION = 2

DEFAULT_PERIOD_NAME = "New Period"
DEFAULT_EVENT_NAME = "New Event"
DEFAULT_SCENE_NAME = "New Scene"


def now_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid.uuid4())


class Tone(str, Enum):
    """Light / dark qualitative tag on periods, events and scenes."""
    LIGHT = "light"
    DARK = "dark"


def coerce_tone(value: Tone | str) -> Tone:
    """Accept a :class:`Tone` or its string value.  Raises ValidationError."""
    try:
        return Tone(value)
    except ValueError:
        raise ValidationError(
            f"Invalid tone {value!r}; expected 'light' or 'dark'"
        ) from None


# ------------------------------------------------------------------
# Flat records
# ------------------------------------------------------------------

@dataclass(slots=True)
class Focus:
    id: str = field(default_factory=new_id)
    name: str = ""
    description: Optional[str] = None


@dataclass(slots=True)
class Player:
    id: str = field(default_factory=new_id)
    name: str = ""


@dataclass(slots=True)
class Legacy:
    id: str = field(default_factory=new_id)
    name: str = ""
    description: Optional[str] = None


@dataclass(slots=True)
class BigPicture:
    premise: str = ""
    bookend_start: Optional[str] = None
    bookend_end: Optional[str] = None


@dataclass(slots=True)
class Palette:
    """Things explicitly allowed (``yes``) and banned (``no``)."""
    yes: list[str] = field(default_factory=list)
    no: list[str] = field(default_factory=list)


# ------------------------------------------------------------------
# Anchors
# ------------------------------------------------------------------

@dataclass(slots=True)
class Anchor:
    """A recurring character, independent of the timeline tree."""
    id: str = field(default_factory=new_id)
    name: str = ""
    description: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass(slots=True)
class AnchorPlacement:
    """Where an anchor was last placed.

    Placements are never edited, only superseded or removed, so they
    carry ``created_at`` but no ``updated_at``.
    """
    anchor_id: str
    period_id: str
    id: str = field(default_factory=new_id)
    round_number: Optional[int] = None
    notes: Optional[str] = None
    created_at: str = field(default_factory=now_iso)


# ------------------------------------------------------------------
# Timeline tree
# ------------------------------------------------------------------

@dataclass(slots=True)
class Scene:
    id: str = field(default_factory=new_id)
    name: str = ""
    tone: Tone = Tone.LIGHT
    description: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass(slots=True)
class Event:
    id: str = field(default_factory=new_id)
    name: str = ""
    tone: Tone = Tone.LIGHT
    description: Optional[str] = None
    notes: Optional[str] = None
    scenes: list[Scene] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass(slots=True)
class Period:
    id: str = field(default_factory=new_id)
    name: str = ""
    tone: Tone = Tone.LIGHT
    description: Optional[str] = None
    notes: Optional[str] = None
    events: list[Event] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass(slots=True)
class Game:
    """
    Root of the document.

    Attributes:
        focuses / current_focus_index:  ordered focus list and the index
                     of the active one (``-1`` = none).
        focus:       deprecated single focus; still read when
                     ``focuses`` is empty (see :func:`current_focus`).
        players / active_player_index:  same convention as focuses.
        current_anchor_id:  at most one anchor is "current" at a time.
    """
    id: str = field(default_factory=new_id)
    name: str = ""
    schema_version: int = SCHEMA_VERSION
    big_picture: Optional[BigPicture] = None
    palette: Optional[Palette] = None
    focuses: list[Focus] = field(default_factory=list)
    current_focus_index: int = -1
    focus: Optional[Focus] = None
    players: list[Player] = field(default_factory=list)
    active_player_index: int = -1
    legacies: list[Legacy] = field(default_factory=list)
    periods: list[Period] = field(default_factory=list)
    anchors: list[Anchor] = field(default_factory=list)
    current_anchor_id: Optional[str] = None
    anchor_placements: list[AnchorPlacement] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass(frozen=True, slots=True)
class GameMetadata:
    """Listing projection — avoids loading full documents."""
    id: str
    name: str
    created_at: str
    updated_at: str


# Fields an edit may touch.  Identity, timestamps and child
# collections are owned by the mutation engine.
PERIOD_EDITABLE_FIELDS = ("name", "tone", "description", "notes")
EVENT_EDITABLE_FIELDS = ("name", "tone", "description", "notes")
SCENE_EDITABLE_FIELDS = ("name", "tone", "description", "question", "answer", "notes")
ANCHOR_EDITABLE_FIELDS = ("name", "description")
LEGACY_EDITABLE_FIELDS = ("name", "description")

GAME_METADATA_FIELDS = (
    "name",
    "focus",
    "focuses",
    "current_focus_index",
    "players",
    "active_player_index",
    "big_picture",
    "palette",
    "legacies",
)


# ------------------------------------------------------------------
# Factories
# ------------------------------------------------------------------

def create_new_game(name: str) -> Game:
    """Build an empty game.  Raises ValidationError on a blank name."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Game name cannot be empty")
    now = now_iso()
    return Game(name=trimmed, created_at=now, updated_at=now)


def create_new_period(name: str, tone: Tone | str = Tone.LIGHT) -> Period:
    now = now_iso()
    return Period(name=name, tone=coerce_tone(tone), created_at=now, updated_at=now)


def create_new_event(name: str, tone: Tone | str = Tone.LIGHT) -> Event:
    now = now_iso()
    return Event(name=name, tone=coerce_tone(tone), created_at=now, updated_at=now)


def create_new_scene(name: str, tone: Tone | str = Tone.LIGHT) -> Scene:
    now = now_iso()
    return Scene(name=name, tone=coerce_tone(tone), created_at=now, updated_at=now)


def create_new_legacy(name: str, description: Optional[str] = None) -> Legacy:
    return Legacy(name=name, description=description)


def create_new_focus(name: str, description: Optional[str] = None) -> Focus:
    return Focus(name=name, description=description)


def create_new_player(name: str) -> Player:
    return Player(name=name)


def create_new_anchor(name: str, description: Optional[str] = None) -> Anchor:
    now = now_iso()
    return Anchor(name=name, description=description, created_at=now, updated_at=now)


def create_anchor_placement(
    anchor_id: str,
    period_id: str,
    *,
    round_number: Optional[int] = None,
    notes: Optional[str] = None,
) -> AnchorPlacement:
    return AnchorPlacement(
        anchor_id=anchor_id,
        period_id=period_id,
        round_number=round_number,
        notes=notes,
    )


def get_game_metadata(game: Game) -> GameMetadata:
    return GameMetadata(
        id=game.id,
        name=game.name,
        created_at=game.created_at,
        updated_at=game.updated_at,
    )


def current_focus(game: Game) -> Optional[Focus]:
    """The active focus: indexed entry when valid, else the legacy field."""
    if 0 <= game.current_focus_index < len(game.focuses):
        return game.focuses[game.current_focus_index]
    return game.focus


# ------------------------------------------------------------------
# Lookups (not-found → None / -1, never raises)
# ------------------------------------------------------------------

class _HasId(Protocol):
    id: str


E = TypeVar("E", bound=_HasId)


def index_of(items: Iterable[_HasId], item_id: str) -> int:
    """0-based position of the entity with *item_id*, or ``-1``."""
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return -1


def find_by_id(items: Iterable[E], item_id: str) -> Optional[E]:
    for item in items:
        if item.id == item_id:
            return item
    return None


def find_event(game: Game, period_id: str, event_id: str) -> Optional[Event]:
    period = find_by_id(game.periods, period_id)
    if period is None:
        return None
    return find_by_id(period.events, event_id)


def find_scene(
    game: Game, period_id: str, event_id: str, scene_id: str,
) -> Optional[Scene]:
    event = find_event(game, period_id, event_id)
    if event is None:
        return None
    return find_by_id(event.scenes, scene_id)
