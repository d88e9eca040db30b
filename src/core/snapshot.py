"""
Snapshots — immutable point-in-time copies of a Game for version history.

Also home of the two comparisons the snapshot layer relies on:

- :func:`are_games_equal` suppresses duplicate snapshots when nothing
  of substance changed (root timestamps are ignored).
- :func:`generate_change_summary` derives a short human-readable diff
  between two versions, e.g. ``Renamed game to "Ages"; Added 2 periods``.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Optional

from core.clone import deep_clone
from core.model import Event, Game, current_focus, new_id, now_iso

DEFAULT_SNAPSHOT_LIMIT = 50

INITIAL_SUMMARY = "Initial version"
FALLBACK_SUMMARY = "Various edits"

# At most this many phrases are shown before the summary is cut off
_MAX_PHRASES = 3
# Added / removed periods are listed by name up to this count
_MAX_NAMED = 3


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Full copy of a game.  Consumers must never mutate ``data``."""
    game_id: str
    data: Game
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=now_iso)
    version_name: Optional[str] = None
    change_summary: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SnapshotMetadata:
    """Listing projection of a snapshot."""
    id: str
    game_id: str
    timestamp: str
    game_name: str
    version_name: Optional[str] = None
    change_summary: Optional[str] = None


def create_snapshot(
    game: Game,
    version_name: Optional[str] = None,
    change_summary: Optional[str] = None,
) -> GameSnapshot:
    return GameSnapshot(
        game_id=game.id,
        data=deep_clone(game),
        version_name=version_name,
        change_summary=change_summary,
    )


def get_snapshot_metadata(snapshot: GameSnapshot) -> SnapshotMetadata:
    return SnapshotMetadata(
        id=snapshot.id,
        game_id=snapshot.game_id,
        timestamp=snapshot.timestamp,
        game_name=snapshot.data.name,
        version_name=snapshot.version_name,
        change_summary=snapshot.change_summary,
    )


def are_games_equal(a: Game, b: Game) -> bool:
    """Structural equality ignoring the root ``created_at`` / ``updated_at``."""
    return (
        dataclasses.replace(a, created_at="", updated_at="")
        == dataclasses.replace(b, created_at="", updated_at="")
    )


# ------------------------------------------------------------------
# Change summary
# ------------------------------------------------------------------

def _count(n: int, noun: str) -> str:
    return f"{n} {noun}" if n == 1 else f"{n} {noun}s"


def _named(verb: str, names: list[str], noun: str) -> str:
    phrase = f"{verb} {_count(len(names), noun)}"
    if len(names) <= _MAX_NAMED:
        phrase += ": " + ", ".join(names)
    return phrase


def generate_change_summary(old: Optional[Game], new: Game) -> str:
    """Describe what changed from *old* to *new*.

    Returns ``"Initial version"`` when there is no previous version and
    ``"Various edits"`` when only untracked fields (descriptions, notes,
    tones, ...) changed.
    """
    if old is None:
        return INITIAL_SUMMARY

    phrases: list[str] = []

    if old.name != new.name:
        phrases.append(f'Renamed game to "{new.name}"')

    old_focus, new_focus = current_focus(old), current_focus(new)
    old_focus_name = old_focus.name if old_focus else None
    new_focus_name = new_focus.name if new_focus else None
    if old_focus_name != new_focus_name:
        phrases.append(f"Focus: {new_focus_name}" if new_focus_name else "Cleared focus")

    old_periods = {p.id: p for p in old.periods}
    new_periods = {p.id: p for p in new.periods}

    added = [p.name for pid, p in new_periods.items() if pid not in old_periods]
    removed = [p.name for pid, p in old_periods.items() if pid not in new_periods]
    if added:
        phrases.append(_named("Added", added, "period"))
    if removed:
        phrases.append(_named("Removed", removed, "period"))

    events_added = events_removed = 0
    old_events: dict[str, Event] = {}
    new_events: dict[str, Event] = {}
    for pid, period in new_periods.items():
        previous = old_periods.get(pid)
        if previous is None:
            continue
        before = {e.id: e for e in previous.events}
        after = {e.id: e for e in period.events}
        events_added += sum(1 for eid in after if eid not in before)
        events_removed += sum(1 for eid in before if eid not in after)
        old_events.update(before)
        new_events.update(after)
    if events_added:
        phrases.append(f"Added {_count(events_added, 'event')}")
    if events_removed:
        phrases.append(f"Removed {_count(events_removed, 'event')}")

    scenes_added = scenes_removed = 0
    for eid, event in new_events.items():
        previous_event = old_events.get(eid)
        if previous_event is None:
            continue
        before_ids = {s.id for s in previous_event.scenes}
        after_ids = {s.id for s in event.scenes}
        scenes_added += len(after_ids - before_ids)
        scenes_removed += len(before_ids - after_ids)
    if scenes_added:
        phrases.append(f"Added {_count(scenes_added, 'scene')}")
    if scenes_removed:
        phrases.append(f"Removed {_count(scenes_removed, 'scene')}")

    if not phrases:
        return FALLBACK_SUMMARY
    summary = "; ".join(phrases[:_MAX_PHRASES])
    if len(phrases) > _MAX_PHRASES:
        summary += "..."
    return summary
