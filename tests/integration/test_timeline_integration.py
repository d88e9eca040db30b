"""
End-to-end test of a play session against a file-backed database.

Exercises the full game lifecycle through GameService only, simulating
the operations a frontend would trigger.

Test flow:
1. Create a game and build a timeline: periods, events, scenes,
   legacies and an anchor placement.  Take a named snapshot.
2. Make more edits, undo / redo part of them, and take a second
   snapshot whose change summary reflects the edits.
3. Shut the service down and reopen the database in a new service:
   the game and its history survive, the undo stack does not.
4. Restore the first snapshot, verify the live game matches it and
   snapshot the rewind.
5. Export with history to a gzipped file, import it, and verify the
   copy is identical apart from identity and timestamps.
"""

from __future__ import annotations

import dataclasses

import pytest

from core import Tone, are_games_equal, deep_clone
from infrastructure import GameStore, SnapshotStore, read_game_export, write_game_export
from services import GameService


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _service(db_path) -> GameService:
    return GameService(GameStore(db_path), SnapshotStore(db_path), autosave_delay=60.0)


def _without_identity(game):
    return dataclasses.replace(game, id="", created_at="", updated_at="")


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "canvas.db"


def test_play_session(db_path, tmp_path):
    # ---- Step 1: build a timeline -------------------------------------
    service = _service(db_path)
    session = service.create_game("The Long Winter")
    session.add_period(name="First Frost", tone=Tone.LIGHT)
    session.add_period(name="The Thaw", tone=Tone.DARK)
    frost, thaw = (p.id for p in session.game.periods)

    session.add_event(frost, name="Granaries fill", tone=Tone.LIGHT)
    event_id = session.game.periods[0].events[0].id
    session.add_scene(frost, event_id, name="Council meets")
    scene_id = session.game.periods[0].events[0].scenes[0].id
    session.edit_scene(frost, event_id, scene_id, {
        "question": "Who rations the grain?", "answer": "The elders",
    })
    session.add_legacy("The Elders")
    session.create_anchor("Old Mara")
    anchor_id = session.game.anchors[0].id
    session.set_current_anchor(anchor_id, thaw, round_number=1)

    first = service.create_snapshot(session.game_id, "Round one")
    assert first.change_summary == "Initial version"
    first_state = deep_clone(session.game)

    # ---- Step 2: more edits with undo / redo --------------------------
    session.add_event(thaw, name="Floods")
    session.add_event(thaw, name="Famine")
    session.undo()
    session.redo()
    session.delete_period(frost)
    session.undo()
    assert [p.name for p in session.game.periods] == ["First Frost", "The Thaw"]
    assert session.game.periods[0].events[0].scenes[0].answer == "The elders"

    second = service.create_snapshot(session.game_id, "Round two")
    assert second.change_summary == "Added 2 events"
    game_id = session.game_id
    service.shutdown()

    # ---- Step 3: reopen -----------------------------------------------
    service = _service(db_path)
    session = service.open_game(game_id)
    assert not session.can_undo
    assert [e.name for e in session.game.periods[1].events] == ["Floods", "Famine"]
    assert session.game.current_anchor_id == anchor_id
    assert [m.version_name for m in service.list_snapshots(game_id)] == [
        "Round two", "Round one",
    ]

    # ---- Step 4: restore ----------------------------------------------
    service.restore_snapshot(game_id, first.id)
    assert are_games_equal(session.game, first_state)
    third = service.create_snapshot(game_id, "Rewound")
    assert third.change_summary == "Removed 2 events"
    assert service.create_snapshot(game_id) is None

    # ---- Step 5: export / import through a file -----------------------
    path = tmp_path / "long-winter.json.gz"
    history = service._snapshots.load_all_for_game(game_id)
    write_game_export(path, session.game, history)
    parsed = read_game_export(path)
    imported = service.import_json(
        service.export_json(game_id, include_history=True)
    )
    assert _without_identity(parsed.game) == _without_identity(session.game)
    assert _without_identity(imported.game) == _without_identity(session.game)
    assert len(service.list_snapshots(imported.game_id)) == 3
    assert len(service.list_games()) == 2
    service.shutdown()
