"""
Tests for core/executor.py — apply / reverse of every action variant.
"""
import dataclasses
import logging

from core import (
    Game,
    Tone,
    UnknownAction,
    apply_action,
    create_new_event,
    create_new_game,
    create_new_period,
    create_new_scene,
    reverse_action,
)
from core.actions import (
    CreateEventAction,
    CreatePeriodAction,
    DeleteEventAction,
    DeletePeriodAction,
    EditPeriodAction,
    ReorderEventsAction,
    ReorderPeriodsAction,
)
from core.executor import execute
from core.model import now_iso


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _strip(game: Game) -> Game:
    """Copy with the root update stamp blanked (both directions refresh it)."""
    return dataclasses.replace(game, updated_at="")


def _game_with_periods(*names: str) -> Game:
    game = create_new_game("G")
    for name in names:
        period = create_new_period(name)
        period = dataclasses.replace(period, id=name)
        game.periods.append(period)
    return game


def _period_ids(game: Game) -> list[str]:
    return [p.id for p in game.periods]


# ===========================================================
# Purity
# ===========================================================

class TestPurity:

    def test_apply_does_not_mutate_input(self):
        game = create_new_game("G")
        period = create_new_period("P")
        action = CreatePeriodAction(period_id=period.id, index=0, period=period)
        result = apply_action(game, action)
        assert game.periods == []
        assert len(result.periods) == 1

    def test_applied_entity_is_a_copy(self):
        game = create_new_game("G")
        period = create_new_period("P")
        action = CreatePeriodAction(period_id=period.id, index=0, period=period)
        result = apply_action(game, action)
        result.periods[0].name = "Changed"
        assert action.period.name == "P"

    def test_apply_refreshes_root_timestamp(self):
        game = create_new_game("G")
        game.updated_at = "2000-01-01T00:00:00.000Z"
        period = create_new_period("P")
        result = apply_action(
            game, CreatePeriodAction(period_id=period.id, index=0, period=period),
        )
        assert result.updated_at > game.updated_at


# ===========================================================
# End-to-end scenarios
# ===========================================================

class TestTimelineScenario:

    def test_add_period_event_then_delete_and_reverse(self):
        game = create_new_game("G")
        period = create_new_period("P1")
        game = apply_action(game, CreatePeriodAction(period_id=period.id, index=0, period=period))
        event = create_new_event("E1")
        game = apply_action(game, CreateEventAction(
            period_id=period.id, event_id=event.id, index=0, event=event,
        ))
        assert [e.name for e in game.periods[0].events] == ["E1"]

        before_delete = game
        delete = DeleteEventAction(
            period_id=period.id, event_id=event.id, index=0,
            event=game.periods[0].events[0],
        )
        game = apply_action(game, delete)
        assert game.periods[0].events == []

        game = reverse_action(game, delete)
        assert _strip(game) == _strip(before_delete)
        assert game.periods[0].events[0].name == "E1"

    def test_reorder_periods_and_reverse(self):
        game = _game_with_periods("A", "B", "C")
        action = ReorderPeriodsAction(
            previous_order=("A", "B", "C"), new_order=("B", "C", "A"),
        )
        moved = apply_action(game, action)
        assert _period_ids(moved) == ["B", "C", "A"]
        assert _period_ids(reverse_action(moved, action)) == ["A", "B", "C"]


# ===========================================================
# Reorder edge cases
# ===========================================================

class TestReorder:

    def test_missing_ids_are_skipped(self):
        game = _game_with_periods("A", "B")
        action = ReorderPeriodsAction(
            previous_order=("A", "B"), new_order=("B", "GONE", "A"),
        )
        assert _period_ids(apply_action(game, action)) == ["B", "A"]

    def test_entities_absent_from_order_are_dropped(self):
        game = _game_with_periods("A", "B", "C")
        action = ReorderPeriodsAction(previous_order=("A", "B"), new_order=("B", "A"))
        assert _period_ids(apply_action(game, action)) == ["B", "A"]

    def test_reorder_events_in_missing_period_is_noop(self):
        game = _game_with_periods("A")
        action = ReorderEventsAction(
            period_id="nope", previous_order=(), new_order=(),
        )
        assert _strip(apply_action(game, action)) == _strip(game)


# ===========================================================
# Edits
# ===========================================================

class TestEdits:

    def test_edit_and_reverse(self):
        game = _game_with_periods("A")
        stamp = game.periods[0].updated_at
        action = EditPeriodAction(
            period_id="A",
            previous_values={"name": "A", "tone": Tone.LIGHT, "updated_at": stamp},
            new_values={"name": "Renamed", "tone": Tone.DARK, "updated_at": now_iso()},
        )
        edited = apply_action(game, action)
        assert edited.periods[0].name == "Renamed"
        assert edited.periods[0].tone is Tone.DARK

        restored = reverse_action(edited, action)
        assert _strip(restored) == _strip(game)

    def test_tone_string_is_coerced(self):
        game = _game_with_periods("A")
        action = EditPeriodAction(
            period_id="A", previous_values={"tone": "light"}, new_values={"tone": "dark"},
        )
        assert apply_action(game, action).periods[0].tone is Tone.DARK

    def test_identity_fields_are_not_editable(self):
        game = _game_with_periods("A")
        created = game.periods[0].created_at
        action = EditPeriodAction(
            period_id="A",
            previous_values={},
            new_values={"id": "X", "created_at": "never", "colour": "red"},
        )
        edited = apply_action(game, action)
        assert edited.periods[0].id == "A"
        assert edited.periods[0].created_at == created

    def test_unrecorded_updated_at_is_refreshed(self):
        game = _game_with_periods("A")
        game.periods[0].updated_at = "2000-01-01T00:00:00.000Z"
        action = EditPeriodAction(
            period_id="A", previous_values={"name": "A"}, new_values={"name": "B"},
        )
        assert apply_action(game, action).periods[0].updated_at != "2000-01-01T00:00:00.000Z"

    def test_edit_missing_period_is_noop(self):
        game = _game_with_periods("A")
        action = EditPeriodAction(
            period_id="nope", previous_values={}, new_values={"name": "x"},
        )
        assert _strip(apply_action(game, action)) == _strip(game)


# ===========================================================
# Unknown tags
# ===========================================================

class TestUnknownAction:

    def test_document_unchanged(self, caplog):
        game = _game_with_periods("A")
        action = UnknownAction(type="TIME_TRAVEL", payload={"x": 1})
        with caplog.at_level(logging.WARNING, logger="core.executor"):
            result = apply_action(game, action)
        assert result == game
        assert "TIME_TRAVEL" in caplog.text

    def test_reverse_unchanged(self):
        game = _game_with_periods("A")
        action = UnknownAction(type="TIME_TRAVEL")
        assert reverse_action(game, action) == game

    def test_known_tag_string_still_ignored(self):
        game = _game_with_periods("A")
        execute(game, UnknownAction(type="DELETE_PERIOD", payload={"periodId": "A"}))
        assert _period_ids(game) == ["A"]


# ===========================================================
# Nested inverses
# ===========================================================

class TestNested:

    def test_delete_period_restores_descendants(self):
        game = _game_with_periods("A", "B")
        event = create_new_event("E")
        event.scenes.append(create_new_scene("S"))
        game.periods[1].events.append(event)

        action = DeletePeriodAction(period_id="B", index=1, period=game.periods[1])
        removed = apply_action(game, action)
        assert _period_ids(removed) == ["A"]

        restored = reverse_action(removed, action)
        assert _strip(restored) == _strip(game)
        assert restored.periods[1].events[0].scenes[0].name == "S"
