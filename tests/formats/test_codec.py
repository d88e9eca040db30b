"""
Tests for formats/codec.py — dataclass ⇄ camelCase dict.
"""
import json

import pytest

from core import (
    ActionType,
    BigPicture,
    Palette,
    Tone,
    UnknownAction,
    ValidationError,
    apply_action,
    create_new_game,
    create_snapshot,
    deep_clone,
    reverse_action,
)
from core import game_actions as ga
from formats import (
    action_from_dict,
    action_to_dict,
    game_from_dict,
    game_to_dict,
    metadata_updates_from_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    updates_from_dict,
)
from formats.codec import to_camel, to_snake


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _rich_game():
    game = create_new_game("Ages")
    game.big_picture = BigPicture(premise="Empire falls", bookend_start="Dawn")
    game.palette = Palette(yes=["magic"], no=["guns"])
    ga.add_period(game, name="P1", tone="dark")
    period = game.periods[0]
    ga.add_event(game, period.id, name="E1")
    event = period.events[0]
    ga.add_scene(game, period.id, event.id, name="S1")
    ga.create_anchor(game, "Mab")
    ga.set_current_anchor(game, game.anchors[0].id, period.id, round_number=1)
    ga.add_legacy(game, "Iron")
    return game


def _through_json(data):
    return json.loads(json.dumps(data))


# ===========================================================
# Key casing
# ===========================================================

class TestKeyCasing:

    @pytest.mark.parametrize("snake, camel", [
        ("created_at", "createdAt"),
        ("current_anchor_id", "currentAnchorId"),
        ("name", "name"),
        ("bookend_start", "bookendStart"),
    ])
    def test_round_trip(self, snake, camel):
        assert to_camel(snake) == camel
        assert to_snake(camel) == snake


# ===========================================================
# Games
# ===========================================================

class TestGameCodec:

    def test_camel_case_keys(self):
        data = game_to_dict(_rich_game())
        assert "createdAt" in data
        assert "anchorPlacements" in data
        assert data["periods"][0]["tone"] == "dark"
        assert data["bigPicture"]["bookendStart"] == "Dawn"

    def test_none_omitted_except_current_anchor(self):
        game = create_new_game("G")
        data = game_to_dict(game)
        assert "bigPicture" not in data
        assert "focus" not in data
        assert data["currentAnchorId"] is None

    def test_round_trip(self):
        game = _rich_game()
        assert game_from_dict(_through_json(game_to_dict(game))) == game

    def test_missing_required_field(self):
        data = game_to_dict(_rich_game())
        del data["anchorPlacements"][0]["anchorId"]
        with pytest.raises(ValidationError, match="anchorId"):
            game_from_dict(data)

    def test_wrong_type(self):
        data = game_to_dict(create_new_game("G"))
        data["periods"] = "not a list"
        with pytest.raises(ValidationError, match="game.periods"):
            game_from_dict(data)

    def test_invalid_tone(self):
        data = game_to_dict(_rich_game())
        data["periods"][0]["tone"] = "grey"
        with pytest.raises(ValidationError, match="tone"):
            game_from_dict(data)

    def test_snapshot_round_trip(self):
        snapshot = create_snapshot(_rich_game(), "v1", "Initial version")
        assert snapshot_from_dict(_through_json(snapshot_to_dict(snapshot))) == snapshot


# ===========================================================
# Actions
# ===========================================================

class TestActionCodec:

    def test_type_tag_emitted(self):
        game = create_new_game("G")
        result = ga.add_period(game, name="P")
        data = action_to_dict(result.action)
        assert data["type"] == "CREATE_PERIOD"
        assert data["periodId"] == result.action.period_id
        assert data["period"]["name"] == "P"

    def test_edit_values_keys(self):
        game = create_new_game("G")
        ga.add_period(game)
        result = ga.edit_period(game, game.periods[0].id, {"tone": Tone.DARK})
        data = action_to_dict(result.action)
        assert data["newValues"]["tone"] == "dark"
        assert "updatedAt" in data["previousValues"]

    def test_decoded_edit_still_inverts(self):
        game = create_new_game("G")
        ga.add_period(game, name="P")
        before = deep_clone(game)
        result = ga.edit_period(game, game.periods[0].id, {"name": "Q", "tone": "dark"})
        decoded = action_from_dict(_through_json(action_to_dict(result.action)))
        restored = reverse_action(game, decoded)
        assert restored.periods == before.periods

    def test_set_current_anchor_round_trip(self):
        game = _rich_game()
        ga.add_period(game, name="P2")
        result = ga.set_current_anchor(game, game.anchors[0].id, game.periods[1].id)
        decoded = action_from_dict(_through_json(action_to_dict(result.action)))
        assert decoded == result.action
        assert decoded.type is ActionType.SET_CURRENT_ANCHOR

    def test_metadata_values_are_typed(self):
        game = create_new_game("G")
        result = ga.edit_game_metadata(game, {"palette": Palette(yes=["a"])})
        decoded = action_from_dict(_through_json(action_to_dict(result.action)))
        assert decoded.new_values["palette"] == Palette(yes=["a"])

    def test_unknown_tag(self):
        decoded = action_from_dict({"type": "TIME_TRAVEL", "year": 3000, "timestamp": "t"})
        assert isinstance(decoded, UnknownAction)
        assert decoded.type == "TIME_TRAVEL"
        assert decoded.payload == {"year": 3000}

    def test_unknown_tag_replay_is_noop(self):
        game = _rich_game()
        decoded = action_from_dict({"type": "TIME_TRAVEL"})
        assert apply_action(game, decoded) == game

    def test_unknown_tag_re_encodes(self):
        data = {"type": "TIME_TRAVEL", "year": 3000, "timestamp": "t"}
        assert action_to_dict(action_from_dict(data)) == data

    def test_missing_type(self):
        with pytest.raises(ValidationError, match="type"):
            action_from_dict({"periodId": "x"})


# ===========================================================
# Edit payloads from the API
# ===========================================================

class TestUpdates:

    def test_entity_updates_snake_cased(self):
        assert updates_from_dict({"name": "n", "bookendStart": "b"}) == {
            "name": "n", "bookend_start": "b",
        }

    def test_metadata_updates_typed(self):
        updates = metadata_updates_from_dict({
            "bigPicture": {"premise": "p"},
            "currentFocusIndex": 0,
        })
        assert updates["big_picture"] == BigPicture(premise="p")
        assert updates["current_focus_index"] == 0

    def test_metadata_updates_malformed(self):
        with pytest.raises(ValidationError):
            metadata_updates_from_dict({"currentFocusIndex": "zero"})
