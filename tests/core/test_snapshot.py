import dataclasses

from core import (
    Focus,
    are_games_equal,
    create_new_game,
    create_snapshot,
    deep_clone,
    generate_change_summary,
    get_snapshot_metadata,
)
from core import game_actions as ga


# ===========================================================
# Snapshot values
# ===========================================================

class TestCreateSnapshot:

    def test_copies_game(self):
        game = create_new_game("G")
        snapshot = create_snapshot(game, "v1", "Initial version")
        game.name = "Changed"
        assert snapshot.data.name == "G"
        assert snapshot.game_id == game.id
        assert snapshot.version_name == "v1"
        assert snapshot.change_summary == "Initial version"

    def test_unique_ids(self):
        game = create_new_game("G")
        assert create_snapshot(game).id != create_snapshot(game).id

    def test_metadata(self):
        game = create_new_game("Ages")
        snapshot = create_snapshot(game, "v1")
        meta = get_snapshot_metadata(snapshot)
        assert meta.id == snapshot.id
        assert meta.game_name == "Ages"
        assert meta.version_name == "v1"
        assert meta.timestamp == snapshot.timestamp


# ===========================================================
# Equality
# ===========================================================

class TestAreGamesEqual:

    def test_ignores_root_timestamps(self):
        game = create_new_game("G")
        other = dataclasses.replace(
            deep_clone(game), created_at="x", updated_at="y",
        )
        assert are_games_equal(game, other)

    def test_detects_content_change(self):
        game = create_new_game("G")
        other = deep_clone(game)
        ga.add_period(other)
        assert not are_games_equal(game, other)

    def test_detects_nested_timestamp_change(self):
        game = create_new_game("G")
        ga.add_period(game)
        other = deep_clone(game)
        other.periods[0].updated_at = "changed"
        assert not are_games_equal(game, other)


# ===========================================================
# Change summary
# ===========================================================

class TestChangeSummary:

    def test_initial_version(self):
        assert generate_change_summary(None, create_new_game("G")) == "Initial version"

    def test_no_tracked_change(self):
        old = create_new_game("G")
        ga.add_period(old)
        new = deep_clone(old)
        ga.edit_period(new, new.periods[0].id, {"description": "only prose"})
        assert generate_change_summary(old, new) == "Various edits"

    def test_rename(self):
        old = create_new_game("G")
        new = deep_clone(old)
        new.name = "Ages"
        assert generate_change_summary(old, new) == 'Renamed game to "Ages"'

    def test_focus_set_and_cleared(self):
        old = create_new_game("G")
        new = deep_clone(old)
        new.focuses = [Focus(name="The Crown")]
        new.current_focus_index = 0
        assert generate_change_summary(old, new) == "Focus: The Crown"
        assert generate_change_summary(new, old) == "Cleared focus"

    def test_added_periods_named(self):
        old = create_new_game("G")
        new = deep_clone(old)
        ga.add_period(new, name="Dawn")
        ga.add_period(new, name="Dusk")
        assert generate_change_summary(old, new) == "Added 2 periods: Dawn, Dusk"

    def test_single_period_singular(self):
        old = create_new_game("G")
        new = deep_clone(old)
        ga.add_period(new, name="Dawn")
        assert generate_change_summary(old, new) == "Added 1 period: Dawn"

    def test_many_periods_not_named(self):
        old = create_new_game("G")
        new = deep_clone(old)
        for name in "ABCD":
            ga.add_period(new, name=name)
        assert generate_change_summary(old, new) == "Added 4 periods"

    def test_removed_period(self):
        old = create_new_game("G")
        ga.add_period(old, name="Dawn")
        new = deep_clone(old)
        ga.delete_period(new, new.periods[0].id)
        assert generate_change_summary(old, new) == "Removed 1 period: Dawn"

    def test_events_and_scenes_in_surviving_periods(self):
        old = create_new_game("G")
        ga.add_period(old, name="P")
        period_id = old.periods[0].id
        ga.add_event(old, period_id, name="E")
        event_id = old.periods[0].events[0].id

        new = deep_clone(old)
        ga.add_event(new, period_id)
        ga.add_scene(new, period_id, event_id)
        ga.add_scene(new, period_id, event_id)
        assert generate_change_summary(old, new) == "Added 1 event; Added 2 scenes"

    def test_events_of_new_periods_not_counted(self):
        old = create_new_game("G")
        new = deep_clone(old)
        ga.add_period(new, name="P")
        ga.add_event(new, new.periods[0].id)
        assert generate_change_summary(old, new) == "Added 1 period: P"

    def test_truncated_after_three_phrases(self):
        old = create_new_game("G")
        ga.add_period(old, name="Old")
        new = deep_clone(old)
        new.name = "Renamed"
        new.focuses = [Focus(name="F")]
        new.current_focus_index = 0
        ga.add_period(new, name="New")
        ga.delete_period(new, new.periods[0].id)
        summary = generate_change_summary(old, new)
        assert summary == 'Renamed game to "Renamed"; Focus: F; Added 1 period: New...'
