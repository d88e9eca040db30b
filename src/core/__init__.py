from core.errors import CanvasError, ValidationError
from core.clone import deep_clone
from core.model import (
    SCHEMA_VERSION,
    Anchor,
    AnchorPlacement,
    BigPicture,
    Event,
    Focus,
    Game,
    GameMetadata,
    Legacy,
    Palette,
    Period,
    Player,
    Scene,
    Tone,
    create_anchor_placement,
    create_new_anchor,
    create_new_event,
    create_new_focus,
    create_new_game,
    create_new_legacy,
    create_new_period,
    create_new_player,
    create_new_scene,
    current_focus,
    get_game_metadata,
)
from core.actions import (
    ACTION_DISPLAY_NAMES,
    ActionType,
    GameAction,
    UnknownAction,
    action_display_name,
)
from core.executor import apply_action, reverse_action
from core.history import (
    HistoryPop,
    HistoryState,
    can_redo,
    can_undo,
    clear_history,
    create_history_state,
    get_redo_count,
    get_undo_count,
    pop_redo,
    pop_undo,
    record_action,
)
from core.snapshot import (
    DEFAULT_SNAPSHOT_LIMIT,
    GameSnapshot,
    SnapshotMetadata,
    are_games_equal,
    create_snapshot,
    generate_change_summary,
    get_snapshot_metadata,
)

__all__ = [
    "CanvasError",
    "ValidationError",
    "deep_clone",
    "SCHEMA_VERSION",
    "Anchor",
    "AnchorPlacement",
    "BigPicture",
    "Event",
    "Focus",
    "Game",
    "GameMetadata",
    "Legacy",
    "Palette",
    "Period",
    "Player",
    "Scene",
    "Tone",
    "create_anchor_placement",
    "create_new_anchor",
    "create_new_event",
    "create_new_focus",
    "create_new_game",
    "create_new_legacy",
    "create_new_period",
    "create_new_player",
    "create_new_scene",
    "current_focus",
    "get_game_metadata",
    "ACTION_DISPLAY_NAMES",
    "ActionType",
    "GameAction",
    "UnknownAction",
    "action_display_name",
    "apply_action",
    "reverse_action",
    "HistoryPop",
    "HistoryState",
    "can_redo",
    "can_undo",
    "clear_history",
    "create_history_state",
    "get_redo_count",
    "get_undo_count",
    "pop_redo",
    "pop_undo",
    "record_action",
    "DEFAULT_SNAPSHOT_LIMIT",
    "GameSnapshot",
    "SnapshotMetadata",
    "are_games_equal",
    "create_snapshot",
    "generate_change_summary",
    "get_snapshot_metadata",
]
