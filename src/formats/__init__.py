from formats.codec import (
    action_from_dict,
    action_to_dict,
    game_from_dict,
    game_to_dict,
    metadata_to_dict,
    metadata_updates_from_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    to_dict,
    updates_from_dict,
)
from formats.schema import migrate_game_dict, schema_version_of
from formats.markdown import escape_markdown, export_game_to_markdown

__all__ = [
    "action_from_dict",
    "action_to_dict",
    "game_from_dict",
    "game_to_dict",
    "metadata_to_dict",
    "metadata_updates_from_dict",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "to_dict",
    "updates_from_dict",
    "migrate_game_dict",
    "schema_version_of",
    "escape_markdown",
    "export_game_to_markdown",
]
