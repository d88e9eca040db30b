from infrastructure.game_io import (
    GameExport,
    GameImportError,
    ImportErrorCode,
    create_game_and_history_from_import,
    create_game_from_import,
    export_filename,
    export_game_to_json,
    is_json_file,
    parse_game_export_json,
    parse_game_json,
    read_game_export,
    sanitize_filename,
    write_game_export,
    write_game_markdown,
)
from infrastructure.persistence import (
    GameNotFoundError,
    GameStore,
    PersistenceError,
    StoreUnavailableError,
)
from infrastructure.snapshot_persistence import SnapshotStore
from infrastructure.autosave import Autosave

__all__ = [
    "GameExport",
    "GameImportError",
    "ImportErrorCode",
    "create_game_and_history_from_import",
    "create_game_from_import",
    "export_filename",
    "export_game_to_json",
    "is_json_file",
    "parse_game_export_json",
    "parse_game_json",
    "read_game_export",
    "sanitize_filename",
    "write_game_export",
    "write_game_markdown",
    "GameNotFoundError",
    "GameStore",
    "PersistenceError",
    "StoreUnavailableError",
    "SnapshotStore",
    "Autosave",
]
