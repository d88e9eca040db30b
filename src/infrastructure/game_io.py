"""
Game I/O — JSON export / import and file helpers.

Export flow:
    Game → game_to_dict → + schemaVersion, exportedAt, [history] → JSON text

Import flow:
    JSON text → json.loads          (INVALID_JSON on failure)
              → required fields     (MISSING_FIELDS)
              → schema version      (INVALID_SCHEMA if newer than ours)
              → migrate_game_dict → game_from_dict   (INVALID_SCHEMA)

Imported games are given a fresh id by :func:`create_game_from_import`
so they never collide with a stored copy; entity ids inside the game are
scoped to it and are kept.

File helpers transparently gzip when the path ends in ``.gz``.
"""
from __future__ import annotations

import dataclasses
import gzip
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

from core.clone import deep_clone
from core.errors import CanvasError, ValidationError
from core.model import SCHEMA_VERSION, Game, new_id, now_iso
from core.snapshot import GameSnapshot
from formats.codec import game_from_dict, game_to_dict, snapshot_from_dict, snapshot_to_dict
from formats.markdown import export_game_to_markdown
from formats.schema import migrate_game_dict, schema_version_of

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "name", "periods", "legacies", "createdAt", "updatedAt")


class ImportErrorCode(str, Enum):
    INVALID_JSON = "INVALID_JSON"
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_SCHEMA = "INVALID_SCHEMA"
    UNKNOWN = "UNKNOWN"


class GameImportError(CanvasError):
    """Raised when an export cannot be imported.  ``code`` tells the UI
    which actionable message to show."""

    def __init__(self, message: str, code: ImportErrorCode) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class GameExport:
    """A parsed export file: the game plus any bundled version history."""
    game: Game
    history: list[GameSnapshot] = field(default_factory=list)


# ------------------------------------------------------------------
# File helpers (plain text or gzip)
# ------------------------------------------------------------------

def _is_gz(path: Path) -> bool:
    return path.suffix == ".gz"


def _read_text(path: Path) -> str:
    if _is_gz(path):
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return f.read()
    return path.read_text(encoding="utf-8")


def _write_text(path: Path, content: str) -> None:
    if _is_gz(path):
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(content)
    else:
        path.write_text(content, encoding="utf-8")


_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def sanitize_filename(name: str) -> str:
    """Strip characters that are invalid in file names, dash-separate
    whitespace, lowercase, and cap the length at 50."""
    cleaned = _INVALID_FILENAME_CHARS.sub("", name)
    cleaned = re.sub(r"\s+", "-", cleaned)
    return cleaned.lower()[:50]


def export_filename(game: Game, extension: str) -> str:
    return f"{sanitize_filename(game.name)}-export.{extension.lstrip('.')}"


def is_json_file(filename: str | Path, mime_type: Optional[str] = None) -> bool:
    """Accept by extension (``.json``, ``.json.gz``) or by MIME type."""
    lowered = str(filename).lower()
    if lowered.endswith(".json") or lowered.endswith(".json.gz"):
        return True
    return mime_type == "application/json"


# ------------------------------------------------------------------
# Export
# ------------------------------------------------------------------

def export_game_to_json(game: Game, history: Optional[Sequence[GameSnapshot]] = None) -> str:
    """Serialise *game* (and optionally its snapshots) as indented JSON."""
    payload = game_to_dict(game)
    payload["schemaVersion"] = SCHEMA_VERSION
    payload["exportedAt"] = now_iso()
    if history is not None:
        payload["history"] = [snapshot_to_dict(s) for s in history]
    return json.dumps(payload, indent=2, ensure_ascii=False)


# ------------------------------------------------------------------
# Import
# ------------------------------------------------------------------

def _load_payload(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        raise GameImportError(
            "The file contains invalid JSON. It may be corrupted.",
            ImportErrorCode.INVALID_JSON,
        ) from None

    if not isinstance(data, dict) or any(k not in data for k in REQUIRED_FIELDS):
        raise GameImportError(
            "The file is missing required game data. "
            "It may not be a valid Microscope Canvas export.",
            ImportErrorCode.MISSING_FIELDS,
        )
    if not isinstance(data["periods"], list) or not isinstance(data["legacies"], list):
        raise GameImportError(
            "The file is missing required game data. "
            "It may not be a valid Microscope Canvas export.",
            ImportErrorCode.MISSING_FIELDS,
        )

    declared = data.get("schemaVersion")
    if declared is not None and (isinstance(declared, bool) or not isinstance(declared, int)):
        raise GameImportError(
            f"The file declares an unreadable schema version ({declared!r}).",
            ImportErrorCode.INVALID_SCHEMA,
        )
    version = schema_version_of(data)
    if version > SCHEMA_VERSION:
        raise GameImportError(
            f"This file was created with a newer version of Microscope Canvas "
            f"(schema v{version}). Please update the app to import this file.",
            ImportErrorCode.INVALID_SCHEMA,
        )
    return data


def _decode_game(data: dict[str, Any]) -> Game:
    migrated = migrate_game_dict(data)
    migrated.pop("exportedAt", None)
    migrated.pop("history", None)
    try:
        return game_from_dict(migrated)
    except ValidationError as exc:
        raise GameImportError(
            f"The file contains malformed game data: {exc}",
            ImportErrorCode.INVALID_SCHEMA,
        ) from exc


def _decode_history(raw: Any) -> list[GameSnapshot]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise GameImportError(
            "The file's version history is malformed.",
            ImportErrorCode.INVALID_SCHEMA,
        )
    history: list[GameSnapshot] = []
    for entry in raw:
        if isinstance(entry, dict) and isinstance(entry.get("data"), dict):
            entry = {**entry, "data": migrate_game_dict(entry["data"])}
        try:
            history.append(snapshot_from_dict(entry))
        except ValidationError as exc:
            raise GameImportError(
                f"The file's version history is malformed: {exc}",
                ImportErrorCode.INVALID_SCHEMA,
            ) from exc
    return history


def parse_game_json(text: str) -> Game:
    """Parse and validate an exported game.  Raises GameImportError."""
    return _decode_game(_load_payload(text))


def parse_game_export_json(text: str) -> GameExport:
    """Like :func:`parse_game_json`, also returning bundled history
    (empty when the export has none)."""
    data = _load_payload(text)
    return GameExport(game=_decode_game(data), history=_decode_history(data.get("history")))


def create_game_from_import(imported: Game) -> Game:
    """Copy of *imported* with a fresh id, current schema and timestamps."""
    now = now_iso()
    return dataclasses.replace(
        deep_clone(imported),
        id=new_id(),
        schema_version=SCHEMA_VERSION,
        created_at=now,
        updated_at=now,
    )


def create_game_and_history_from_import(
    imported: Game, history: Sequence[GameSnapshot] = (),
) -> GameExport:
    """Fresh game id plus fresh snapshot ids, all re-pointed at the new game."""
    game = create_game_from_import(imported)
    remapped = [
        dataclasses.replace(
            snapshot,
            id=new_id(),
            game_id=game.id,
            data=dataclasses.replace(deep_clone(snapshot.data), id=game.id),
        )
        for snapshot in history
    ]
    logger.info("Imported game %s as %s with %d snapshots",
                imported.id, game.id, len(remapped))
    return GameExport(game=game, history=remapped)


# ------------------------------------------------------------------
# Files
# ------------------------------------------------------------------

def write_game_export(
    file_path: str | Path,
    game: Game,
    history: Optional[Sequence[GameSnapshot]] = None,
) -> Path:
    target = Path(file_path)
    _write_text(target, export_game_to_json(game, history))
    logger.info("Exported game %s to %s", game.id, target)
    return target


def read_game_export(file_path: str | Path) -> GameExport:
    """Read an export file.  Raises FileNotFoundError / GameImportError."""
    return parse_game_export_json(_read_text(Path(file_path)))


def write_game_markdown(file_path: str | Path, game: Game) -> Path:
    target = Path(file_path)
    _write_text(target, export_game_to_markdown(game) + "\n")
    return target
