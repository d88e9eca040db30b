"""
Game persistence — SQLite-backed keyed store, one row per game.

Rows hold the full game as JSON plus the columns needed for listing
(``name``, ``created_at``, ``updated_at``), so :meth:`GameStore.list`
never decodes a document.

Errors are typed so callers can tell the cases apart:

- :class:`StoreUnavailableError`: the store is closed or could not open
- :class:`GameNotFoundError`: the record does not exist
- :class:`PersistenceError`: any other storage failure
"""
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from threading import RLock
from typing import Any, Optional

from core.errors import CanvasError, ValidationError
from core.model import Game, GameMetadata
from formats.codec import game_from_dict, game_to_dict
from formats.schema import migrate_game_dict

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class PersistenceError(CanvasError):
    """Generic storage failure."""


class StoreUnavailableError(PersistenceError):
    """The store is closed or cannot be opened."""


class GameNotFoundError(PersistenceError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class SqliteStore:
    """Shared SQLite plumbing for the game and snapshot stores.

    Thread-safe: all statements are serialised through an internal lock,
    so an autosave timer thread may write while the caller keeps editing.
    """

    _SCHEMA: tuple[str, ...] = ()

    def __init__(self, db_path: str | Path = IN_MEMORY) -> None:
        self._db_lock = RLock()
        self._is_closed = False
        self._db_path = str(db_path)
        try:
            self._db_conn = sqlite3.connect(self._db_path, check_same_thread=False)
            with self._db_conn:
                for statement in self._SCHEMA:
                    self._db_conn.execute(statement)
        except sqlite3.Error as exc:
            self._is_closed = True
            raise StoreUnavailableError(
                f"Cannot open store at {self._db_path}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    def close(self) -> None:
        """Explicitly release the database connection."""
        with self._db_lock:
            if self._is_closed:
                return
            try:
                self._db_conn.close()
            finally:
                self._is_closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute(self, query: str, params: tuple = ()) -> list:
        """Run one statement in its own transaction and return all rows."""
        with self._db_lock:
            if self._is_closed:
                raise StoreUnavailableError(f"{type(self).__name__} is closed")
            try:
                with self._db_conn:
                    cursor = self._db_conn.execute(query, params)
                    return cursor.fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(f"Storage failure: {exc}") from exc


def encode_game(game: Game) -> str:
    return json.dumps(game_to_dict(game), ensure_ascii=False)


def decode_game(raw: str) -> Game:
    """Decode a stored document, migrating older schemas on the way."""
    try:
        data: Any = json.loads(raw)
        return game_from_dict(migrate_game_dict(data))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise PersistenceError(f"Stored game is corrupt: {exc}") from exc


class GameStore(SqliteStore):
    """Keyed store of games with name / updated_at indexes for listing."""

    _SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS games (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            data TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_games_name ON games (name)",
        "CREATE INDEX IF NOT EXISTS idx_games_updated_at ON games (updated_at)",
    )

    def create(self, game: Game) -> Game:
        """Insert a new game.  Raises PersistenceError if the id exists."""
        self._execute(
            "INSERT INTO games (id, name, created_at, updated_at, data) "
            "VALUES (?, ?, ?, ?, ?)",
            (game.id, game.name, game.created_at, game.updated_at, encode_game(game)),
        )
        logger.info("Created game %s (%s)", game.id, game.name)
        return game

    def load(self, game_id: str) -> Optional[Game]:
        rows = self._execute("SELECT data FROM games WHERE id = ?", (game_id,))
        if not rows:
            return None
        return decode_game(rows[0][0])

    def save(self, game: Game) -> Game:
        """Insert or overwrite the stored copy of *game*."""
        self._execute(
            "INSERT INTO games (id, name, created_at, updated_at, data) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name = excluded.name, "
            "updated_at = excluded.updated_at, data = excluded.data",
            (game.id, game.name, game.created_at, game.updated_at, encode_game(game)),
        )
        logger.debug("Saved game %s", game.id)
        return game

    def delete(self, game_id: str) -> None:
        """Remove a game.  Raises GameNotFoundError if it does not exist."""
        with self._db_lock:
            if not self.exists(game_id):
                raise GameNotFoundError(game_id)
            self._execute("DELETE FROM games WHERE id = ?", (game_id,))
        logger.info("Deleted game %s", game_id)

    def list(self) -> list[GameMetadata]:
        """Metadata of every game, most recently updated first."""
        rows = self._execute(
            "SELECT id, name, created_at, updated_at FROM games "
            "ORDER BY updated_at DESC, rowid DESC"
        )
        return [GameMetadata(*row) for row in rows]

    def exists(self, game_id: str) -> bool:
        return bool(self._execute("SELECT 1 FROM games WHERE id = ?", (game_id,)))
