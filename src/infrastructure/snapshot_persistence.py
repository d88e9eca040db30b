"""
Snapshot persistence — SQLite store of :class:`GameSnapshot` rows keyed
by snapshot id, with a ``(game_id, timestamp)`` index for ordered
per-game history.

Retention is a thin policy on top of the list / delete primitives:
:meth:`SnapshotStore.enforce_limit` keeps the newest *limit* snapshots
of a game and deletes the rest.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from core.errors import ValidationError
from core.snapshot import DEFAULT_SNAPSHOT_LIMIT, GameSnapshot, SnapshotMetadata
from formats.codec import snapshot_from_dict, snapshot_to_dict
from formats.schema import migrate_game_dict
from infrastructure.persistence import PersistenceError, SqliteStore

logger = logging.getLogger(__name__)

# Newest first; rowid breaks ties between snapshots taken in the same millisecond
_NEWEST_FIRST = "ORDER BY timestamp DESC, rowid DESC"


def _decode_snapshot(raw: str) -> GameSnapshot:
    try:
        data = json.loads(raw)
        data["data"] = migrate_game_dict(data["data"])
        return snapshot_from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as exc:
        raise PersistenceError(f"Stored snapshot is corrupt: {exc}") from exc


class SnapshotStore(SqliteStore):
    """Version history of every game."""

    _SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS snapshots (
            id TEXT PRIMARY KEY,
            game_id TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            game_name TEXT NOT NULL,
            version_name TEXT,
            change_summary TEXT,
            data TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_snapshots_game_time "
        "ON snapshots (game_id, timestamp)",
    )

    def create(self, snapshot: GameSnapshot) -> GameSnapshot:
        self._execute(
            "INSERT INTO snapshots "
            "(id, game_id, timestamp, game_name, version_name, change_summary, data) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                snapshot.id,
                snapshot.game_id,
                snapshot.timestamp,
                snapshot.data.name,
                snapshot.version_name,
                snapshot.change_summary,
                json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False),
            ),
        )
        logger.debug("Stored snapshot %s for game %s", snapshot.id, snapshot.game_id)
        return snapshot

    def load(self, snapshot_id: str) -> Optional[GameSnapshot]:
        rows = self._execute("SELECT data FROM snapshots WHERE id = ?", (snapshot_id,))
        return _decode_snapshot(rows[0][0]) if rows else None

    def list_for_game(self, game_id: str) -> list[SnapshotMetadata]:
        """Metadata of a game's snapshots, newest first."""
        rows = self._execute(
            "SELECT id, game_id, timestamp, game_name, version_name, change_summary "
            f"FROM snapshots WHERE game_id = ? {_NEWEST_FIRST}",
            (game_id,),
        )
        return [SnapshotMetadata(*row) for row in rows]

    def load_all_for_game(self, game_id: str) -> list[GameSnapshot]:
        rows = self._execute(
            f"SELECT data FROM snapshots WHERE game_id = ? {_NEWEST_FIRST}",
            (game_id,),
        )
        return [_decode_snapshot(row[0]) for row in rows]

    def delete(self, snapshot_id: str) -> None:
        self._execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))

    def delete_all_for_game(self, game_id: str) -> int:
        """Delete a game's whole history.  Returns how many were removed."""
        with self._db_lock:
            removed = self.count(game_id)
            self._execute("DELETE FROM snapshots WHERE game_id = ?", (game_id,))
        return removed

    def enforce_limit(self, game_id: str, limit: int = DEFAULT_SNAPSHOT_LIMIT) -> int:
        """Keep the newest *limit* snapshots of a game.  Returns the number
        deleted."""
        if limit < 0:
            raise ValueError(f"Snapshot limit must be >= 0, got {limit}")
        with self._db_lock:
            stale = [m.id for m in self.list_for_game(game_id)[limit:]]
            for snapshot_id in stale:
                self.delete(snapshot_id)
        if stale:
            logger.info("Pruned %d snapshots of game %s (limit %d)",
                        len(stale), game_id, limit)
        return len(stale)

    def count(self, game_id: str) -> int:
        rows = self._execute("SELECT COUNT(*) FROM snapshots WHERE game_id = ?", (game_id,))
        return rows[0][0]

    def latest(self, game_id: str) -> Optional[GameSnapshot]:
        rows = self._execute(
            f"SELECT data FROM snapshots WHERE game_id = ? {_NEWEST_FIRST} LIMIT 1",
            (game_id,),
        )
        return _decode_snapshot(rows[0][0]) if rows else None
