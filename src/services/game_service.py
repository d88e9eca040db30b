"""
GameService — the bridge between the API layer and the core domain.

Manages:
- Open sessions (keyed by game id), each with its own history and autosave
- Game lifecycle: create / open / close / delete / list
- Version history: snapshot creation (with duplicate suppression, change
  summaries and retention), listing and restore
- Import / export of JSON and Markdown
"""
from __future__ import annotations

import logging
from threading import RLock
from typing import Optional

from core.clone import deep_clone
from core.errors import ValidationError
from core.history import DEFAULT_HISTORY_LIMIT
from core.model import Game, GameMetadata, create_new_game, now_iso
from core.snapshot import (
    DEFAULT_SNAPSHOT_LIMIT,
    GameSnapshot,
    SnapshotMetadata,
    are_games_equal,
    create_snapshot,
    generate_change_summary,
)
from formats.markdown import export_game_to_markdown
from infrastructure.autosave import DEFAULT_AUTOSAVE_DELAY, Autosave, ErrorCallback
from infrastructure.game_io import (
    create_game_and_history_from_import,
    export_game_to_json,
    parse_game_export_json,
)
from infrastructure.persistence import GameNotFoundError, GameStore, PersistenceError
from infrastructure.snapshot_persistence import SnapshotStore
from services.game_session import GameSession

logger = logging.getLogger(__name__)


class SnapshotNotFoundError(PersistenceError):
    def __init__(self, snapshot_id: str) -> None:
        super().__init__(f"Snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


class GameService:
    """
    Facade that the API layer calls. One instance per application.
    """

    def __init__(
        self,
        store: GameStore,
        snapshot_store: SnapshotStore,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        snapshot_limit: int = DEFAULT_SNAPSHOT_LIMIT,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
        on_save_error: Optional[ErrorCallback] = None,
    ) -> None:
        if snapshot_limit < 0:
            raise ValueError(f"Snapshot limit must be >= 0, got {snapshot_limit}")
        self._store = store
        self._snapshots = snapshot_store
        self._history_limit = history_limit
        self._snapshot_limit = snapshot_limit
        self._autosave_delay = autosave_delay
        self._on_save_error = on_save_error
        self._sessions: dict[str, GameSession] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Game lifecycle
    # ------------------------------------------------------------------

    def create_game(self, name: str) -> GameSession:
        """Create, persist and open a new game."""
        game = create_new_game(name)
        self._store.create(game)
        return self._open_session(game)

    def open_game(self, game_id: str) -> GameSession:
        """Return the open session for *game_id*, loading it if needed.
        Raises GameNotFoundError if no such game is stored."""
        with self._lock:
            session = self._sessions.get(game_id)
            if session is not None:
                return session
            game = self._store.load(game_id)
            if game is None:
                raise GameNotFoundError(game_id)
            logger.info("Opened game %s (%s)", game.id, game.name)
            return self._open_session(game)

    def session(self, game_id: str) -> GameSession:
        """Alias of :meth:`open_game` used by the API layer."""
        return self.open_game(game_id)

    def is_open(self, game_id: str) -> bool:
        return game_id in self._sessions

    def close_game(self, game_id: str) -> None:
        """Flush pending edits and drop the session.  Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.pop(game_id, None)
        if session is not None:
            session.close()

    def list_games(self) -> list[GameMetadata]:
        return self._store.list()

    def delete_game(self, game_id: str) -> int:
        """Delete a game and all of its snapshots.  Returns the number of
        snapshots removed.  Raises GameNotFoundError."""
        with self._lock:
            session = self._sessions.pop(game_id, None)
        if session is not None:
            session.discard()
        self._store.delete(game_id)
        removed = self._snapshots.delete_all_for_game(game_id)
        logger.info("Deleted game %s and %d snapshots", game_id, removed)
        return removed

    def save_game(self, game_id: str) -> Game:
        """Write the session's game now, bypassing the autosave delay."""
        session = self.open_game(game_id)
        session.flush()
        return self._store.save(session.game)

    def shutdown(self) -> None:
        """Close every session (flushing autosave) and both stores."""
        with self._lock:
            game_ids = list(self._sessions)
        for game_id in game_ids:
            self.close_game(game_id)
        self._store.close()
        self._snapshots.close()
        logger.info("Game service shut down")

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def create_snapshot(
        self, game_id: str, version_name: Optional[str] = None,
    ) -> Optional[GameSnapshot]:
        """Record the current state of a game.

        Returns ``None`` (and stores nothing) when the game equals the
        latest snapshot.  Older snapshots beyond the retention limit are
        pruned.
        """
        game = self.open_game(game_id).game
        latest = self._snapshots.latest(game_id)
        if latest is not None and are_games_equal(latest.data, game):
            logger.debug("Snapshot of game %s skipped: unchanged", game_id)
            return None

        if version_name is not None:
            version_name = version_name.strip() or None
        summary = generate_change_summary(latest.data if latest else None, game)
        snapshot = self._snapshots.create(create_snapshot(game, version_name, summary))
        self._snapshots.enforce_limit(game_id, self._snapshot_limit)
        logger.info("Snapshot %s of game %s: %s", snapshot.id, game_id, summary)
        return snapshot

    def list_snapshots(self, game_id: str) -> list[SnapshotMetadata]:
        return self._snapshots.list_for_game(game_id)

    def get_snapshot(self, snapshot_id: str) -> GameSnapshot:
        snapshot = self._snapshots.load(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot

    def restore_snapshot(self, game_id: str, snapshot_id: str) -> GameSession:
        """Replace the live game with a snapshot's copy.

        The restored game keeps its id and gets a fresh ``updated_at``;
        undo history is cleared.
        """
        snapshot = self.get_snapshot(snapshot_id)
        if snapshot.game_id != game_id:
            raise ValidationError(
                f"Snapshot {snapshot_id} does not belong to game {game_id}"
            )
        session = self.open_game(game_id)
        restored = create_game_from_snapshot(snapshot)
        session.replace_game(restored)
        self._store.save(restored)
        logger.info("Restored game %s to snapshot %s", game_id, snapshot_id)
        return session

    # ------------------------------------------------------------------
    # Import / Export
    # ------------------------------------------------------------------

    def export_json(self, game_id: str, *, include_history: bool = False) -> str:
        game = self.open_game(game_id).game
        history = self._snapshots.load_all_for_game(game_id) if include_history else None
        return export_game_to_json(game, history)

    def export_markdown(self, game_id: str) -> str:
        return export_game_to_markdown(self.open_game(game_id).game)

    def import_json(self, text: str) -> GameSession:
        """Import an export as a new game (fresh id), together with any
        bundled snapshots.  Raises GameImportError."""
        parsed = parse_game_export_json(text)
        imported = create_game_and_history_from_import(parsed.game, parsed.history)
        self._store.create(imported.game)
        for snapshot in imported.history:
            self._snapshots.create(snapshot)
        if imported.history:
            self._snapshots.enforce_limit(imported.game.id, self._snapshot_limit)
        return self._open_session(imported.game)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _open_session(self, game: Game) -> GameSession:
        autosave = Autosave(
            self._store.save,
            on_error=self._on_save_error,
            delay=self._autosave_delay,
        )
        session = GameSession(game, history_limit=self._history_limit, autosave=autosave)
        with self._lock:
            self._sessions[game.id] = session
        return session


def create_game_from_snapshot(snapshot: GameSnapshot) -> Game:
    """Independent copy of a snapshot's game with a fresh ``updated_at``."""
    game = deep_clone(snapshot.data)
    game.updated_at = now_iso()
    return game
