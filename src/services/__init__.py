from services.game_session import GameSession
from services.game_service import GameService, SnapshotNotFoundError, create_game_from_snapshot

__all__ = [
    "GameSession",
    "GameService",
    "SnapshotNotFoundError",
    "create_game_from_snapshot",
]
