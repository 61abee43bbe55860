"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.player_repository import SqlitePlayerRepository
from shared.db.round_repository import SqliteRoundRepository
from shared.db.session_repository import SqliteSessionRepository

__all__ = [
    "Database",
    "SqlitePlayerRepository",
    "SqliteRoundRepository",
    "SqliteSessionRepository",
]
