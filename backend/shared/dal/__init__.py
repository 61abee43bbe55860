"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.models import (
    PlayerProfile,
    QuizSession,
    Round,
    ScoreRecord,
    SelectionFilter,
    SessionUpdate,
    StatRow,
)
from shared.dal.player_repository import PlayerRepository
from shared.dal.round_repository import RoundRepository
from shared.dal.session_repository import SessionRepository

__all__ = [
    "PlayerProfile",
    "PlayerRepository",
    "QuizSession",
    "Round",
    "RoundRepository",
    "ScoreRecord",
    "SelectionFilter",
    "SessionRepository",
    "SessionUpdate",
    "StatRow",
]
