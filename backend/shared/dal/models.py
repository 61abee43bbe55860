"""Persistence models for the data access layer."""

import math
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_MAX_CLUES = 10


class Round(BaseModel, frozen=True):
    """One guessing attempt. Timestamps are unix seconds."""

    round_id: str
    player_id: int
    session_id: str
    clues_used: int = 0
    max_clues_allowed: int = DEFAULT_MAX_CLUES
    wrong_guesses: int = 0
    grace_seconds: int = 0
    started_at: int
    expires_at: int

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    @property
    def clues_remaining(self) -> int:
        return max(0, self.max_clues_allowed - self.clues_used)


class QuizSession(BaseModel, frozen=True):
    """Play accumulated across rounds for one anonymous session."""

    session_id: str
    nickname: str | None = None
    streak: int = 0
    best_streak: int = 0
    total_score: int = 0
    total_rounds: int = 0
    last_round_score: int = 0
    last_round_base: int = 0
    last_round_time_score: int = 0
    created_at: int = 0


class SessionUpdate(BaseModel, frozen=True):
    """Post-round session values written alongside a Score row."""

    streak: int
    best_streak: int
    earned_score: int = 0
    earned_base: int = 0
    earned_time_score: int = 0


class ScoreRecord(BaseModel, frozen=True):
    """Immutable outcome of one completed round. At most one per round_id."""

    round_id: str
    session_id: str
    correct: bool
    score: int = 0
    base_score: int = 0
    time_score: int = 0
    streak: int = 0  # session streak after this round
    malice_penalty: int = 0
    created_at: int = 0
    # response snapshot returned verbatim when the same round is scored again
    data: dict[str, Any] = Field(default_factory=dict)


class StatRow(BaseModel, frozen=True):
    """Appearances of one player in one competition."""

    competition_id: str
    appearances: float = 0

    @field_validator("appearances", mode="before")
    @classmethod
    def _non_numeric_is_zero(cls, value: Any) -> Any:  # noqa: ANN401
        """Scraped counts may be blank or text; those count as no appearances."""
        if isinstance(value, bool) or value is None:
            return 0
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0
        return 0 if math.isnan(number) else number


class PlayerProfile(BaseModel, frozen=True):
    """Catalog facts about a target player needed to run a round."""

    player_id: int
    name: str
    stats: list[StatRow] = Field(default_factory=list)
    transfer_count: int = 0


class SelectionFilter(BaseModel, frozen=True):
    """Minimum experience a randomly selected player must have on either basis."""

    intl_weights: dict[str, float]
    top5_leagues: list[str]
    min_weighted_intl: float
    min_top5: float
