"""Abstract interface for the session streak ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import QuizSession, ScoreRecord, SessionUpdate


class SessionRepository(ABC):
    """Sessions and their per-round Score rows, written together."""

    @abstractmethod
    async def get_or_create_session(self, session_id: str) -> QuizSession: ...

    @abstractmethod
    async def get_session(self, session_id: str) -> QuizSession | None: ...

    @abstractmethod
    async def record_score(self, score: ScoreRecord, update: SessionUpdate) -> ScoreRecord:
        """Insert the score and apply the session update in one transaction.

        If a score already exists for the round, nothing is written and the
        existing record is returned instead.
        """

    @abstractmethod
    async def get_score(self, round_id: str) -> ScoreRecord | None: ...

    @abstractmethod
    async def purge_stale(self, cutoff: int) -> int: ...
