"""Abstract interface for round persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import Round


class RoundRepository(ABC):
    """Abstract interface for round persistence."""

    @abstractmethod
    async def create_round(self, round_: Round) -> None: ...

    @abstractmethod
    async def get_round(self, round_id: str) -> Round | None: ...

    @abstractmethod
    async def increment_clues(self, round_id: str) -> Round | None:
        """Atomically add one clue if under the cap. Returns the updated round, or None at the cap."""

    @abstractmethod
    async def record_wrong_guess(self, round_id: str) -> int:
        """Atomically add one wrong guess and return the new count."""

    @abstractmethod
    async def find_restorable(self, session_id: str, now: int) -> Round | None: ...
