"""Abstract interface for the read-only player catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import PlayerProfile, SelectionFilter


class PlayerRepository(ABC):
    """Abstract interface for the player catalog populated by the scraper."""

    @abstractmethod
    async def get_profile(self, player_id: int) -> PlayerProfile | None: ...

    @abstractmethod
    async def pick_random_player_id(self, selection: SelectionFilter | None = None) -> int | None:
        """Pick a random player, restricted to those passing `selection` when given."""
