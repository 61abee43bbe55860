"""SQLite-backed read-only player catalog."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from shared.dal.models import PlayerProfile, StatRow
from shared.dal.player_repository import PlayerRepository

if TYPE_CHECKING:
    from shared.dal.models import SelectionFilter
    from shared.db.connection import Database


def _selection_clause(selection: SelectionFilter) -> tuple[str, list[object]]:
    """Build a WHERE clause keeping players experienced enough on either basis."""
    params: list[object] = []
    intl_cases = []
    for competition_id, weight in selection.intl_weights.items():
        intl_cases.append("WHEN ? THEN ps.appearances * ?")
        params.extend((competition_id, weight))
    intl_sum = f"SUM(CASE ps.competition_id {' '.join(intl_cases)} ELSE 0 END)"
    placeholders = ", ".join("?" for _ in selection.top5_leagues)
    top5_sum = f"SUM(CASE WHEN ps.competition_id IN ({placeholders}) THEN ps.appearances ELSE 0 END)"
    params.extend(selection.top5_leagues)
    params.extend((selection.min_weighted_intl, selection.min_top5))
    clause = (
        "WHERE p.id IN ("
        "SELECT ps.player_id FROM player_stats ps GROUP BY ps.player_id "
        f"HAVING {intl_sum} >= ? OR {top5_sum} >= ?)"
    )
    return clause, params


class SqlitePlayerRepository(PlayerRepository):
    """Reads the player tables populated by the scraper. Never writes."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def get_profile(self, player_id: int) -> PlayerProfile | None:
        """Player name with per-competition appearances and transfer count."""
        conn = self._db.connection
        row = conn.execute("SELECT id, name FROM players WHERE id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        stats = conn.execute(
            "SELECT competition_id, appearances FROM player_stats WHERE player_id = ?",
            (player_id,),
        ).fetchall()
        transfer_count = conn.execute(
            "SELECT COUNT(*) FROM transfers WHERE player_id = ?",
            (player_id,),
        ).fetchone()[0]
        return PlayerProfile(
            player_id=row["id"],
            name=row["name"],
            stats=[
                StatRow(competition_id=s["competition_id"], appearances=s["appearances"]) for s in stats
            ],
            transfer_count=transfer_count,
        )

    async def pick_random_player_id(self, selection: SelectionFilter | None = None) -> int | None:
        clause, params = ("", []) if selection is None else _selection_clause(selection)
        conn = self._db.connection
        total = conn.execute(f"SELECT COUNT(*) FROM players p {clause}", params).fetchone()[0]  # noqa: S608
        if total <= 0:
            return None
        offset = random.randrange(total)  # noqa: S311
        row = conn.execute(
            f"SELECT p.id FROM players p {clause} ORDER BY p.id LIMIT 1 OFFSET ?",  # noqa: S608
            [*params, offset],
        ).fetchone()
        if row is None:  # pragma: no cover
            return None
        return row[0]
