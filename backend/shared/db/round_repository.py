"""SQLite-backed round repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import Round
from shared.dal.round_repository import RoundRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_ROUND_COLUMNS = (
    "id, player_id, session_id, clues_used, max_clues_allowed, wrong_guesses, grace_seconds, started_at, expires_at"
)


def _row_to_round(row: sqlite3.Row) -> Round:
    return Round(
        round_id=row["id"],
        player_id=row["player_id"],
        session_id=row["session_id"],
        clues_used=row["clues_used"],
        max_clues_allowed=row["max_clues_allowed"],
        wrong_guesses=row["wrong_guesses"],
        grace_seconds=row["grace_seconds"],
        started_at=row["started_at"],
        expires_at=row["expires_at"],
    )


class SqliteRoundRepository(RoundRepository):
    """SQLite implementation of RoundRepository.

    Counter updates are single conditional UPDATE ... RETURNING statements so
    concurrent clue reveals can never push clues_used past the cap.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_round(self, round_: Round) -> None:
        """Insert a round. Raises ValueError on duplicate round id."""
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        f"INSERT INTO rounds ({_ROUND_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                        (
                            round_.round_id,
                            round_.player_id,
                            round_.session_id,
                            round_.clues_used,
                            round_.max_clues_allowed,
                            round_.wrong_guesses,
                            round_.grace_seconds,
                            round_.started_at,
                            round_.expires_at,
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Round '{round_.round_id}' already exists") from exc
        logger.debug("round created", round_id=round_.round_id, session_id=round_.session_id)

    async def get_round(self, round_id: str) -> Round | None:
        row = self._db.connection.execute(
            f"SELECT {_ROUND_COLUMNS} FROM rounds WHERE id = ?",  # noqa: S608
            (round_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_round(row)

    async def increment_clues(self, round_id: str) -> Round | None:
        """Add one clue unless the round is already at its cap.

        Returns None when no row was updated, which covers both a missing
        round and a full clue budget.
        """
        async with self._lock:
            with self._db.transaction() as conn:
                rows = conn.execute(
                    "UPDATE rounds SET clues_used = clues_used + 1 "
                    "WHERE id = ? AND clues_used < max_clues_allowed "
                    f"RETURNING {_ROUND_COLUMNS}",
                    (round_id,),
                ).fetchall()
        if not rows:
            return None
        return _row_to_round(rows[0])

    async def record_wrong_guess(self, round_id: str) -> int:
        """Add one wrong guess and return the new count. Raises KeyError for an unknown round."""
        async with self._lock:
            with self._db.transaction() as conn:
                rows = conn.execute(
                    "UPDATE rounds SET wrong_guesses = wrong_guesses + 1 WHERE id = ? RETURNING wrong_guesses",
                    (round_id,),
                ).fetchall()
        if not rows:
            raise KeyError(round_id)
        return rows[0][0]

    async def find_restorable(self, session_id: str, now: int) -> Round | None:
        """Most recent unexpired round of the session that has no score yet."""
        row = self._db.connection.execute(
            f"SELECT {_ROUND_COLUMNS} FROM rounds r "  # noqa: S608
            "WHERE r.session_id = ? AND r.expires_at > ? "
            "AND NOT EXISTS (SELECT 1 FROM scores s WHERE s.round_id = r.id) "
            "ORDER BY r.started_at DESC LIMIT 1",
            (session_id, now),
        ).fetchone()
        if row is None:
            return None
        return _row_to_round(row)
