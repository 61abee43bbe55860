"""SQLite-backed session streak ledger."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import time
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import QuizSession, ScoreRecord
from shared.dal.session_repository import SessionRepository

if TYPE_CHECKING:
    from shared.dal.models import SessionUpdate
    from shared.db.connection import Database

logger = structlog.get_logger()

_SESSION_COLUMNS = (
    "id, nickname, streak, best_streak, total_score, total_rounds, "
    "last_round_score, last_round_base, last_round_time_score, created_at"
)
_SCORE_COLUMNS = (
    "round_id, session_id, correct, score, base_score, time_score, streak, malice_penalty, created_at, data"
)

# Sessions are tied to the rounds and scores they own through plain ids,
# so stale rows are removed child tables first.
_STALE_SESSIONS_SQL = (
    "SELECT s.id FROM sessions s WHERE s.created_at < :cutoff "
    "AND NOT EXISTS (SELECT 1 FROM rounds r WHERE r.session_id = s.id AND r.started_at >= :cutoff)"
)


class _ScoreAlreadyRecordedError(Exception):
    """Raised inside a score transaction to roll it back when the round is already scored."""


def _row_to_session(row: sqlite3.Row) -> QuizSession:
    return QuizSession(
        session_id=row["id"],
        nickname=row["nickname"],
        streak=row["streak"],
        best_streak=row["best_streak"],
        total_score=row["total_score"],
        total_rounds=row["total_rounds"],
        last_round_score=row["last_round_score"],
        last_round_base=row["last_round_base"],
        last_round_time_score=row["last_round_time_score"],
        created_at=row["created_at"],
    )


def _row_to_score(row: sqlite3.Row) -> ScoreRecord:
    return ScoreRecord(
        round_id=row["round_id"],
        session_id=row["session_id"],
        correct=bool(row["correct"]),
        score=row["score"],
        base_score=row["base_score"],
        time_score=row["time_score"],
        streak=row["streak"],
        malice_penalty=row["malice_penalty"],
        created_at=row["created_at"],
        data=json.loads(row["data"]),
    )


class SqliteSessionRepository(SessionRepository):
    """SQLite implementation of SessionRepository.

    Score rows are unique per round; the write uses ON CONFLICT DO NOTHING and
    the session update shares its transaction, so a round can move a streak
    at most once even when two submissions race.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_or_create_session(self, session_id: str) -> QuizSession:
        """Insert-or-ignore the session row, then read it back."""
        async with self._lock:
            with self._db.transaction() as conn:
                conn.execute(
                    "INSERT INTO sessions (id, created_at) VALUES (?, ?) ON CONFLICT(id) DO NOTHING",
                    (session_id, int(time.time())),
                )
                row = conn.execute(
                    f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?",  # noqa: S608
                    (session_id,),
                ).fetchone()
        return _row_to_session(row)

    async def get_session(self, session_id: str) -> QuizSession | None:
        row = self._db.connection.execute(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?",  # noqa: S608
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_session(row)

    async def record_score(self, score: ScoreRecord, update: SessionUpdate) -> ScoreRecord:
        """Write the score row and the session update atomically.

        When the round already has a score the transaction is rolled back and
        the persisted record is returned unchanged.
        """
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    cursor = conn.execute(
                        f"INSERT INTO scores ({_SCORE_COLUMNS}) "  # noqa: S608
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?) ON CONFLICT(round_id) DO NOTHING",
                        (
                            score.round_id,
                            score.session_id,
                            int(score.correct),
                            score.score,
                            score.base_score,
                            score.time_score,
                            score.streak,
                            score.malice_penalty,
                            score.created_at,
                            json.dumps(score.data),
                        ),
                    )
                    if cursor.rowcount == 0:
                        raise _ScoreAlreadyRecordedError
                    conn.execute(
                        "INSERT INTO sessions (id, created_at) VALUES (?, ?) ON CONFLICT(id) DO NOTHING",
                        (score.session_id, score.created_at),
                    )
                    conn.execute(
                        "UPDATE sessions SET "
                        "streak = ?, "
                        "best_streak = MAX(best_streak, ?), "
                        "total_score = total_score + ?, "
                        "total_rounds = total_rounds + 1, "
                        "last_round_score = ?, "
                        "last_round_base = ?, "
                        "last_round_time_score = ? "
                        "WHERE id = ?",
                        (
                            update.streak,
                            update.best_streak,
                            update.earned_score,
                            update.earned_score,
                            update.earned_base,
                            update.earned_time_score,
                            score.session_id,
                        ),
                    )
            except _ScoreAlreadyRecordedError:
                logger.info("round already scored, returning stored result", round_id=score.round_id)
                existing = await self.get_score(score.round_id)
                if existing is None:  # pragma: no cover
                    raise RuntimeError(f"score for round '{score.round_id}' vanished") from None
                return existing
        logger.debug(
            "score recorded",
            round_id=score.round_id,
            session_id=score.session_id,
            correct=score.correct,
            score=score.score,
        )
        return score

    async def get_score(self, round_id: str) -> ScoreRecord | None:
        row = self._db.connection.execute(
            f"SELECT {_SCORE_COLUMNS} FROM scores WHERE round_id = ?",  # noqa: S608
            (round_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_score(row)

    async def purge_stale(self, cutoff: int) -> int:
        """Delete sessions created before `cutoff` with no round started since.

        Their rounds and scores go in the same transaction. Returns the number
        of sessions removed.
        """
        params = {"cutoff": cutoff}
        async with self._lock:
            with self._db.transaction() as conn:
                conn.execute(f"DELETE FROM scores WHERE session_id IN ({_STALE_SESSIONS_SQL})", params)  # noqa: S608
                conn.execute(f"DELETE FROM rounds WHERE session_id IN ({_STALE_SESSIONS_SQL})", params)  # noqa: S608
                cursor = conn.execute(f"DELETE FROM sessions WHERE id IN ({_STALE_SESSIONS_SQL})", params)  # noqa: S608
                removed = cursor.rowcount
        if removed:
            logger.info("purged stale sessions", count=removed, cutoff=cutoff)
        return removed
