"""Tests for Database connection, schema, and transactions."""

from __future__ import annotations

import sqlite3
import sys
from typing import TYPE_CHECKING

import pytest

from shared.db.connection import Database

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


class TestConnect:
    def test_creates_schema(self, db: Database) -> None:
        tables = db.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name",
        ).fetchall()
        table_names = {t[0] for t in tables}
        assert {"players", "player_stats", "transfers", "sessions", "rounds", "scores"} <= table_names

    def test_reconnect_after_close(self, tmp_path: Path) -> None:
        database = Database(tmp_path / "test.db")
        database.connect()
        database.close()
        database.connect()
        assert database.connection is not None
        database.close()

    def test_connection_raises_when_not_connected(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            _ = Database(tmp_path / "test.db").connection

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        database = Database(tmp_path / "nested" / "dir" / "test.db")
        database.connect()
        assert (tmp_path / "nested" / "dir" / "test.db").exists()
        database.close()

    def test_in_memory_database(self) -> None:
        database = Database(":memory:")
        database.connect()
        assert database.connection.execute("SELECT COUNT(*) FROM rounds").fetchone()[0] == 0
        database.close()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
    def test_database_file_is_private(self, db: Database, tmp_path: Path) -> None:
        assert (tmp_path / "test.db").stat().st_mode & 0o777 == 0o600


class TestSchemaConstraints:
    def test_score_round_id_is_unique(self, db: Database) -> None:
        conn = db.connection
        conn.execute("INSERT INTO scores (round_id, session_id, created_at) VALUES ('r1', 's1', 0)")
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO scores (round_id, session_id, created_at) VALUES ('r1', 's1', 0)")
        conn.rollback()

    def test_clues_used_cannot_exceed_cap(self, db: Database) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            db.connection.execute(
                "INSERT INTO rounds (id, player_id, session_id, clues_used, max_clues_allowed, started_at, expires_at) "
                "VALUES ('r1', 1, 's1', 11, 10, 0, 100)",
            )
        db.connection.rollback()


class TestTransaction:
    def test_commits_on_success(self, db: Database) -> None:
        with db.transaction() as conn:
            conn.execute("INSERT INTO sessions (id, created_at) VALUES ('s1', 0)")
        assert db.connection.execute("SELECT COUNT(*) FROM sessions").fetchone()[0] == 1

    def test_rolls_back_every_statement_on_error(self, db: Database) -> None:
        with pytest.raises(RuntimeError), db.transaction() as conn:
            conn.execute("INSERT INTO sessions (id, created_at) VALUES ('s1', 0)")
            conn.execute("INSERT INTO sessions (id, created_at) VALUES ('s2', 0)")
            raise RuntimeError("boom")
        assert db.connection.execute("SELECT COUNT(*) FROM sessions").fetchone()[0] == 0
        assert not db.connection.in_transaction
