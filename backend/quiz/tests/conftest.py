from unittest.mock import patch

import pytest

from quiz.rounds.service import RoundService
from quiz.tests.helpers import NOW, TEST_SECRET, seed_catalog
from shared.db import Database, SqlitePlayerRepository, SqliteRoundRepository, SqliteSessionRepository


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "quiz.db")
    database.connect()
    seed_catalog(database)
    yield database
    database.close()


@pytest.fixture
def rounds(db):
    return SqliteRoundRepository(db)


@pytest.fixture
def sessions(db):
    return SqliteSessionRepository(db)


@pytest.fixture
def players(db):
    return SqlitePlayerRepository(db)


@pytest.fixture
def service(rounds, sessions, players):
    return RoundService(rounds, sessions, players, secret=TEST_SECRET)


@pytest.fixture
def clock():
    """Freeze the round service clock at NOW; tests move it via clock.time.return_value."""
    with patch("quiz.rounds.service.time") as mock_time:
        mock_time.time.return_value = NOW
        yield mock_time
