import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import REDACTED, redact_secrets, serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "quiz"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "quiz")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_no_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "quiz") is None
        assert not (tmp_path / "quiz").exists()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()

    def test_json_mode_writes_context_and_redacts_token(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        log_path = setup_logging(log_dir=tmp_path / "quiz")

        structlog.contextvars.bind_contextvars(round_id="round-1")
        structlog.get_logger("test.json").info("clue revealed", token="abc.def", clues_used=2)
        structlog.contextvars.clear_contextvars()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "clue revealed"
        assert parsed["round_id"] == "round-1"
        assert parsed["clues_used"] == 2
        assert parsed["token"] == REDACTED


class TestSerializeEnums:
    class _Tier(Enum):
        EASY = "easy"
        HARD = "hard"

    def test_replaces_enum_with_value(self):
        result = serialize_enums(None, "", {"tier": self._Tier.EASY, "msg": "hello"})
        assert result == {"tier": "easy", "msg": "hello"}

    def test_replaces_enum_inside_dict_value(self):
        result = serialize_enums(None, "", {"difficulty": {"tier": self._Tier.HARD, "multiplier": 3}})
        assert result["difficulty"] == {"tier": "hard", "multiplier": 3}


class TestRedactSecrets:
    def test_masks_top_level_keys(self):
        result = redact_secrets(None, "", {"token": "abc.def", "round_token_secret": "s3cret", "round_id": "r1"})
        assert result == {"token": REDACTED, "round_token_secret": REDACTED, "round_id": "r1"}

    def test_masks_inside_dict_values(self):
        result = redact_secrets(None, "", {"body": {"roundId": "r1", "token": "abc.def"}})
        assert result["body"] == {"roundId": "r1", "token": REDACTED}

    def test_leaves_none_untouched(self):
        assert redact_secrets(None, "", {"token": None}) == {"token": None}


class TestServiceTag:
    def test_service_name_is_added_to_events(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "quiz", service="quiz-test")

        structlog.get_logger("test.service").warning("round expired", round_id="r1")

        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["service"] == "quiz-test"
        assert parsed["level"] == "warning"
