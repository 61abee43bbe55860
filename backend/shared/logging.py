"""Structured logging configuration with structlog.

Everything is routed through stdlib logging, so uvicorn and library records
share the same handlers and formatting.

Environment variables:
- LOG_FORMAT: "json" for log aggregation, "console" or unset for
  human-readable output.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".

Round tokens and signing secrets never reach a handler: any event key named in
REDACTED_KEYS is masked before rendering.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, MutableMapping
    from typing import Any

    EventDict = MutableMapping[str, Any]

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
REDACTED_KEYS = frozenset({"token", "round_token_secret", "secret"})
REDACTED = "***"

_LOG_FORMATS = ("json", "console")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# uvicorn access lines duplicate request logs; httpx is chatty under TestClient.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _plain(value: object) -> object:
    return value.value if isinstance(value, Enum) else value


def serialize_enums(_logger: object, _method_name: str, event_dict: EventDict) -> EventDict:
    """Replace Enum instances with their .value, one level into dicts."""
    for key, value in event_dict.items():
        if isinstance(value, dict):
            event_dict[key] = {k: _plain(v) for k, v in value.items()}
        else:
            event_dict[key] = _plain(value)
    return event_dict


def redact_secrets(_logger: object, _method_name: str, event_dict: EventDict) -> EventDict:
    """Mask token and secret values, including inside dict-valued keys."""
    for key, value in event_dict.items():
        if key in REDACTED_KEYS and value is not None:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {k: REDACTED if k in REDACTED_KEYS else v for k, v in value.items()}
    return event_dict


def _tag_service(service: str) -> Callable[[object, str, EventDict], EventDict]:
    def processor(_logger: object, _method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def shared_processors(service: str | None = None) -> list[Any]:
    """Processor chain used by both the server and the test configuration."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if service:
        processors.append(_tag_service(service))
    processors += [
        redact_secrets,
        serialize_enums,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    return processors


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, allowed: tuple[str, ...], default: str) -> str:
    """Read an enumerated environment variable, failing loudly on typos."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    normalized = raw.upper() if allowed[0].isupper() else raw.lower()
    if normalized not in allowed:
        raise ValueError(f"Invalid {name}={raw!r}. Expected one of: {', '.join(allowed)}")
    return normalized


def _formatter(*, json_mode: bool, colors: bool) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    # tracebacks are rendered here, once per handler
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
    *,
    service: str = "quiz",
) -> Path | None:
    """Configure structlog with stdout and optional file output.

    When log_dir is provided (and not under pytest), a datetime-stamped log
    file is created inside it and its path returned.
    """
    json_mode = _env_choice("LOG_FORMAT", _LOG_FORMATS, "console") == "json"
    if level is None:
        level = getattr(logging, _env_choice("LOG_LEVEL", _LOG_LEVELS, "INFO"))

    structlog.configure(
        processors=shared_processors(service),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root_logger.addHandler(stdout_handler)

    if log_dir is None or _is_test():
        return None

    dir_path = Path(log_dir)
    dir_path.mkdir(parents=True, exist_ok=True)
    file_path = dir_path / f"{datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)}.log"
    file_handler = logging.FileHandler(file_path)
    file_handler.setFormatter(_formatter(json_mode=json_mode, colors=False))
    root_logger.addHandler(file_handler)
    return file_path
