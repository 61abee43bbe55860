from __future__ import annotations

import contextlib
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from quiz.logic.enums import ErrorCode
from quiz.logic.exceptions import NotFoundError, QuizError, RateLimitedError
from quiz.rounds.janitor import SessionJanitor
from quiz.rounds.service import RoundService
from quiz.server.rate_limit import RateLimiter
from quiz.server.settings import QuizServerSettings
from quiz.server.types import GuessRequest, RestoreRoundRequest, RoundRequest, StartRoundRequest
from shared.db import Database, SqlitePlayerRepository, SqliteRoundRepository, SqliteSessionRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from starlette.requests import Request

_MAX_REQUEST_BODY_SIZE = 4096

_Body = TypeVar("_Body", bound=BaseModel)

Endpoint = Callable[["Request"], Awaitable[JSONResponse]]


class BadRequestError(QuizError):
    """Request body is not valid JSON or does not match the expected shape."""

    default_message = "Invalid request body"


class PayloadTooLargeError(QuizError):
    status_code = 413
    code = ErrorCode.PAYLOAD_TOO_LARGE
    default_message = "Request body too large"


def _error_response(exc: QuizError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitedError) else None
    return JSONResponse({"error": exc.message, "code": exc.code}, status_code=exc.status_code, headers=headers)


def _json_endpoint(handler: Endpoint) -> Endpoint:
    """Convert domain errors to JSON bodies; log anything unexpected as a 500."""

    async def wrapper(request: Request) -> JSONResponse:
        try:
            return await handler(request)
        except QuizError as exc:
            return _error_response(exc)
        except Exception:
            logger.exception("unhandled error", path=request.url.path)
            return JSONResponse(
                {"error": "Internal server error", "code": ErrorCode.INTERNAL_ERROR},
                status_code=500,
            )

    return wrapper


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _throttle_ip(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    key = f"ip:{_client_ip(request)}"
    if not limiter.check(key):
        logger.info("client rate limited", client_ip=_client_ip(request), path=request.url.path)
        raise RateLimitedError(retry_after=limiter.retry_after(key))


async def _parse_body(request: Request, model: type[_Body]) -> _Body:
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        raise PayloadTooLargeError
    try:
        body = json.loads(raw_body) if raw_body else {}
        return model.model_validate(body)
    except (ValueError, TypeError, UnicodeDecodeError, ValidationError) as exc:
        raise BadRequestError from exc


def _service(request: Request) -> RoundService:
    return request.app.state.round_service


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


@_json_endpoint
async def start_round(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, StartRoundRequest)
    issued = await _service(request).start_round(body.session_id, body.player_id, hard_mode=body.hard_mode)
    return JSONResponse(issued.to_wire(), status_code=201)


@_json_endpoint
async def restore_round(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, RestoreRoundRequest)
    issued = await _service(request).restore_round(body.session_id)
    if issued is None:
        raise NotFoundError("No active round")
    return JSONResponse(issued.to_wire())


@_json_endpoint
async def reveal_clue(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, RoundRequest)
    status = await _service(request).reveal_clue(body.round_id, body.token)
    return JSONResponse(status.to_wire())


@_json_endpoint
async def check_guess(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, GuessRequest)
    result = await _service(request).check_guess(body.round_id, body.token, body.guess)
    return JSONResponse(result.to_wire())


@_json_endpoint
async def submit_guess(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, GuessRequest)
    result = await _service(request).submit_guess(body.round_id, body.token, body.guess)
    return JSONResponse(result.to_wire())


@_json_endpoint
async def surrender(request: Request) -> JSONResponse:
    _throttle_ip(request)
    body = await _parse_body(request, RoundRequest)
    result = await _service(request).surrender(body.round_id, body.token)
    return JSONResponse(result.to_wire())


def create_app(
    settings: QuizServerSettings | None = None,
    database: Database | None = None,
    rate_limiter: RateLimiter | None = None,
) -> Starlette:
    """Build the quiz application.

    When no database is passed the app opens one at settings.database_path and
    owns its lifecycle. The session janitor runs for the lifetime of the app.
    """
    if settings is None:  # pragma: no cover
        settings = QuizServerSettings()

    owned_db: Database | None = None
    if database is None:
        database = Database(settings.database_path)
        database.connect()
        owned_db = database

    if rate_limiter is None:
        rate_limiter = RateLimiter(settings.rate_limit_rate, settings.rate_limit_burst)

    session_repository = SqliteSessionRepository(database)
    round_service = RoundService(
        SqliteRoundRepository(database),
        session_repository,
        SqlitePlayerRepository(database),
        secret=settings.signing_secret,
        round_ttl_seconds=settings.round_ttl_seconds,
        max_clues_allowed=settings.max_clues_allowed,
        rate_limiter=rate_limiter,
    )
    janitor = SessionJanitor(
        session_repository,
        max_age_days=settings.session_max_age_days,
        interval_seconds=settings.cleanup_interval_seconds,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        janitor.start()
        try:
            yield
        finally:
            await janitor.stop()
            if owned_db is not None:
                owned_db.close()

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/rounds", start_round, methods=["POST"]),
        Route("/rounds/restore", restore_round, methods=["POST"]),
        Route("/rounds/clue", reveal_clue, methods=["POST"]),
        Route("/rounds/check", check_guess, methods=["POST"]),
        Route("/rounds/guess", submit_guess, methods=["POST"]),
        Route("/rounds/surrender", surrender, methods=["POST"]),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.database = database
    app.state.round_service = round_service
    app.state.rate_limiter = rate_limiter
    app.state.janitor = janitor

    logger.info("quiz server ready", environment=settings.environment)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = QuizServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
