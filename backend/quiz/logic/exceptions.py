"""Typed domain exceptions for round operations.

Every failure a client can cause is a QuizError subclass carrying the HTTP
status and error code it maps to. The round service raises them; the HTTP
layer converts them to JSON responses in one place.
"""

from quiz.logic.enums import ErrorCode


class QuizError(Exception):
    """Base exception for quiz round failures."""

    status_code = 400
    code = ErrorCode.BAD_REQUEST
    default_message = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidRoundTokenError(QuizError):
    """Malformed or missing round token."""

    status_code = 400
    code = ErrorCode.INVALID_TOKEN
    default_message = "Invalid token"


class TamperedRoundTokenError(QuizError):
    """Round token signature does not match."""

    status_code = 401
    code = ErrorCode.INVALID_TOKEN
    default_message = "Invalid token signature"


class RoundTokenExpiredError(QuizError):
    """Round token has expired."""

    status_code = 401
    code = ErrorCode.TOKEN_EXPIRED
    default_message = "Token expired"


class UnauthorizedError(QuizError):
    """Token does not grant access to this round."""

    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(QuizError):
    """Round or player not found."""

    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class RoundCompletedError(QuizError):
    """Round has already been scored."""

    status_code = 409
    code = ErrorCode.ROUND_COMPLETED
    default_message = "Round already completed"


class RoundExpiredError(QuizError):
    """Round has expired. Start a new round."""

    status_code = 410
    code = ErrorCode.ROUND_EXPIRED
    default_message = "Round expired"


class ClueLimitReachedError(QuizError):
    """No clues left for this round."""

    status_code = 429
    code = ErrorCode.CLUE_LIMIT_REACHED
    default_message = "No clues remaining"


class RateLimitedError(QuizError):
    """Too many requests.

    Attributes:
        retry_after: Seconds until the caller may try again.

    """

    status_code = 429
    code = ErrorCode.RATE_LIMITED
    default_message = "Too many requests"

    def __init__(self, message: str | None = None, *, retry_after: int = 1) -> None:
        super().__init__(message)
        self.retry_after = retry_after
