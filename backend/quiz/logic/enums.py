"""String enums for quiz round concepts."""

from enum import StrEnum


class DifficultyTier(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    ULTRA = "ultra"


class DifficultyBasis(StrEnum):
    """Which appearance count a difficulty classification was derived from."""

    INTERNATIONAL = "international"
    TOP5 = "top5"


class ErrorCode(StrEnum):
    """Machine-readable error codes returned to clients."""

    INVALID_TOKEN = "INVALID_TOKEN"  # noqa: S105
    TOKEN_EXPIRED = "TOKEN_EXPIRED"  # noqa: S105
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    ROUND_COMPLETED = "ROUND_COMPLETED"
    ROUND_EXPIRED = "ROUND_EXPIRED"
    CLUE_LIMIT_REACHED = "CLUE_LIMIT_REACHED"
    RATE_LIMITED = "RATE_LIMITED"
    BAD_REQUEST = "BAD_REQUEST"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
