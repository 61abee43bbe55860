"""Round token signing and verification shared by the quiz server and its tools."""

from shared.auth.round_token import (
    InvalidTokenError,
    InvalidTokenFormatError,
    InvalidTokenPayloadError,
    InvalidTokenSignatureError,
    RoundClaims,
    TokenExpiredError,
    create_round_token,
    verify_round_token,
)

__all__ = [
    "InvalidTokenError",
    "InvalidTokenFormatError",
    "InvalidTokenPayloadError",
    "InvalidTokenSignatureError",
    "RoundClaims",
    "TokenExpiredError",
    "create_round_token",
    "verify_round_token",
]
