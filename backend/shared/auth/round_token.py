"""HMAC-SHA256 signed round tokens.

The quiz server mints a token when a round starts and verifies it on every
clue, guess, and surrender call. Verification is local: the token carries the
round identity, owning session, and expiry, so a forged or stale token is
rejected before any storage access.

Token format: base64url(json_claims).base64url(hmac_sha256_signature), unpadded.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(claims).base64url(signature)


class InvalidTokenError(Exception):
    """Base class for round token rejections."""

    reason = "invalid"


class InvalidTokenFormatError(InvalidTokenError):
    """Token is not two non-empty dot-separated parts."""

    reason = "format"


class InvalidTokenSignatureError(InvalidTokenError):
    """Signature does not match the body (tampered or signed with another secret)."""

    reason = "signature"


class InvalidTokenPayloadError(InvalidTokenError):
    """Signed body does not decode to a complete claim set."""

    reason = "payload"


class TokenExpiredError(InvalidTokenError):
    """Token expiry is in the past."""

    reason = "expired"


@dataclass(frozen=True)
class RoundClaims:
    """Claims carried inside a signed round token. exp is unix milliseconds."""

    round_id: str
    player_id: int
    session_id: str
    exp: int

    def to_wire(self) -> dict[str, str | int]:
        return {
            "roundId": self.round_id,
            "playerId": self.player_id,
            "sessionId": self.session_id,
            "exp": self.exp,
        }


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(body: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).digest()
    return _b64encode(digest)


def now_ms() -> int:
    return int(time.time() * 1000)


def create_round_token(claims: RoundClaims, secret: str) -> str:
    """Serialize claims, sign the encoded body, and return body.signature.

    No nonce is mixed in: the same claims and secret always produce the same token.
    """
    body = _b64encode(json.dumps(claims.to_wire(), sort_keys=True, separators=(",", ":")).encode())
    return f"{body}.{_sign(body, secret)}"


def verify_round_token(token: str, secret: str, now: int | None = None) -> RoundClaims:
    """Verify format, signature, claims, and expiry, in that order.

    Raises the matching InvalidTokenError subclass on the first failed check.
    `now` is unix milliseconds and defaults to the current time.
    """
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS or not parts[0] or not parts[1]:
        raise InvalidTokenFormatError("Invalid token format")
    body, signature = parts

    if not hmac.compare_digest(_sign(body, secret).encode(), signature.encode()):
        logger.debug("round token signature mismatch")
        raise InvalidTokenSignatureError("Invalid token signature")

    claims = _decode_claims(body)

    current = now_ms() if now is None else now
    if claims.exp < current:
        logger.debug("round token expired", round_id=claims.round_id)
        raise TokenExpiredError("Token expired")

    return claims


def _decode_claims(body: str) -> RoundClaims:
    try:
        data = json.loads(_b64decode(body))
    except (ValueError, binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidTokenPayloadError("Invalid token payload") from exc

    if not isinstance(data, dict):
        raise InvalidTokenPayloadError("Invalid token payload")

    round_id = data.get("roundId")
    player_id = data.get("playerId")
    session_id = data.get("sessionId")
    exp = data.get("exp")

    if not isinstance(round_id, str) or not round_id:
        raise InvalidTokenPayloadError("Invalid token payload")
    if not isinstance(session_id, str) or not session_id:
        raise InvalidTokenPayloadError("Invalid token payload")
    if not _is_int(player_id) or not _is_int(exp):
        raise InvalidTokenPayloadError("Invalid token payload")

    return RoundClaims(round_id=round_id, player_id=player_id, session_id=session_id, exp=exp)


def _is_int(value: object) -> bool:
    """Check for a real int (bool excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)
