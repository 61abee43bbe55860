"""Guess matching and per-round timing allowances."""

import re
import unicodedata

GRACE_SECONDS_PER_TRANSFER = 5
MAX_GRACE_SECONDS = 30

# The sixth wrong guess ends the round with no score.
MAX_WRONG_GUESSES = 5

_APOSTROPHES = re.compile(r"['‘’ʼ`´]")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Reduce a player name to a comparison key.

    Accents and apostrophes are dropped, whitespace runs collapse to one space,
    and the result is trimmed and case-folded, so "N'Golo  Kanté" and
    "ngolo kante" compare equal.
    """
    decomposed = unicodedata.normalize("NFD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _APOSTROPHES.sub("", stripped)
    return _WHITESPACE.sub(" ", stripped).strip().casefold()


def is_correct_guess(guess: str, target_name: str) -> bool:
    """Exact match after normalisation. No fuzzy matching."""
    normalized = normalize_name(guess)
    return bool(normalized) and normalized == normalize_name(target_name)


def grace_seconds_for(transfer_count: int) -> int:
    """Seconds of clock freeze granted while a player's transfer history loads."""
    return min(MAX_GRACE_SECONDS, GRACE_SECONDS_PER_TRANSFER * max(0, transfer_count))
