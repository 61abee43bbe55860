"""
Pydantic models returned by round operations.

All models serialise with camelCase aliases; use `to_wire()` for the JSON
body sent to clients.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from quiz.logic.difficulty import Difficulty
from quiz.logic.scoring import ScoreBreakdown

ABORT_TOO_MANY_WRONG_GUESSES = "too_many_wrong_guesses"


class WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class IssuedRound(WireModel):
    """A freshly started (or restored) round and the token that grants access to it."""

    round_id: str
    token: str
    session_id: str
    player_id: int
    expires_at: int
    clues_used: int
    max_clues_allowed: int
    difficulty: Difficulty


class ClueStatus(WireModel):
    clues_used: int
    clues_remaining: int


class GuessResult(WireModel):
    """Terminal outcome of a round.

    The same shape is stored as the score snapshot for guesses, surrenders,
    and aborts, so a retried call returns exactly what the first call did.
    """

    correct: bool
    score: int
    breakdown: ScoreBreakdown | None = None
    streak: int
    best_streak: int
    player_name: str
    difficulty: Difficulty
    wrong_guess_count: int = 0
    surrendered: bool = False
    aborted: bool = False
    abort_reason: str | None = None


class CheckResult(WireModel):
    """Outcome of a non-terminal guess probe. `result` is set only when the miss ended the round."""

    match: bool
    wrong_guess_count: int
    guesses_remaining: int
    aborted: bool = False
    result: GuessResult | None = None


class SurrenderResult(WireModel):
    ok: bool = True
    player_name: str
