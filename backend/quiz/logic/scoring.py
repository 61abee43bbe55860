"""
Score calculation for a guessed round.

All bonuses and penalties are fractions of one common base,
adjusted_base = base_points * difficulty multiplier, added together after
each term is rounded to whole points. Every penalty is capped at 30%, so the
worst outcome of a tier is exactly 10% of its adjusted base and the best is
270%.

`calculate_legacy_score` keeps the older multiplicative formula for display
comparisons only; persisted scores always come from `calculate_score`.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from quiz.logic.enums import DifficultyTier

if TYPE_CHECKING:
    from quiz.logic.difficulty import Difficulty

NO_CLUE_BONUS = 0.1
CLUE_PENALTY_PER_CLUE = 0.06
NO_MALICE_BONUS = 0.1
MALICE_PENALTY_PER_GUESS = 0.06
MAX_PENALTY = 0.3

# (minimum streak, bonus fraction), highest first
STREAK_BONUSES: tuple[tuple[int, float], ...] = (
    (100, 0.3),
    (60, 0.2),
    (30, 0.15),
    (15, 0.1),
    (5, 0.05),
)

TIME_MAX_BONUS = 1.2
TIME_INSTANT_SECONDS = 1
TIME_ZERO_BONUS_SECONDS = 120
TIME_PENALTY_START_SECONDS = 300
TIME_PENALTY_STEP_SECONDS = 30
TIME_PENALTY_PER_STEP = 0.1
TIME_MIN_BONUS = -0.5

LEGACY_MULTIPLIERS: dict[DifficultyTier, float] = {
    DifficultyTier.EASY: 1.0,
    DifficultyTier.MEDIUM: 1.25,
    DifficultyTier.HARD: 1.5,
    DifficultyTier.ULTRA: 2.0,
}
LEGACY_FLOOR = 10
LEGACY_MALICE_PER_GUESS = 0.02
LEGACY_MAX_MALICE = 0.5


class ScoreBreakdown(BaseModel):
    """Every component of a score, so clients can render a full receipt."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    base: int
    multiplier: int
    adjusted_base: int
    clues_used: int
    clue_penalty: int
    no_clue_bonus: int
    missed_guesses: int
    malice_penalty: int
    no_malice_bonus: int
    streak_bonus: float
    streak_bonus_points: int
    time_bonus: float
    time_bonus_points: int
    elapsed_seconds: float | None
    grace_seconds: float
    time_score: int
    final_score: int


class LegacyScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    base: int
    multiplier: float
    time_multiplier: float
    clues_used: int
    clue_penalty: int
    missed_guesses: int
    malice_multiplier: float
    pre_streak: int
    time_score: int
    streak_bonus: float
    final_score: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up, like JavaScript Math.round."""
    return math.floor(value + 0.5)


def streak_bonus(streak: int) -> float:
    for threshold, bonus in STREAK_BONUSES:
        if streak >= threshold:
            return bonus
    return 0.0


def time_bonus(elapsed_seconds: float | None, grace_seconds: float = 0) -> float:
    """Time bonus fraction for a guess made `elapsed_seconds` after the round started.

    The first `grace_seconds` are not counted. Up to one second earns the full
    bonus, which then falls linearly to zero at two minutes. Past five minutes
    every started 30 seconds costs 10%, down to -30%.
    """
    if elapsed_seconds is None:
        return 0.0
    effective = max(0.0, elapsed_seconds - grace_seconds)
    if effective <= TIME_INSTANT_SECONDS:
        bonus = TIME_MAX_BONUS
    elif effective <= TIME_ZERO_BONUS_SECONDS:
        remaining = (TIME_ZERO_BONUS_SECONDS - effective) / (TIME_ZERO_BONUS_SECONDS - TIME_INSTANT_SECONDS)
        bonus = TIME_MAX_BONUS * remaining
    elif effective <= TIME_PENALTY_START_SECONDS:
        bonus = 0.0
    else:
        steps = math.floor((effective - TIME_PENALTY_START_SECONDS) / TIME_PENALTY_STEP_SECONDS) + 1
        bonus = max(-MAX_PENALTY, -TIME_PENALTY_PER_STEP * steps)
    return min(max(bonus, TIME_MIN_BONUS), TIME_MAX_BONUS)


def calculate_score(
    difficulty: Difficulty,
    clues_used: int,
    streak: int,
    *,
    elapsed_seconds: float | None = None,
    missed_guesses: int = 0,
    grace_seconds: float = 0,
    floor: int = 0,
) -> ScoreBreakdown:
    """Compute the additive score breakdown for a correct guess."""
    clues_used = max(0, clues_used)
    missed_guesses = max(0, missed_guesses)
    adjusted_base = difficulty.base_points * difficulty.multiplier

    no_clue_bonus = round_half_up(adjusted_base * NO_CLUE_BONUS) if clues_used == 0 else 0
    clue_penalty = round_half_up(adjusted_base * min(MAX_PENALTY, CLUE_PENALTY_PER_CLUE * clues_used))
    no_malice_bonus = round_half_up(adjusted_base * NO_MALICE_BONUS) if missed_guesses == 0 else 0
    malice_penalty = round_half_up(adjusted_base * min(MAX_PENALTY, MALICE_PENALTY_PER_GUESS * missed_guesses))

    streak_fraction = streak_bonus(streak)
    streak_points = round_half_up(adjusted_base * streak_fraction)
    time_fraction = time_bonus(elapsed_seconds, grace_seconds)
    time_points = round_half_up(adjusted_base * time_fraction)

    total = adjusted_base + no_clue_bonus + no_malice_bonus + streak_points + time_points - clue_penalty - malice_penalty

    return ScoreBreakdown(
        base=difficulty.base_points,
        multiplier=difficulty.multiplier,
        adjusted_base=adjusted_base,
        clues_used=clues_used,
        clue_penalty=clue_penalty,
        no_clue_bonus=no_clue_bonus,
        missed_guesses=missed_guesses,
        malice_penalty=malice_penalty,
        no_malice_bonus=no_malice_bonus,
        streak_bonus=streak_fraction,
        streak_bonus_points=streak_points,
        time_bonus=time_fraction,
        time_bonus_points=time_points,
        elapsed_seconds=elapsed_seconds,
        grace_seconds=grace_seconds,
        time_score=adjusted_base + time_points,
        final_score=max(total, floor),
    )


def legacy_time_multiplier(elapsed_seconds: float | None) -> float:
    if elapsed_seconds is None:
        return 1.0
    if elapsed_seconds <= 30:  # noqa: PLR2004
        return 1.25
    if elapsed_seconds <= 60:  # noqa: PLR2004
        return 1.1
    if elapsed_seconds <= 120:  # noqa: PLR2004
        return 1.0
    steps = math.floor((elapsed_seconds - 120) / 30) + 1
    return min(max(1 - 0.1 * steps, 0.1), 1.25)


def calculate_legacy_score(
    difficulty: Difficulty,
    clues_used: int,
    streak: int,
    *,
    elapsed_seconds: float | None = None,
    missed_guesses: int = 0,
    floor: int = LEGACY_FLOOR,
) -> LegacyScoreBreakdown:
    """Older multiplicative formula, kept for display only.

    Flat per-clue deduction, then time, malice and streak multipliers in turn,
    using the fractional tier multipliers 1 / 1.25 / 1.5 / 2.
    """
    multiplier = LEGACY_MULTIPLIERS[difficulty.tier]
    pre_streak = max(
        round_half_up(difficulty.base_points * multiplier - clues_used * difficulty.clue_penalty),
        floor,
    )
    time_multiplier = legacy_time_multiplier(elapsed_seconds)
    malice_multiplier = 1 - min(LEGACY_MAX_MALICE, LEGACY_MALICE_PER_GUESS * max(0, missed_guesses))
    adjusted = max(pre_streak * time_multiplier * malice_multiplier, pre_streak * 0.1, floor)
    time_score = round_half_up(adjusted)
    bonus = streak_bonus(streak)

    return LegacyScoreBreakdown(
        base=difficulty.base_points,
        multiplier=multiplier,
        time_multiplier=time_multiplier,
        clues_used=clues_used,
        clue_penalty=difficulty.clue_penalty,
        missed_guesses=missed_guesses,
        malice_multiplier=malice_multiplier,
        pre_streak=pre_streak,
        time_score=time_score,
        streak_bonus=bonus,
        final_score=round_half_up(time_score * (1 + bonus)),
    )
