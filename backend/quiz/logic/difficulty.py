"""
Difficulty classification for a target player.

A player's difficulty comes from how visible they were: weighted appearances
in European competitions (the international basis) or raw appearances in the
top five domestic leagues (the top5 basis). Each basis is classified on its
own thresholds, one is chosen, and cross-basis downgrades keep a player who is
prominent on only one axis from being rated too easy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from quiz.logic.enums import DifficultyBasis, DifficultyTier

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.models import StatRow

BASE_POINTS = 100
CLUE_PENALTY = 10  # flat points per clue, legacy formula only

INTL_WEIGHTS: dict[str, float] = {
    "CL": 1.25,
    "EL": 1.25,
    "UEFA": 0.75,
    "EPL": 0.5,
    "EPP": 0.5,
    "UCOL": 0.75,
    "UI": 0.25,
}
TOP5_LEAGUES: tuple[str, ...] = ("GB1", "IT1", "L1", "FR1", "ES1")

TIER_MULTIPLIERS: dict[DifficultyTier, int] = {
    DifficultyTier.EASY: 1,
    DifficultyTier.MEDIUM: 2,
    DifficultyTier.HARD: 3,
    DifficultyTier.ULTRA: 4,
}

# (easy if total > first, medium if >= second, hard if >= third, else ultra)
_THRESHOLDS: dict[DifficultyBasis, tuple[float, float, float]] = {
    DifficultyBasis.INTERNATIONAL: (80, 60, 45),
    DifficultyBasis.TOP5: (400, 200, 100),
}

INTL_HARD_THRESHOLD = _THRESHOLDS[DifficultyBasis.INTERNATIONAL][2]
TOP5_HARD_THRESHOLD = _THRESHOLDS[DifficultyBasis.TOP5][2]

# Downgrade rules, applied in order: (chosen basis, tier, other-basis total below, new tier).
_DOWNGRADES: tuple[tuple[DifficultyBasis, DifficultyTier, float, DifficultyTier], ...] = (
    (DifficultyBasis.TOP5, DifficultyTier.EASY, 50, DifficultyTier.MEDIUM),
    (DifficultyBasis.TOP5, DifficultyTier.MEDIUM, 35, DifficultyTier.HARD),
    (DifficultyBasis.INTERNATIONAL, DifficultyTier.EASY, 100, DifficultyTier.MEDIUM),
    (DifficultyBasis.INTERNATIONAL, DifficultyTier.MEDIUM, 50, DifficultyTier.HARD),
)


class Difficulty(BaseModel):
    """Derived difficulty of a round. Never persisted; recomputed from stats on use."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    basis: DifficultyBasis
    total_appearances: float
    tier: DifficultyTier
    multiplier: int
    base_points: int = BASE_POINTS
    clue_penalty: int = CLUE_PENALTY


def weighted_international(stats: Iterable[StatRow]) -> float:
    return sum(s.appearances * INTL_WEIGHTS[s.competition_id] for s in stats if s.competition_id in INTL_WEIGHTS)


def top5_appearances(stats: Iterable[StatRow]) -> float:
    return sum(s.appearances for s in stats if s.competition_id in TOP5_LEAGUES)


def classify(basis: DifficultyBasis, total: float) -> DifficultyTier:
    easy_above, medium_from, hard_from = _THRESHOLDS[basis]
    if total > easy_above:
        return DifficultyTier.EASY
    if total >= medium_from:
        return DifficultyTier.MEDIUM
    if total >= hard_from:
        return DifficultyTier.HARD
    return DifficultyTier.ULTRA


def compute_difficulty(stats: Iterable[StatRow], *, force_ultra: bool = False) -> Difficulty:
    """Classify a player from their per-competition stat rows.

    International is preferred unless it rates ultra; top5 is the fallback
    when the player has any top-5 league appearances. A basis with no
    appearances at all yields no classification. With `force_ultra` the tier
    is ultra regardless, but basis and total still describe the chosen basis.
    """
    rows = list(stats)
    intl_total = weighted_international(rows)
    top5_total = top5_appearances(rows)
    totals = {DifficultyBasis.INTERNATIONAL: intl_total, DifficultyBasis.TOP5: top5_total}

    intl_tier = classify(DifficultyBasis.INTERNATIONAL, intl_total) if intl_total > 0 else None
    top5_tier = classify(DifficultyBasis.TOP5, top5_total) if top5_total > 0 else None

    if intl_tier is not None and intl_tier != DifficultyTier.ULTRA:
        basis, tier = DifficultyBasis.INTERNATIONAL, intl_tier
    elif top5_tier is not None:
        basis, tier = DifficultyBasis.TOP5, top5_tier
    elif intl_tier is not None:
        basis, tier = DifficultyBasis.INTERNATIONAL, intl_tier
    else:
        basis, tier = DifficultyBasis.INTERNATIONAL, DifficultyTier.ULTRA

    if force_ultra:
        tier = DifficultyTier.ULTRA
    else:
        for rule_basis, rule_tier, below, downgraded in _DOWNGRADES:
            other = DifficultyBasis.INTERNATIONAL if rule_basis == DifficultyBasis.TOP5 else DifficultyBasis.TOP5
            if basis == rule_basis and tier == rule_tier and totals[other] < below:
                tier = downgraded

    return Difficulty(
        basis=basis,
        total_appearances=totals[basis],
        tier=tier,
        multiplier=TIER_MULTIPLIERS[tier],
    )
