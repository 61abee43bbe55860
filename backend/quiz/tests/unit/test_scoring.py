import pytest

from quiz.logic.difficulty import TIER_MULTIPLIERS, Difficulty
from quiz.logic.enums import DifficultyBasis, DifficultyTier
from quiz.logic.scoring import (
    calculate_legacy_score,
    calculate_score,
    legacy_time_multiplier,
    round_half_up,
    streak_bonus,
    time_bonus,
)

ALL_TIERS = [DifficultyTier.EASY, DifficultyTier.MEDIUM, DifficultyTier.HARD, DifficultyTier.ULTRA]


def _difficulty(tier=DifficultyTier.EASY):
    return Difficulty(
        basis=DifficultyBasis.INTERNATIONAL,
        total_appearances=100,
        tier=tier,
        multiplier=TIER_MULTIPLIERS[tier],
    )


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (-0.5, 0), (-1.5, -1), (7.0, 7)],
    )
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestStreakBonus:
    @pytest.mark.parametrize(
        ("streak", "expected"),
        [(0, 0.0), (4, 0.0), (5, 0.05), (14, 0.05), (15, 0.1), (29, 0.1), (30, 0.15), (60, 0.2), (99, 0.2), (100, 0.3)],
    )
    def test_thresholds(self, streak, expected):
        assert streak_bonus(streak) == expected


class TestTimeBonus:
    def test_unknown_elapsed_is_neutral(self):
        assert time_bonus(None) == 0.0

    @pytest.mark.parametrize("elapsed", [0, 0.5, 1])
    def test_instant_answer_gets_full_bonus(self, elapsed):
        assert time_bonus(elapsed) == pytest.approx(1.2)

    def test_bonus_decays_linearly_to_two_minutes(self):
        assert time_bonus(60.5) == pytest.approx(0.6)
        assert time_bonus(120) == pytest.approx(0.0)

    @pytest.mark.parametrize("elapsed", [121, 200, 300])
    def test_neutral_band(self, elapsed):
        assert time_bonus(elapsed) == 0.0

    @pytest.mark.parametrize(
        ("elapsed", "expected"),
        [(301, -0.1), (329, -0.1), (330, -0.2), (359, -0.2), (360, -0.3), (10_000, -0.3)],
    )
    def test_penalty_steps_every_started_thirty_seconds(self, elapsed, expected):
        assert time_bonus(elapsed) == pytest.approx(expected)

    def test_grace_seconds_are_not_counted(self):
        assert time_bonus(31, grace_seconds=30) == pytest.approx(1.2)
        assert time_bonus(330, grace_seconds=30) == 0.0

    def test_grace_longer_than_elapsed_clamps_to_zero(self):
        assert time_bonus(5, grace_seconds=30) == pytest.approx(1.2)


class TestCalculateScore:
    def test_clean_easy_round(self):
        breakdown = calculate_score(_difficulty(), 0, 0, elapsed_seconds=0)
        assert breakdown.adjusted_base == 100
        assert breakdown.no_clue_bonus == 10
        assert breakdown.no_malice_bonus == 10
        assert breakdown.time_bonus_points == 120
        assert breakdown.time_score == 220
        assert breakdown.final_score == 240

    def test_unknown_elapsed_has_no_time_component(self):
        breakdown = calculate_score(_difficulty(), 0, 0)
        assert breakdown.elapsed_seconds is None
        assert breakdown.time_bonus_points == 0
        assert breakdown.final_score == 120

    def test_clue_and_malice_penalties(self):
        breakdown = calculate_score(_difficulty(DifficultyTier.MEDIUM), 2, 0, missed_guesses=1)
        assert breakdown.adjusted_base == 200
        assert breakdown.no_clue_bonus == 0
        assert breakdown.clue_penalty == 24
        assert breakdown.no_malice_bonus == 0
        assert breakdown.malice_penalty == 12
        assert breakdown.final_score == 200 - 24 - 12

    def test_penalties_cap_at_thirty_percent(self):
        breakdown = calculate_score(_difficulty(), 50, 0, missed_guesses=50)
        assert breakdown.clue_penalty == 30
        assert breakdown.malice_penalty == 30

    def test_streak_bonus_points(self):
        breakdown = calculate_score(_difficulty(DifficultyTier.HARD), 0, 15)
        assert breakdown.streak_bonus == 0.1
        assert breakdown.streak_bonus_points == 30

    @pytest.mark.parametrize(("tier", "expected"), list(zip(ALL_TIERS, [10, 20, 30, 40], strict=True)))
    def test_worst_case_is_ten_percent_of_base(self, tier, expected):
        breakdown = calculate_score(_difficulty(tier), 10, 0, elapsed_seconds=1000, missed_guesses=10)
        assert breakdown.final_score == expected

    @pytest.mark.parametrize(("tier", "expected"), list(zip(ALL_TIERS, [270, 540, 810, 1080], strict=True)))
    def test_best_case_is_two_hundred_seventy_percent_of_base(self, tier, expected):
        breakdown = calculate_score(_difficulty(tier), 0, 100, elapsed_seconds=0)
        assert breakdown.final_score == expected

    def test_ultra_round_at_every_penalty_cap(self):
        breakdown = calculate_score(_difficulty(DifficultyTier.ULTRA), 5, 0, elapsed_seconds=600, missed_guesses=5)
        assert breakdown.clue_penalty == 120
        assert breakdown.malice_penalty == 120
        assert breakdown.time_bonus_points == -120
        assert breakdown.final_score == 40

    def test_floor_applies_to_final_score(self):
        breakdown = calculate_score(_difficulty(), 10, 0, elapsed_seconds=1000, missed_guesses=10, floor=50)
        assert breakdown.final_score == 50

    def test_negative_counts_are_treated_as_zero(self):
        breakdown = calculate_score(_difficulty(), -3, 0, missed_guesses=-1)
        assert breakdown.clues_used == 0
        assert breakdown.missed_guesses == 0
        assert breakdown.no_clue_bonus == 10

    def test_score_never_increases_with_more_clues(self):
        scores = [calculate_score(_difficulty(), clues, 0, elapsed_seconds=30).final_score for clues in range(8)]
        assert scores == sorted(scores, reverse=True)

    def test_breakdown_uses_camel_case_on_the_wire(self):
        wire = calculate_score(_difficulty(), 0, 0).model_dump(mode="json", by_alias=True)
        assert wire["adjustedBase"] == 100
        assert wire["finalScore"] == 120
        assert "noClueBonus" in wire


class TestLegacyScore:
    @pytest.mark.parametrize(
        ("elapsed", "expected"),
        [(None, 1.0), (30, 1.25), (31, 1.1), (60, 1.1), (120, 1.0), (121, 0.9), (150, 0.8), (10_000, 0.1)],
    )
    def test_time_multiplier(self, elapsed, expected):
        assert legacy_time_multiplier(elapsed) == pytest.approx(expected)

    def test_clean_easy_round(self):
        breakdown = calculate_legacy_score(_difficulty(), 0, 0)
        assert breakdown.pre_streak == 100
        assert breakdown.final_score == 100

    def test_hard_round_with_clues_time_and_streak(self):
        breakdown = calculate_legacy_score(_difficulty(DifficultyTier.HARD), 2, 5, elapsed_seconds=20)
        assert breakdown.multiplier == 1.5
        assert breakdown.pre_streak == 130
        assert breakdown.time_score == 163
        assert breakdown.final_score == 171

    def test_malice_multiplier_caps_at_half(self):
        breakdown = calculate_legacy_score(_difficulty(), 0, 0, missed_guesses=40)
        assert breakdown.malice_multiplier == pytest.approx(0.5)
        assert breakdown.final_score == 50

    def test_floor(self):
        breakdown = calculate_legacy_score(_difficulty(), 10, 0, elapsed_seconds=10_000)
        assert breakdown.pre_streak == 10
        assert breakdown.final_score == 10
