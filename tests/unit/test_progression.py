"""Level curve, progression deltas, reward math and amount bounds."""

import pytest

from trivia.errors import ValidationError
from trivia.gamification.progression import (
    calculate_level,
    calculate_progression,
    compute_reward,
    validate_coin_amount,
    validate_score,
    validate_xp_amount,
)


class TestCalculateLevel:
    def test_level_1_at_zero_xp(self):
        assert calculate_level(0, 100) == {"level": 1, "xp_to_next_level": 100}

    def test_level_3_at_400_xp(self):
        assert calculate_level(400, 100) == {"level": 3, "xp_to_next_level": 300}

    def test_boundaries(self):
        assert calculate_level(99, 100)["level"] == 1
        assert calculate_level(100, 100)["level"] == 2
        assert calculate_level(399, 100)["level"] == 2
        assert calculate_level(900, 100)["level"] == 4

    def test_exact_for_large_perfect_squares(self):
        """Integer square root: no float rounding at huge perfect squares."""
        xp = (10**8) ** 2 * 100
        assert calculate_level(xp, 100)["level"] == 10**8 + 1
        assert calculate_level(xp - 1, 100)["level"] == 10**8

    def test_level_never_decreases_with_xp(self):
        levels = [calculate_level(xp, 100)["level"] for xp in range(0, 5000, 7)]
        assert all(level >= 1 for level in levels)
        assert levels == sorted(levels)

    def test_negative_xp_rejected(self):
        with pytest.raises(ValidationError):
            calculate_level(-1, 100)

    def test_uses_configured_xp_per_level(self):
        assert calculate_level(400)["level"] == 3

    def test_custom_xp_per_level(self):
        assert calculate_level(200, 50) == {"level": 3, "xp_to_next_level": 150}


class TestCalculateProgression:
    def test_new_xp_is_exact_sum(self):
        for current, gain in [(0, 0), (0, 100), (123, 456), (99, 1)]:
            assert calculate_progression(current, gain, 100)["new_xp"] == current + gain

    def test_level_up_detected(self):
        result = calculate_progression(90, 20, 100)
        assert result["leveled_up"] is True
        assert result["levels_gained"] == 1
        assert result["new_level"] == 2

    def test_multiple_levels_gained(self):
        result = calculate_progression(0, 900, 100)
        assert result["new_level"] == 4
        assert result["levels_gained"] == 3

    def test_no_level_up(self):
        result = calculate_progression(0, 50, 100)
        assert result["leveled_up"] is False
        assert result["levels_gained"] == 0
        assert result["xp_to_next_level"] == 100


class TestAmountBounds:
    def test_zero_and_max_accepted(self):
        validate_xp_amount(0, 10_000)
        validate_xp_amount(10_000, 10_000)
        validate_coin_amount(0, 10_000)
        validate_coin_amount(10_000, 10_000)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="negative"):
            validate_xp_amount(-1, 10_000)
        with pytest.raises(ValidationError, match="negative"):
            validate_coin_amount(-5, 10_000)

    def test_above_max_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed 10000"):
            validate_xp_amount(10_001, 10_000)
        with pytest.raises(ValidationError, match="cannot exceed 500"):
            validate_coin_amount(501, 500)


class TestScoreAndReward:
    @pytest.mark.parametrize("score", [0, 50, 99.5, 100])
    def test_valid_scores(self, score):
        validate_score(score)

    @pytest.mark.parametrize("score", [-0.1, 100.01, float("nan"), True, "80", None])
    def test_invalid_scores(self, score):
        with pytest.raises(ValidationError):
            validate_score(score)

    def test_zero_score_earns_base(self):
        assert compute_reward(0, 50, 10) == {"xp": 50, "coins": 10}

    def test_full_score_earns_one_and_a_half(self):
        assert compute_reward(100, 50, 10) == {"xp": 75, "coins": 15}

    def test_rounds_half_up(self):
        # 50 * 1.25 = 62.5, 10 * 1.25 = 12.5
        assert compute_reward(50, 50, 10) == {"xp": 63, "coins": 13}

    def test_reward_rejects_bad_score(self):
        with pytest.raises(ValidationError):
            compute_reward(101, 50, 10)
