"""Level computation and reward math.

Levels follow a closed-form curve so they are cheap to recompute on every read:

    level             = floor(sqrt(xp / XP_PER_LEVEL)) + 1
    xp_to_next_level  = level * XP_PER_LEVEL

With XP_PER_LEVEL = 100: 0 XP → level 1, 100 XP → level 2, 400 XP → level 3,
900 XP → level 4. ``level`` and ``xp_to_next_level`` are never stored on their
own; every write that touches xp goes through calculate_level().
"""

from __future__ import annotations

import math

from trivia.config import get_settings
from trivia.errors import ValidationError

DEFAULT_XP_PER_LEVEL = 100
MAX_SCORE = 100


def calculate_level(xp: int, xp_per_level: int | None = None) -> dict:
    """Compute level info from total XP."""
    if xp < 0:
        msg = "XP cannot be negative"
        raise ValidationError(msg)
    per_level = get_settings().xp_per_level if xp_per_level is None else xp_per_level
    if per_level <= 0:
        msg = "XP per level must be positive"
        raise ValueError(msg)

    # isqrt(xp // k) == floor(sqrt(xp / k)) for integers, without float error
    level = math.isqrt(int(xp) // per_level) + 1
    return {
        "level": level,
        "xp_to_next_level": level * per_level,
    }


def calculate_progression(current_xp: int, xp_gain: int, xp_per_level: int | None = None) -> dict:
    """Compute the effect of adding ``xp_gain`` to ``current_xp``."""
    new_xp = current_xp + xp_gain
    before = calculate_level(current_xp, xp_per_level)
    after = calculate_level(new_xp, xp_per_level)

    return {
        "new_xp": new_xp,
        "new_level": after["level"],
        "xp_to_next_level": after["xp_to_next_level"],
        "leveled_up": after["level"] > before["level"],
        "levels_gained": after["level"] - before["level"],
    }


def validate_xp_amount(amount: int, max_amount: int | None = None) -> None:
    """Reject XP gains outside [0, MAX_XP_AMOUNT]."""
    limit = get_settings().max_xp_amount if max_amount is None else max_amount
    if amount < 0:
        msg = "XP amount cannot be negative"
        raise ValidationError(msg)
    if amount > limit:
        msg = f"XP amount cannot exceed {limit}"
        raise ValidationError(msg)


def validate_coin_amount(amount: int, max_amount: int | None = None) -> None:
    """Reject coin gains outside [0, MAX_COIN_AMOUNT]."""
    limit = get_settings().max_coin_amount if max_amount is None else max_amount
    if amount < 0:
        msg = "Coin amount cannot be negative"
        raise ValidationError(msg)
    if amount > limit:
        msg = f"Coin amount cannot exceed {limit}"
        raise ValidationError(msg)


def validate_score(score: float) -> None:
    """Quiz scores are percentages in [0, 100]."""
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score):
        msg = "Score must be a number"
        raise ValidationError(msg)
    if score < 0 or score > MAX_SCORE:
        msg = f"Score must be between 0 and {MAX_SCORE}"
        raise ValidationError(msg)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_reward(score: float, base_xp: int, base_coins: int) -> dict:
    """XP and coins earned for a quiz completion.

    Full marks earn 1.5x the base reward, zero earns the base reward.
    """
    validate_score(score)
    multiplier = 1 + (score / MAX_SCORE) * 0.5
    return {
        "xp": _round_half_up(base_xp * multiplier),
        "coins": _round_half_up(base_coins * multiplier),
    }
