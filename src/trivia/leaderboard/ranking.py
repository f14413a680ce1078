"""Deterministic leaderboard ranking (pure functions).

Entries are ranked by score DESC, then earliest completed_at, then user_id, so
every scope gets a contiguous 1..N rank sequence even when scores tie.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from trivia.dates import get_monday, get_month_key, get_week_iso, to_date_string
from trivia.errors import ValidationError
from trivia.leaderboard.schemas import LeaderboardEntry, ScoreEntry

GLOBAL_SCOPE = "global"
PERIODS = ("daily", "weekly", "monthly", "all_time")

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_scope_id(value: str | None, field: str = "quizId") -> str:
    """Quiz and category ids are used inside cache keys and patterns."""
    if not value or not _ID_PATTERN.match(value):
        msg = f"{field} is required and may only contain letters, digits, '-' and '_' (max 128)"
        raise ValidationError(msg)
    return value


def validate_quiz_id(quiz_id: str | None) -> str:
    """Id a score can be recorded under. ``global`` names the totals board, not a quiz."""
    validate_scope_id(quiz_id)
    if quiz_id == GLOBAL_SCOPE:
        msg = f"quizId '{GLOBAL_SCOPE}' is reserved"
        raise ValidationError(msg)
    return quiz_id


def validate_period(period: str) -> str:
    if period not in PERIODS:
        msg = f"Unknown period: {period}"
        raise ValidationError(msg)
    return period


def period_key(period: str, today: date) -> str:
    """Identifier of the current window of ``period``, e.g. '2026-W09'."""
    if period == "daily":
        return to_date_string(today)
    if period == "weekly":
        return get_week_iso(today)
    if period == "monthly":
        return get_month_key(today)
    if period == "all_time":
        return "all_time"
    msg = f"Unknown period: {period}"
    raise ValidationError(msg)


def period_start(period: str, today: date) -> date | None:
    """First day included in the window, None for all-time."""
    if period == "daily":
        return today
    if period == "weekly":
        return get_monday(today)
    if period == "monthly":
        return today.replace(day=1)
    return None


def best_per_user(scores: list[ScoreEntry]) -> list[ScoreEntry]:
    """Keep each user's best entry: highest score, earliest on ties."""
    best: dict[str, ScoreEntry] = {}
    for entry in scores:
        current = best.get(entry.user_id)
        if current is None or (-entry.score, entry.completed_at) < (-current.score, current.completed_at):
            best[entry.user_id] = entry
    return list(best.values())


def total_per_user(scores: list[ScoreEntry]) -> list[ScoreEntry]:
    """Sum each user's scores. completed_at becomes the time the total was reached."""
    totals: dict[str, ScoreEntry] = {}
    for entry in sorted(scores, key=lambda e: e.completed_at):
        current = totals.get(entry.user_id)
        if current is None:
            totals[entry.user_id] = entry.model_copy(update={"quiz_id": GLOBAL_SCOPE})
        else:
            totals[entry.user_id] = current.model_copy(update={
                "score": current.score + entry.score,
                "completed_at": entry.completed_at,
                "display_name": entry.display_name,
            })
    return list(totals.values())


def rank_entries(
    scores: list[ScoreEntry],
    period: str,
    category_id: str | None,
    updated_at: datetime,
) -> list[LeaderboardEntry]:
    """Sort and number entries. One entry per user is expected."""
    ordered = sorted(scores, key=lambda e: (-e.score, e.completed_at, e.user_id))
    return [
        LeaderboardEntry(
            user_id=entry.user_id,
            display_name=entry.display_name,
            score=entry.score,
            rank=idx + 1,
            period=period,
            category_id=category_id,
            completed_at=entry.completed_at,
            updated_at=updated_at,
        )
        for idx, entry in enumerate(ordered)
    ]
