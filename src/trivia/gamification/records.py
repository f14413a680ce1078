"""Stored record shapes for the daily quiz and progression collections."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class QuizAttempt(BaseModel):
    last_completed: str
    score: float
    completed_at: datetime


class DailyCompletionRecord(BaseModel):
    """One per user, covers all daily quiz history for that user."""

    last_completed_date: str | None = None
    current_streak: int = 0
    best_streak: int = 0
    completed_at: datetime | None = None
    total_completed: int = 0
    quiz_attempts: dict[str, QuizAttempt] = Field(default_factory=dict)

    def attempted_on(self, quiz_id: str, day: str) -> QuizAttempt | None:
        """The attempt for ``quiz_id`` if it was completed on ``day``."""
        attempt = self.quiz_attempts.get(quiz_id)
        if attempt is not None and attempt.last_completed == day:
            return attempt
        return None


class CompletionResult(BaseModel):
    has_completed: bool = True
    current_streak: int
    best_streak: int
    last_completed_date: str
    completed_at: datetime


class DailyQuizStatus(BaseModel):
    has_completed: bool
    current_streak: int
    best_streak: int
    last_completed_date: str | None = None
    completed_at: datetime | None = None


class ProgressionRecord(BaseModel):
    """One per user. ``level``/``xp_to_next_level`` are derived from ``xp``."""

    user_id: str
    display_name: str | None = None
    xp: int = 0
    level: int = 1
    xp_to_next_level: int = 0
    coins: int = 0
    reward_keys: dict[str, str] = Field(default_factory=dict)
    updated_at: datetime | None = None
