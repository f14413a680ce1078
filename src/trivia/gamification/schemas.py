"""Request/response models for the daily quiz and progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from trivia.schemas import CamelModel


class CompleteDailyQuizRequest(CamelModel):
    quiz_id: str = Field(min_length=1, max_length=128)
    score: float
    category_id: str | None = None


class DailyQuizStatusResponse(CamelModel):
    has_completed: bool
    current_streak: int
    best_streak: int
    last_completed_date: str | None = None
    completed_at: datetime | None = None


class ProgressionResponse(CamelModel):
    user_id: str
    display_name: str | None = None
    xp: int
    level: int
    xp_to_next_level: int
    coins: int
