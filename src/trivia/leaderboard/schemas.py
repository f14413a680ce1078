"""Leaderboard models: stored score entries, ranked entries and API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from trivia.schemas import CamelModel


class ScoreEntry(BaseModel):
    """Stored in the ``leaderboard_entries`` collection, one per user per quiz per day."""

    user_id: str
    display_name: str
    quiz_id: str
    category_id: str | None = None
    score: float
    completed_at: datetime
    date_completed: str


class LeaderboardEntry(CamelModel):
    user_id: str
    display_name: str
    score: float
    rank: int
    period: str
    category_id: str | None = None
    completed_at: datetime
    updated_at: datetime


class LeaderboardResponse(CamelModel):
    quiz_id: str
    period: str
    category_id: str | None = None
    entries: list[LeaderboardEntry]
    total: int
    page: int
    per_page: int
    current_user_rank: int | None = None


class UserRankResponse(CamelModel):
    user_id: str
    quiz_id: str
    period: str
    rank: int | None = None
    score: float | None = None
    total_entries: int
    is_in_top_ten: bool
    percentile: float


class LeaderboardStatsResponse(CamelModel):
    quiz_id: str
    period: str
    total_players: int
    average_score: float
    top_score: float
    last_updated: datetime
