"""Leaderboard endpoints. Reads are public; ``/me`` needs a token."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from trivia.auth.dependencies import AuthenticatedUser, get_current_user, get_optional_user
from trivia.config import get_settings
from trivia.dependencies import get_leaderboard_service
from trivia.leaderboard.schemas import (
    LeaderboardResponse,
    LeaderboardStatsResponse,
    UserRankResponse,
)
from trivia.leaderboard.service import LeaderboardService

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard/{quiz_id}", response_model=LeaderboardResponse)
async def get_leaderboard(
    quiz_id: str,
    period: str = Query("daily"),
    category_id: str | None = Query(None, alias="categoryId"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, alias="perPage"),
    user: AuthenticatedUser | None = Depends(get_optional_user),  # noqa: B008
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
):
    """Ranked entries for a quiz (or ``global``), paginated."""
    per_page = min(per_page, get_settings().leaderboard_max_per_page)
    entries = await service.get_entries(quiz_id, period, category_id)
    start = (page - 1) * per_page

    current_user_rank = None
    if user is not None:
        current_user_rank = next((e.rank for e in entries if e.user_id == user.user_id), None)

    return LeaderboardResponse(
        quiz_id=quiz_id,
        period=period,
        category_id=category_id,
        entries=entries[start:start + per_page],
        total=len(entries),
        page=page,
        per_page=per_page,
        current_user_rank=current_user_rank,
    )


@router.get("/leaderboard/{quiz_id}/me", response_model=UserRankResponse)
async def get_my_rank(
    quiz_id: str,
    period: str = Query("daily"),
    category_id: str | None = Query(None, alias="categoryId"),
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
):
    """Caller's rank, score and percentile in a scope."""
    rank = await service.get_user_rank(user.user_id, quiz_id, period, category_id)
    return UserRankResponse(user_id=user.user_id, quiz_id=quiz_id, period=period, **rank)


@router.get("/leaderboard/{quiz_id}/stats", response_model=LeaderboardStatsResponse)
async def get_leaderboard_stats(
    quiz_id: str,
    period: str = Query("daily"),
    category_id: str | None = Query(None, alias="categoryId"),
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
):
    """Player count, average and top score for a scope."""
    stats = await service.get_stats(quiz_id, period, category_id)
    return LeaderboardStatsResponse(quiz_id=quiz_id, period=period, **stats)
