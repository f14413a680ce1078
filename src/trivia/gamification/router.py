"""Daily quiz and progression endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from trivia.auth.dependencies import AuthenticatedUser, get_current_user
from trivia.dependencies import get_completion_service, get_progression_service
from trivia.gamification.completion_service import CompletionService
from trivia.gamification.progression_service import ProgressionService
from trivia.gamification.schemas import (
    CompleteDailyQuizRequest,
    DailyQuizStatusResponse,
    ProgressionResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Daily Quiz"])


@router.get("/daily-quiz/status", response_model=DailyQuizStatusResponse, response_model_exclude_none=True)
async def get_daily_quiz_status(
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
    service: CompletionService = Depends(get_completion_service),  # noqa: B008
):
    """Whether the caller completed today's quiz, plus streak counters."""
    status = await service.get_status(user.user_id)
    return DailyQuizStatusResponse(**status.model_dump())


@router.post("/daily-quiz/status", response_model=DailyQuizStatusResponse, response_model_exclude_none=True)
async def complete_daily_quiz(
    body: CompleteDailyQuizRequest,
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
    service: CompletionService = Depends(get_completion_service),  # noqa: B008
):
    """Record a daily quiz completion. Safe to retry: repeats on the same day are no-ops."""
    result = await service.record_completion(
        user.user_id,
        body.quiz_id,
        body.score,
        display_name=user.display_name,
        category_id=body.category_id,
    )
    return DailyQuizStatusResponse(**result.model_dump())


@router.get("/users/me/progression", response_model=ProgressionResponse)
async def get_my_progression(
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
    service: ProgressionService = Depends(get_progression_service),  # noqa: B008
):
    """XP, level and coins. 404 until the first reward is granted."""
    record = await service.get_progression(user.user_id)
    return ProgressionResponse(
        user_id=record.user_id,
        display_name=record.display_name,
        xp=record.xp,
        level=record.level,
        xp_to_next_level=record.xp_to_next_level,
        coins=record.coins,
    )
