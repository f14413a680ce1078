"""Daily quiz completion: streak update, reward grant and leaderboard entry.

``record_completion`` is idempotent per (user, quiz, calendar day). Each step
after the streak transaction is itself idempotent and derived from the stored
attempt, so a client retry after a partial failure fills in the missing steps
without double-counting anything.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from redis.exceptions import RedisError

from trivia.config import Settings, get_settings
from trivia.dates import local_date, to_date_string, utc_now
from trivia.errors import AuthorizationError
from trivia.gamification.completion_store import CompletionStore
from trivia.gamification.progression import (
    compute_reward,
    validate_coin_amount,
    validate_score,
    validate_xp_amount,
)
from trivia.gamification.progression_service import ProgressionService
from trivia.gamification.records import CompletionResult, DailyQuizStatus
from trivia.gamification.streak import status_for
from trivia.leaderboard.ranking import GLOBAL_SCOPE, validate_quiz_id, validate_scope_id
from trivia.leaderboard.service import LeaderboardService

logger = logging.getLogger(__name__)


def reward_key(quiz_id: str, day: str) -> str:
    return f"daily_quiz:{quiz_id}:{day}"


class CompletionService:
    def __init__(
        self,
        completions: CompletionStore,
        progression: ProgressionService,
        leaderboard: LeaderboardService,
        settings: Settings | None = None,
    ) -> None:
        self._completions = completions
        self._progression = progression
        self._leaderboard = leaderboard
        self._settings = settings or get_settings()

    def _today(self, now: datetime) -> date:
        return local_date(now, self._settings.day_boundary_timezone)

    async def get_status(self, user_id: str | None, now: datetime | None = None) -> DailyQuizStatus:
        """Today's completion status. A user who never played gets zeros."""
        if not user_id:
            raise AuthorizationError
        today = self._today(now or utc_now())
        record = await self._completions.get(user_id)
        return status_for(record, today)

    async def record_completion(
        self,
        user_id: str | None,
        quiz_id: str,
        score: float,
        display_name: str | None = None,
        category_id: str | None = None,
        now: datetime | None = None,
    ) -> CompletionResult:
        """Record that ``user_id`` finished ``quiz_id`` with ``score``.

        Raises AuthorizationError / ValidationError before touching the store,
        ConflictError when the streak transaction keeps losing races and
        StoreError when the store is down.
        """
        if not user_id:
            raise AuthorizationError
        validate_quiz_id(quiz_id)
        if category_id is not None:
            validate_scope_id(category_id, field="categoryId")
        validate_score(score)
        reward = compute_reward(
            score, self._settings.daily_quiz_base_xp, self._settings.daily_quiz_base_coins,
        )
        validate_xp_amount(reward["xp"], self._settings.max_xp_amount)
        validate_coin_amount(reward["coins"], self._settings.max_coin_amount)

        now = now or utc_now()
        today = self._today(now)
        today_str = to_date_string(today)

        decision = await self._completions.record(user_id, quiz_id, score, today, now)
        attempt = decision.attempt

        # Retries land here with the first attempt's score, not the new one.
        if attempt.score != score:
            reward = compute_reward(
                attempt.score, self._settings.daily_quiz_base_xp, self._settings.daily_quiz_base_coins,
            )

        grant = await self._progression.grant_rewards(
            user_id,
            reward["xp"],
            reward["coins"],
            reward_key(quiz_id, today_str),
            today,
            display_name=display_name,
        )
        if grant["leveled_up"]:
            logger.info(
                "Daily quiz level up: user=%s level=%d (+%d)",
                user_id, grant["level"], grant["levels_gained"],
            )

        await self._leaderboard.record_entry(
            user_id=user_id,
            display_name=display_name or user_id,
            quiz_id=quiz_id,
            score=attempt.score,
            completed_at=attempt.completed_at,
            date_completed=attempt.last_completed,
            category_id=category_id,
        )
        await self._invalidate(quiz_id)

        return decision.result

    async def _invalidate(self, quiz_id: str) -> None:
        # The write is committed; a stale cache only lives until the TTL.
        for scope in (quiz_id, GLOBAL_SCOPE):
            try:
                await self._leaderboard.invalidate(scope)
            except RedisError:
                logger.warning("Leaderboard invalidation failed for %s", scope, exc_info=True)
