"""Leaderboard service: score entries in the document store, ranked views cached in Redis.

The ``leaderboard_entries`` collection is the source of truth. Ranked entries
for a ``(quiz_id, period, category_id)`` scope are computed on demand, cached
under ``leaderboard:{quiz_id}:{period}:{category_id|_}:{period_key}`` and
dropped by ``invalidate()`` after every completion write. Redis is optional at
read time: any cache failure falls back to computing from the store.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from pydantic import TypeAdapter
from redis.asyncio import Redis
from redis.exceptions import RedisError

from trivia.config import Settings, get_settings
from trivia.dates import calculate_percentile, local_date, to_date_string, utc_now
from trivia.leaderboard.ranking import (
    GLOBAL_SCOPE,
    best_per_user,
    period_key,
    period_start,
    rank_entries,
    total_per_user,
    validate_period,
    validate_quiz_id,
    validate_scope_id,
)
from trivia.leaderboard.schemas import LeaderboardEntry, ScoreEntry
from trivia.store.document_store import LEADERBOARD_ENTRIES, DocumentStore

logger = logging.getLogger(__name__)

CACHE_PREFIX = "leaderboard"
NO_CATEGORY = "_"

_entries_adapter = TypeAdapter(list[LeaderboardEntry])


def entry_key(quiz_id: str, date_completed: str, user_id: str) -> str:
    return f"{quiz_id}:{date_completed}:{user_id}"


class LeaderboardService:
    """Ranked leaderboards per scope with a read-through Redis cache."""

    def __init__(
        self,
        store: DocumentStore,
        redis: Redis | None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._redis = redis
        self._settings = settings or get_settings()

    def _today(self) -> date:
        return local_date(utc_now(), self._settings.day_boundary_timezone)

    def cache_key(self, quiz_id: str, period: str, category_id: str | None, today: date) -> str:
        return f"{CACHE_PREFIX}:{quiz_id}:{period}:{category_id or NO_CATEGORY}:{period_key(period, today)}"

    async def record_entry(
        self,
        user_id: str,
        display_name: str,
        quiz_id: str,
        score: float,
        completed_at: datetime,
        date_completed: str,
        category_id: str | None = None,
    ) -> bool:
        """Write the score entry for ``(quiz_id, date_completed, user_id)`` once.

        Returns False when the entry already existed; the first entry is kept.
        """
        validate_quiz_id(quiz_id)
        if category_id is not None:
            validate_scope_id(category_id, field="categoryId")
        entry = ScoreEntry(
            user_id=user_id,
            display_name=display_name,
            quiz_id=quiz_id,
            category_id=category_id,
            score=score,
            completed_at=completed_at,
            date_completed=date_completed,
        )

        def apply(doc: dict | None) -> tuple[dict | None, bool]:
            if doc is not None:
                return None, False
            return entry.model_dump(mode="json"), True

        created = await self._store.transaction(
            LEADERBOARD_ENTRIES, entry_key(quiz_id, date_completed, user_id), apply,
        )
        if created:
            logger.info(
                "Leaderboard entry recorded: quiz=%s user=%s score=%s date=%s",
                quiz_id, user_id, score, date_completed,
            )
        return created

    async def get_entries(
        self,
        quiz_id: str,
        period: str = "daily",
        category_id: str | None = None,
        today: date | None = None,
    ) -> list[LeaderboardEntry]:
        """Full ranked list for a scope, served from cache when possible."""
        validate_scope_id(quiz_id)
        validate_period(period)
        if category_id is not None:
            validate_scope_id(category_id, field="categoryId")
        today = today or self._today()
        key = self.cache_key(quiz_id, period, category_id, today)

        if self._redis is not None:
            try:
                cached = await self._redis.get(key)
                if cached:
                    return _entries_adapter.validate_json(cached)
            except RedisError:
                logger.warning("Leaderboard cache read failed for %s", key, exc_info=True)

        entries = await self._compute(quiz_id, period, category_id, today)

        if self._redis is not None:
            try:
                await self._redis.setex(
                    key,
                    self._settings.leaderboard_cache_ttl_seconds,
                    _entries_adapter.dump_json(entries),
                )
            except RedisError:
                logger.warning("Leaderboard cache write failed for %s", key, exc_info=True)

        return entries

    async def invalidate(self, quiz_id: str | None = None, period: str | None = None) -> int:
        """Delete cached scopes matching ``quiz_id``/``period``. Returns keys removed.

        Raises RedisError; callers that already committed a write log and move on.
        """
        if self._redis is None:
            return 0
        if quiz_id is not None:
            validate_scope_id(quiz_id)
        if period is not None:
            validate_period(period)

        pattern = f"{CACHE_PREFIX}:{quiz_id or '*'}:{period or '*'}:*"
        keys = [key async for key in self._redis.scan_iter(match=pattern)]
        if not keys:
            return 0
        removed = await self._redis.delete(*keys)
        logger.debug("Invalidated %d leaderboard cache keys for %s", removed, pattern)
        return removed

    async def get_user_rank(
        self,
        user_id: str,
        quiz_id: str,
        period: str = "daily",
        category_id: str | None = None,
    ) -> dict:
        """User's position in a scope. rank/score are None when not on the board."""
        entries = await self.get_entries(quiz_id, period, category_id)
        total = len(entries)
        mine = next((e for e in entries if e.user_id == user_id), None)
        if mine is None:
            return {
                "rank": None,
                "score": None,
                "total_entries": total,
                "is_in_top_ten": False,
                "percentile": 0.0,
            }
        return {
            "rank": mine.rank,
            "score": mine.score,
            "total_entries": total,
            "is_in_top_ten": mine.rank <= 10,
            "percentile": calculate_percentile(mine.rank, total),
        }

    async def get_stats(
        self,
        quiz_id: str,
        period: str = "daily",
        category_id: str | None = None,
    ) -> dict:
        entries = await self.get_entries(quiz_id, period, category_id)
        if not entries:
            return {
                "total_players": 0,
                "average_score": 0.0,
                "top_score": 0.0,
                "last_updated": utc_now(),
            }
        scores = [e.score for e in entries]
        return {
            "total_players": len(entries),
            "average_score": round(sum(scores) / len(scores), 2),
            "top_score": max(scores),
            "last_updated": entries[0].updated_at,
        }

    async def _compute(
        self,
        quiz_id: str,
        period: str,
        category_id: str | None,
        today: date,
    ) -> list[LeaderboardEntry]:
        where: dict[str, str] = {}
        if quiz_id != GLOBAL_SCOPE:
            where["quiz_id"] = quiz_id
        if category_id is not None:
            where["category_id"] = category_id

        on_or_after: dict[str, str] = {}
        start = period_start(period, today)
        if start is not None:
            on_or_after["date_completed"] = to_date_string(start)

        docs = await self._store.query(LEADERBOARD_ENTRIES, where=where, on_or_after=on_or_after)
        today_str = to_date_string(today)
        # Entries dated after today only appear with clock skew between servers.
        scores = [
            entry for entry in (ScoreEntry.model_validate(doc) for doc in docs)
            if entry.date_completed <= today_str
        ]

        if quiz_id == GLOBAL_SCOPE:
            per_user = total_per_user(scores)
        else:
            per_user = best_per_user(scores)
        return rank_entries(per_user, period, category_id, updated_at=utc_now())
