"""Daily completion record persistence (``user_daily_quiz`` collection)."""

from __future__ import annotations

import logging
from datetime import date, datetime

from trivia.gamification.records import DailyCompletionRecord
from trivia.gamification.streak import CompletionDecision, decide_completion
from trivia.store.document_store import USER_DAILY_QUIZ, DocumentStore

logger = logging.getLogger(__name__)


def _load(doc: dict | None) -> DailyCompletionRecord | None:
    return DailyCompletionRecord.model_validate(doc) if doc is not None else None


class CompletionStore:
    """Reads and atomically advances a user's daily completion record."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> DailyCompletionRecord | None:
        return _load(await self._store.get(USER_DAILY_QUIZ, user_id))

    async def record(
        self,
        user_id: str,
        quiz_id: str,
        score: float,
        today: date,
        now: datetime,
    ) -> CompletionDecision:
        """Run the streak state machine against the stored record in one transaction.

        Concurrent callers for the same user serialize on the record version: a
        caller that loses the race re-reads and sees today's completion, which
        turns its decision into the no-op case.
        """

        def apply(doc: dict | None) -> tuple[dict | None, CompletionDecision]:
            decision = decide_completion(_load(doc), quiz_id, score, today, now)
            if not decision.changed:
                return None, decision
            return decision.record.model_dump(mode="json"), decision

        decision = await self._store.transaction(USER_DAILY_QUIZ, user_id, apply)
        if decision.advanced:
            logger.info(
                "Daily completion recorded: user=%s quiz=%s state=%s streak=%d",
                user_id, quiz_id, decision.state.value, decision.record.current_streak,
            )
        elif decision.changed:
            logger.info("Additional quiz recorded for today: user=%s quiz=%s", user_id, quiz_id)
        return decision
