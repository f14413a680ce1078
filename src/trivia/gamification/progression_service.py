"""XP/coin progression service with idempotent reward grants and level-up detection."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from trivia.config import Settings, get_settings
from trivia.dates import to_date_string, utc_now
from trivia.errors import NotFoundError
from trivia.gamification.progression import (
    calculate_level,
    calculate_progression,
    validate_coin_amount,
    validate_xp_amount,
)
from trivia.gamification.records import ProgressionRecord
from trivia.store.document_store import USER_PROGRESSION, DocumentStore

logger = logging.getLogger(__name__)


class ProgressionService:
    """Owns the ``user_progression`` collection.

    Level fields are recomputed from xp on every write and on every read, so a
    stale or hand-edited level never reaches a caller.
    """

    def __init__(self, store: DocumentStore, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    def _with_level(self, record: ProgressionRecord) -> ProgressionRecord:
        level_info = calculate_level(record.xp, self._settings.xp_per_level)
        return record.model_copy(update={
            "level": level_info["level"],
            "xp_to_next_level": level_info["xp_to_next_level"],
        })

    async def get_progression(self, user_id: str) -> ProgressionRecord:
        """Return the user's progression. Raises NotFoundError if never initialised."""
        doc = await self._store.get(USER_PROGRESSION, user_id)
        if doc is None:
            raise NotFoundError("User progression", user_id)
        return self._with_level(ProgressionRecord.model_validate(doc))

    async def add_xp(self, user_id: str, amount: int) -> dict:
        """Add XP to an existing user."""
        validate_xp_amount(amount, self._settings.max_xp_amount)

        def apply(doc: dict | None) -> tuple[dict, dict]:
            if doc is None:
                raise NotFoundError("User progression", user_id)
            record = ProgressionRecord.model_validate(doc)
            progression = calculate_progression(record.xp, amount, self._settings.xp_per_level)
            updated = self._with_level(record.model_copy(update={
                "xp": progression["new_xp"],
                "updated_at": utc_now(),
            }))
            return updated.model_dump(mode="json"), progression

        progression = await self._store.transaction(USER_PROGRESSION, user_id, apply)
        if progression["leveled_up"]:
            logger.info("Level up: user=%s level=%d", user_id, progression["new_level"])

        return {
            "level": progression["new_level"],
            "xp": progression["new_xp"],
            "xp_to_next_level": progression["xp_to_next_level"],
            "leveled_up": progression["leveled_up"],
            "levels_gained": progression["levels_gained"],
        }

    async def add_coins(self, user_id: str, amount: int) -> int:
        """Add coins to an existing user. Returns the new balance."""
        validate_coin_amount(amount, self._settings.max_coin_amount)

        def apply(doc: dict | None) -> tuple[dict, int]:
            if doc is None:
                raise NotFoundError("User progression", user_id)
            record = ProgressionRecord.model_validate(doc)
            updated = self._with_level(record.model_copy(update={
                "coins": record.coins + amount,
                "updated_at": utc_now(),
            }))
            return updated.model_dump(mode="json"), updated.coins

        return await self._store.transaction(USER_PROGRESSION, user_id, apply)

    async def grant_rewards(
        self,
        user_id: str,
        xp: int,
        coins: int,
        idempotency_key: str,
        on_date: date,
        display_name: str | None = None,
    ) -> dict:
        """Grant XP and coins at most once per idempotency key.

        Creates the progression record on the first grant. Returns the
        resulting progression with ``granted`` False for a duplicate key.
        """
        validate_xp_amount(xp, self._settings.max_xp_amount)
        validate_coin_amount(coins, self._settings.max_coin_amount)

        cutoff = to_date_string(on_date - timedelta(days=self._settings.reward_key_retention_days))

        def apply(doc: dict | None) -> tuple[dict | None, dict]:
            if doc is None:
                record = ProgressionRecord(user_id=user_id, display_name=display_name)
            else:
                record = ProgressionRecord.model_validate(doc)

            if idempotency_key in record.reward_keys:
                current = self._with_level(record)
                return None, {
                    "granted": False,
                    "leveled_up": False,
                    "levels_gained": 0,
                    "record": current,
                }

            progression = calculate_progression(record.xp, xp, self._settings.xp_per_level)
            reward_keys = {k: v for k, v in record.reward_keys.items() if v >= cutoff}
            reward_keys[idempotency_key] = to_date_string(on_date)
            updated = self._with_level(record.model_copy(update={
                "xp": progression["new_xp"],
                "coins": record.coins + coins,
                "display_name": display_name or record.display_name,
                "reward_keys": reward_keys,
                "updated_at": utc_now(),
            }))
            return updated.model_dump(mode="json"), {
                "granted": True,
                "leveled_up": progression["leveled_up"],
                "levels_gained": progression["levels_gained"],
                "record": updated,
            }

        outcome = await self._store.transaction(USER_PROGRESSION, user_id, apply)
        record: ProgressionRecord = outcome["record"]
        if outcome["granted"]:
            logger.info(
                "Rewards granted: user=%s key=%s xp=%d coins=%d", user_id, idempotency_key, xp, coins,
            )
            if outcome["leveled_up"]:
                logger.info("Level up: user=%s level=%d", user_id, record.level)

        return {
            "granted": outcome["granted"],
            "xp": record.xp,
            "level": record.level,
            "xp_to_next_level": record.xp_to_next_level,
            "coins": record.coins,
            "leveled_up": outcome["leveled_up"],
            "levels_gained": outcome["levels_gained"],
        }
