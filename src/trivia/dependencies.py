"""Shared FastAPI dependencies: the document store and the services built on it."""

from fastapi import Depends
from redis.asyncio import Redis

from trivia.config import Settings, get_settings
from trivia.database import get_session_factory
from trivia.gamification.completion_service import CompletionService
from trivia.gamification.completion_store import CompletionStore
from trivia.gamification.progression_service import ProgressionService
from trivia.leaderboard.service import LeaderboardService
from trivia.redis_client import get_redis
from trivia.store.document_store import DocumentStore, SqlDocumentStore


def get_settings_dep() -> Settings:
    return get_settings()


def get_document_store(settings: Settings = Depends(get_settings_dep)) -> DocumentStore:  # noqa: B008
    """Document store over the shared session factory."""
    return SqlDocumentStore(get_session_factory(), max_attempts=settings.store_transaction_attempts)


def get_cache() -> Redis | None:
    """Redis client for the leaderboard cache, None when Redis was never initialised."""
    try:
        return get_redis()
    except RuntimeError:
        return None


def get_progression_service(
    store: DocumentStore = Depends(get_document_store),  # noqa: B008
    settings: Settings = Depends(get_settings_dep),  # noqa: B008
) -> ProgressionService:
    return ProgressionService(store, settings)


def get_leaderboard_service(
    store: DocumentStore = Depends(get_document_store),  # noqa: B008
    redis: Redis | None = Depends(get_cache),  # noqa: B008
    settings: Settings = Depends(get_settings_dep),  # noqa: B008
) -> LeaderboardService:
    return LeaderboardService(store, redis, settings)


def get_completion_service(
    store: DocumentStore = Depends(get_document_store),  # noqa: B008
    progression: ProgressionService = Depends(get_progression_service),  # noqa: B008
    leaderboard: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
    settings: Settings = Depends(get_settings_dep),  # noqa: B008
) -> CompletionService:
    return CompletionService(CompletionStore(store), progression, leaderboard, settings)
