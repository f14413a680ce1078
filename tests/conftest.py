"""Shared test fixtures.

The document store runs against in-memory SQLite (aiosqlite) and Redis is a
fakeredis instance, so the suite needs no external services.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from trivia.config import Settings, get_settings

os.environ["TRIVIA_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TRIVIA_LOG_FORMAT"] = "console"

from tokens import make_token  # noqa: E402

get_settings.cache_clear()

from trivia.auth.jwt import reset_keys  # noqa: E402
from trivia.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from trivia.db.base import Base  # noqa: E402
from trivia.gamification.completion_service import CompletionService  # noqa: E402
from trivia.gamification.completion_store import CompletionStore  # noqa: E402
from trivia.gamification.progression_service import ProgressionService  # noqa: E402
from trivia.leaderboard.service import LeaderboardService  # noqa: E402
from trivia.redis_client import set_redis  # noqa: E402
from trivia.store.document_store import SqlDocumentStore  # noqa: E402

reset_keys()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[SqlDocumentStore, None]:
    """SqlDocumentStore over a fresh in-memory database."""
    await init_db(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlDocumentStore(get_session_factory(), max_attempts=2)
    await close_db()


@pytest_asyncio.fixture
async def redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
    """In-process Redis, installed as the app-wide client."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    set_redis(client)
    yield client
    set_redis(None)
    await client.flushall()
    await client.aclose()


@pytest.fixture
def progression_service(store: SqlDocumentStore, settings: Settings) -> ProgressionService:
    return ProgressionService(store, settings)


@pytest.fixture
def leaderboard_service(store: SqlDocumentStore, redis, settings: Settings) -> LeaderboardService:
    return LeaderboardService(store, redis, settings)


@pytest.fixture
def completion_service(
    store: SqlDocumentStore,
    progression_service: ProgressionService,
    leaderboard_service: LeaderboardService,
    settings: Settings,
) -> CompletionService:
    return CompletionService(CompletionStore(store), progression_service, leaderboard_service, settings)


@pytest_asyncio.fixture
async def client(store: SqlDocumentStore, redis) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app; the database and Redis are set up by the fixtures above."""
    from trivia.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(user_id: str = "user-1", name: str | None = "Alice") -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, name)}"}

    return _headers
