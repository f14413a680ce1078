"""HTTP tests for /api/v1/leaderboard."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _complete(client: AsyncClient, auth_headers, user: str, name: str, quiz: str, score: float) -> None:
    response = await client.post(
        "/api/v1/daily-quiz/status", json={"quizId": quiz, "score": score}, headers=auth_headers(user, name),
    )
    assert response.status_code == 200


async def test_empty_leaderboard_is_public(client: AsyncClient):
    response = await client.get("/api/v1/leaderboard/quiz-1")
    assert response.status_code == 200
    assert response.json() == {
        "quizId": "quiz-1",
        "period": "daily",
        "categoryId": None,
        "entries": [],
        "total": 0,
        "page": 1,
        "perPage": 50,
        "currentUserRank": None,
    }


async def test_ranked_entries_after_completions(client: AsyncClient, auth_headers):
    await _complete(client, auth_headers, "u1", "Alice", "quiz-1", 60)
    await client.get("/api/v1/leaderboard/quiz-1")  # warm the cache
    await _complete(client, auth_headers, "u2", "Bob", "quiz-1", 95)

    response = await client.get("/api/v1/leaderboard/quiz-1", headers=auth_headers("u1", "Alice"))
    data = response.json()
    assert data["total"] == 2
    assert [(e["displayName"], e["rank"]) for e in data["entries"]] == [("Bob", 1), ("Alice", 2)]
    assert data["entries"][0]["userId"] == "u2"
    assert data["currentUserRank"] == 2


async def test_pagination(client: AsyncClient, auth_headers):
    for i in range(5):
        await _complete(client, auth_headers, f"u{i}", f"User {i}", "quiz-1", 50 + i)

    response = await client.get("/api/v1/leaderboard/quiz-1", params={"page": 2, "perPage": 2})
    data = response.json()
    assert data["total"] == 5
    assert data["page"] == 2
    assert data["perPage"] == 2
    assert [e["rank"] for e in data["entries"]] == [3, 4]


async def test_global_leaderboard(client: AsyncClient, auth_headers):
    await _complete(client, auth_headers, "u1", "Alice", "quiz-1", 60)
    await _complete(client, auth_headers, "u1", "Alice", "quiz-2", 30)
    await _complete(client, auth_headers, "u2", "Bob", "quiz-1", 80)

    data = (await client.get("/api/v1/leaderboard/global", params={"period": "weekly"})).json()
    assert [(e["userId"], e["score"]) for e in data["entries"]] == [("u1", 90.0), ("u2", 80.0)]
    assert data["period"] == "weekly"


async def test_invalid_period(client: AsyncClient):
    response = await client.get("/api/v1/leaderboard/quiz-1", params={"period": "hourly"})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


async def test_my_rank_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/leaderboard/quiz-1/me")
    assert response.status_code == 401


async def test_my_rank(client: AsyncClient, auth_headers):
    await _complete(client, auth_headers, "u1", "Alice", "quiz-1", 60)
    await _complete(client, auth_headers, "u2", "Bob", "quiz-1", 95)

    data = (await client.get("/api/v1/leaderboard/quiz-1/me", headers=auth_headers("u1", "Alice"))).json()
    assert data["userId"] == "u1"
    assert data["rank"] == 2
    assert data["score"] == 60
    assert data["totalEntries"] == 2
    assert data["isInTopTen"] is True
    assert data["percentile"] == 0.0

    absent = (await client.get("/api/v1/leaderboard/quiz-1/me", headers=auth_headers("u9"))).json()
    assert absent["rank"] is None
    assert absent["totalEntries"] == 2


async def test_stats(client: AsyncClient, auth_headers):
    await _complete(client, auth_headers, "u1", "Alice", "quiz-1", 60)
    await _complete(client, auth_headers, "u2", "Bob", "quiz-1", 90)

    data = (await client.get("/api/v1/leaderboard/quiz-1/stats")).json()
    assert data["totalPlayers"] == 2
    assert data["averageScore"] == 75.0
    assert data["topScore"] == 90.0
    assert "lastUpdated" in data
