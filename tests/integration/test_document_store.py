"""SqlDocumentStore against SQLite: CRUD, queries and the version-checked transaction."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from trivia.errors import ConflictError, NotFoundError, StoreError
from trivia.store.document_store import SqlDocumentStore

pytestmark = pytest.mark.asyncio


class TestBasicOperations:
    async def test_get_missing_returns_none(self, store: SqlDocumentStore):
        assert await store.get("things", "nope") is None

    async def test_set_then_get(self, store: SqlDocumentStore):
        await store.set("things", "a", {"name": "alpha", "n": 1})
        assert await store.get("things", "a") == {"name": "alpha", "n": 1}

    async def test_set_replaces(self, store: SqlDocumentStore):
        await store.set("things", "a", {"name": "alpha", "n": 1})
        await store.set("things", "a", {"name": "beta"})
        assert await store.get("things", "a") == {"name": "beta"}

    async def test_collections_are_separate(self, store: SqlDocumentStore):
        await store.set("left", "k", {"side": "left"})
        await store.set("right", "k", {"side": "right"})
        assert (await store.get("left", "k"))["side"] == "left"
        assert (await store.get("right", "k"))["side"] == "right"

    async def test_update_merges_fields(self, store: SqlDocumentStore):
        await store.set("things", "a", {"name": "alpha", "n": 1})
        merged = await store.update("things", "a", {"n": 2, "extra": True})
        assert merged == {"name": "alpha", "n": 2, "extra": True}
        assert await store.get("things", "a") == merged

    async def test_update_missing_raises(self, store: SqlDocumentStore):
        with pytest.raises(NotFoundError):
            await store.update("things", "ghost", {"n": 1})


class TestQuery:
    async def test_filters_by_field_and_lower_bound(self, store: SqlDocumentStore):
        await store.set("scores", "1", {"quiz_id": "q1", "date_completed": "2026-03-01", "score": 10})
        await store.set("scores", "2", {"quiz_id": "q1", "date_completed": "2026-03-05", "score": 20})
        await store.set("scores", "3", {"quiz_id": "q2", "date_completed": "2026-03-05", "score": 30})
        await store.set("other", "4", {"quiz_id": "q1", "date_completed": "2026-03-05", "score": 40})

        everything = await store.query("scores")
        assert [d["score"] for d in everything] == [10, 20, 30]

        q1 = await store.query("scores", where={"quiz_id": "q1"})
        assert [d["score"] for d in q1] == [10, 20]

        recent_q1 = await store.query("scores", where={"quiz_id": "q1"}, on_or_after={"date_completed": "2026-03-02"})
        assert [d["score"] for d in recent_q1] == [20]


class TestTransaction:
    async def test_creates_when_absent(self, store: SqlDocumentStore):
        def apply(doc):
            assert doc is None
            return {"count": 1}, "created"

        assert await store.transaction("counters", "c", apply) == "created"
        assert await store.get("counters", "c") == {"count": 1}

    async def test_increments_existing(self, store: SqlDocumentStore):
        await store.set("counters", "c", {"count": 1})
        for _ in range(3):
            await store.transaction("counters", "c", lambda doc: ({"count": doc["count"] + 1}, None))
        assert await store.get("counters", "c") == {"count": 4}

    async def test_none_document_skips_write(self, store: SqlDocumentStore):
        await store.set("counters", "c", {"count": 1})
        result = await store.transaction("counters", "c", lambda doc: (None, doc["count"]))
        assert result == 1
        assert await store.get("counters", "c") == {"count": 1}

    async def test_errors_from_apply_propagate_without_writing(self, store: SqlDocumentStore):
        def apply(_doc):
            raise NotFoundError("Thing", "c")

        with pytest.raises(NotFoundError):
            await store.transaction("counters", "c", apply)
        assert await store.get("counters", "c") is None

    async def test_lost_race_retries_with_fresh_read(self, store: SqlDocumentStore, monkeypatch):
        """A stale version on the first read makes the UPDATE miss; the retry sees the real row."""
        await store.set("counters", "c", {"count": 5})
        real_read = store._read
        calls = {"n": 0}

        async def stale_once(session, collection, key):
            calls["n"] += 1
            data, version = await real_read(session, collection, key)
            if calls["n"] == 1:
                return {"count": 0}, version - 1
            return data, version

        monkeypatch.setattr(store, "_read", stale_once)
        seen = []

        def apply(doc):
            seen.append(doc["count"])
            return {"count": doc["count"] + 1}, None

        await store.transaction("counters", "c", apply)
        assert seen == [0, 5]
        monkeypatch.undo()
        assert await store.get("counters", "c") == {"count": 6}

    async def test_lost_race_on_insert_retries(self, store: SqlDocumentStore, monkeypatch):
        """Row created by someone else between our read and our INSERT."""
        await store.set("counters", "c", {"count": 7})
        real_read = store._read
        calls = {"n": 0}

        async def absent_once(session, collection, key):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_read(session, collection, key)

        monkeypatch.setattr(store, "_read", absent_once)
        result = await store.transaction(
            "counters", "c", lambda doc: ({"count": (doc or {"count": 0})["count"] + 1}, "ok"),
        )
        assert result == "ok"
        assert await store.get("counters", "c") == {"count": 8}

    async def test_conflict_after_attempts_exhausted(self, store: SqlDocumentStore, monkeypatch):
        await store.set("counters", "c", {"count": 5})
        real_read = store._read

        async def always_stale(session, collection, key):
            data, version = await real_read(session, collection, key)
            return data, version - 1

        monkeypatch.setattr(store, "_read", always_stale)
        with pytest.raises(ConflictError):
            await store.transaction("counters", "c", lambda doc: ({"count": 99}, None))

        monkeypatch.undo()
        assert await store.get("counters", "c") == {"count": 5}


class TestFailures:
    async def test_driver_errors_become_store_errors(self, store: SqlDocumentStore, monkeypatch):
        async def broken(*_args, **_kwargs):
            raise OperationalError("SELECT", {}, Exception("database is gone"))

        monkeypatch.setattr(store, "_read", broken)
        with pytest.raises(StoreError):
            await store.get("things", "a")

    async def test_max_attempts_must_be_positive(self, store: SqlDocumentStore):
        with pytest.raises(ValueError):
            SqlDocumentStore(store._session_factory, max_attempts=0)

