"""Document store backed by the ``documents`` table.

Records are JSON documents addressed by ``(collection, key)``. Reads and blind
writes are plain statements; read-decide-write sequences go through
``transaction()``, which uses the row ``version`` as a compare-and-swap token:

1. read the document and its version
2. let the caller compute the next document (pure, synchronous)
3. ``UPDATE ... WHERE version = <read version>`` (or INSERT when absent)
4. zero rows affected / duplicate key -> someone else won; re-read and retry

Retries are bounded by ``max_attempts``; when they run out a ConflictError is
raised and nothing is written.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trivia.db.models import Document
from trivia.errors import ConflictError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Doc = dict[str, Any]
Apply = Callable[[Doc | None], tuple[Doc | None, T]]

_documents = Document.__table__

# Collection names
USER_DAILY_QUIZ = "user_daily_quiz"
USER_PROGRESSION = "user_progression"
LEADERBOARD_ENTRIES = "leaderboard_entries"


class DocumentStore(Protocol):
    """Operations the services need from the document store."""

    async def get(self, collection: str, key: str) -> Doc | None: ...

    async def set(self, collection: str, key: str, data: Doc) -> None: ...

    async def update(self, collection: str, key: str, partial: Doc) -> Doc: ...

    async def query(
        self,
        collection: str,
        where: dict[str, str] | None = None,
        on_or_after: dict[str, str] | None = None,
    ) -> list[Doc]: ...

    async def transaction(self, collection: str, key: str, apply: Apply[T]) -> T: ...


class SqlDocumentStore:
    """DocumentStore over async SQLAlchemy (PostgreSQL JSONB in production)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 2,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._session_factory = session_factory
        self._max_attempts = max_attempts

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Document store failure: %s", exc)
            msg = "Document store unavailable"
            raise StoreError(msg) from exc

    async def get(self, collection: str, key: str) -> Doc | None:
        """Return the document or None when absent."""
        async with self._session() as session:
            current = await self._read(session, collection, key)
        return current[0] if current else None

    async def set(self, collection: str, key: str, data: Doc) -> None:
        """Create or fully replace a document."""
        await self.transaction(collection, key, lambda _current: (dict(data), None))

    async def update(self, collection: str, key: str, partial: Doc) -> Doc:
        """Merge top-level fields into an existing document and return it."""

        def merge(current: Doc | None) -> tuple[Doc, Doc]:
            if current is None:
                raise NotFoundError("Document", f"{collection}/{key}")
            merged = {**current, **partial}
            return merged, merged

        return await self.transaction(collection, key, merge)

    async def query(
        self,
        collection: str,
        where: dict[str, str] | None = None,
        on_or_after: dict[str, str] | None = None,
    ) -> list[Doc]:
        """Return documents whose string fields match ``where`` and sort at or
        after the ``on_or_after`` bounds (ISO dates compare lexicographically)."""
        stmt = select(Document.data).where(Document.collection == collection)
        for field, value in (where or {}).items():
            stmt = stmt.where(Document.data[field].as_string() == value)
        for field, value in (on_or_after or {}).items():
            stmt = stmt.where(Document.data[field].as_string() >= value)
        stmt = stmt.order_by(Document.key)

        async with self._session() as session:
            result = await session.execute(stmt)
            return [row.data for row in result]

    async def transaction(self, collection: str, key: str, apply: Apply[T]) -> T:
        """Atomically read, decide and write one document.

        ``apply`` receives the current document (or None) and returns
        ``(new_document_or_None, result)``. Returning None as the document skips
        the write. ``apply`` may run more than once and must not have side
        effects.
        """
        for attempt in range(1, self._max_attempts + 1):
            async with self._session() as session:
                current = await self._read(session, collection, key)
                data, version = current if current else (None, None)
                new_data, result = apply(data)
                if new_data is None:
                    return result
                if await self._write(session, collection, key, new_data, version):
                    return result
            logger.info(
                "Write conflict on %s/%s (attempt %d/%d)",
                collection, key, attempt, self._max_attempts,
            )

        msg = f"Concurrent update on {collection}/{key}, retry the request"
        raise ConflictError(msg)

    async def _read(self, session: AsyncSession, collection: str, key: str) -> tuple[Doc, int] | None:
        result = await session.execute(
            select(Document.data, Document.version).where(
                Document.collection == collection,
                Document.key == key,
            )
        )
        row = result.one_or_none()
        if row is None:
            return None
        return dict(row.data), row.version

    async def _write(
        self,
        session: AsyncSession,
        collection: str,
        key: str,
        data: Doc,
        expected_version: int | None,
    ) -> bool:
        """Write ``data`` if the stored version is still ``expected_version``.

        Returns False when another writer got there first.
        """
        now = datetime.now(timezone.utc)
        if expected_version is None:
            try:
                await session.execute(
                    insert(_documents).values(
                        collection=collection,
                        key=key,
                        data=data,
                        version=1,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

        result = await session.execute(
            update(_documents)
            .where(
                _documents.c.collection == collection,
                _documents.c.key == key,
                _documents.c.version == expected_version,
            )
            .values(data=data, version=expected_version + 1, updated_at=now)
        )
        if result.rowcount != 1:
            await session.rollback()
            return False
        await session.commit()
        return True
