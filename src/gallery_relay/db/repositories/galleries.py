"""
gallery_relay.db.repositories.galleries

Repositories for the gallery registry.

Responsibilities:
- Upsert per-locator metadata records.
- Maintain the score-ordered index and serve ranged, newest-first reads.
- Batch-resolve metadata for a slice of locators in one query.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.db.models import GalleryIndexEntry, GalleryMetadata


class GalleryMetadataRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        *,
        locator: str,
        author: str | None,
        card_count: int,
        deck_types: list[str],
        timestamp: int,
    ) -> GalleryMetadata:
        existing = await self._session.get(GalleryMetadata, locator)
        if existing is not None:
            existing.author = author
            existing.card_count = card_count
            existing.deck_types = list(deck_types)
            existing.timestamp = timestamp
            await self._session.flush()
            return existing

        meta = GalleryMetadata(
            locator=locator,
            author=author,
            card_count=card_count,
            deck_types=list(deck_types),
            timestamp=timestamp,
        )
        self._session.add(meta)
        await self._session.flush()
        return meta

    async def get(self, locator: str) -> GalleryMetadata | None:
        return await self._session.get(GalleryMetadata, locator)

    async def get_many(self, locators: Sequence[str]) -> dict[str, GalleryMetadata]:
        if not locators:
            return {}
        stmt = select(GalleryMetadata).where(GalleryMetadata.locator.in_(list(locators)))
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.locator: row for row in rows}


class GalleryIndexRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, *, locator: str, score: int) -> None:
        entry = await self._session.get(GalleryIndexEntry, locator)
        if entry is None:
            self._session.add(GalleryIndexEntry(locator=locator, score=score))
        else:
            entry.score = score
        await self._session.flush()

    async def count(self) -> int:
        return int((await self._session.execute(select(func.count()).select_from(GalleryIndexEntry))).scalar_one())

    async def range_desc(self, *, offset: int, limit: int) -> list[str]:
        # Highest score first; equal scores fall back to reverse locator order.
        stmt = (
            select(GalleryIndexEntry.locator)
            .order_by(desc(GalleryIndexEntry.score), desc(GalleryIndexEntry.locator))
            .offset(offset)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Callers own commits; `GalleryService.register` commits metadata before
# touching the index.
