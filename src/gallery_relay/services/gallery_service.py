"""
gallery_relay.services.gallery_service

Gallery registry service (transaction owner for the registry tables).

Responsibilities:
- Register a published gallery: metadata first, then the ordered index.
- Serve newest-first pages with batch-resolved metadata.
- Resolve a single locator to its gateway URL and metadata.
"""

from __future__ import annotations

from dataclasses import dataclass

import nh3
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.db.models import LOCATOR_MAX_LENGTH, GalleryMetadata
from gallery_relay.db.repositories.galleries import GalleryIndexRepo, GalleryMetadataRepo
from gallery_relay.errors import NotFoundError, ValidationError
from gallery_relay.observability.logging import get_logger

log = get_logger(__name__)

AUTHOR_MAX_LENGTH = 50


def strip_markup(value: str | None) -> str | None:
    if value is None:
        return None
    # No tags survive; script and style bodies are dropped with their elements.
    cleaned = nh3.clean(value, tags=set()).strip()[:AUTHOR_MAX_LENGTH]
    return cleaned or None


def gateway_url(gateway_base_url: str, locator: str) -> str:
    return f"{gateway_base_url.rstrip('/')}/{locator}"


@dataclass(frozen=True, slots=True)
class GalleryPage:
    galleries: list[GalleryMetadata]
    total: int
    has_more: bool


class GalleryService:
    def __init__(self, *, session: AsyncSession, gateway_base_url: str) -> None:
        self._session = session
        self._gateway_base_url = gateway_base_url
        self._metadata = GalleryMetadataRepo(session)
        self._index = GalleryIndexRepo(session)

    async def register(
        self,
        *,
        locator: str,
        author: str | None,
        card_count: int,
        deck_types: list[str],
        timestamp: int,
    ) -> GalleryMetadata:
        meta = await self._metadata.upsert(
            locator=locator,
            author=strip_markup(author),
            card_count=card_count,
            deck_types=deck_types,
            timestamp=timestamp,
        )
        # Two separate writes; a failure between them leaves metadata without
        # an index entry, which listing never surfaces.
        await self._session.commit()
        await self._index.add(locator=locator, score=timestamp)
        await self._session.commit()

        log.info("gallery.registered", locator=locator, card_count=card_count, timestamp=timestamp)
        return meta

    async def list(self, *, limit: int, offset: int) -> GalleryPage:
        total = await self._index.count()
        if total == 0:
            return GalleryPage(galleries=[], total=0, has_more=False)

        locators = await self._index.range_desc(offset=offset, limit=limit)
        if not locators:
            return GalleryPage(galleries=[], total=total, has_more=False)

        found = await self._metadata.get_many(locators)
        # Index members without metadata are skipped.
        galleries = [found[loc] for loc in locators if loc in found]
        return GalleryPage(galleries=galleries, total=total, has_more=offset + limit < total)

    async def get(self, locator: str) -> tuple[GalleryMetadata, str]:
        if not locator:
            raise ValidationError("Invalid locator parameter", field="locator")
        if len(locator) > LOCATOR_MAX_LENGTH:
            raise ValidationError(f"locator too long (max {LOCATOR_MAX_LENGTH} chars)", field="locator")

        meta = await self._metadata.get(locator)
        if meta is None:
            raise NotFoundError("Gallery not found")
        return meta, gateway_url(self._gateway_base_url, locator)


# --- Module Notes -----------------------------------------------------------
# Re-registering a locator rewrites its metadata and moves its index entry to
# the new timestamp; it never creates a second entry.
