"""
gallery_relay.services.upload_service

Media relay service (transaction + storage owner for uploads).

Responsibilities:
- Resolve each card's assets in a fixed order (frames, gif, video).
- Write them to object storage under a per-request unique prefix.
- Record one community feed entry per stored card.
- Return the public locators for everything written.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.db.repositories.community import CommunityCardRepo
from gallery_relay.observability.logging import get_logger
from gallery_relay.storage.base import StorageBackend
from gallery_relay.uploads.budget import ByteBudget
from gallery_relay.uploads.media import MediaAsset, MediaFetcher, MediaKind
from gallery_relay.uploads.paths import build_card_path_prefix, frame_name, gif_name, video_name
from gallery_relay.uploads.schema import UploadCard, UploadPayload

log = get_logger(__name__)

DEFAULT_DECK_NAME = "Community Deck"


@dataclass(slots=True)
class UploadedCard:
    card_number: int
    deck_type: str
    frames: list[str] = field(default_factory=list)
    gif_url: str | None = None
    video_url: str | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


class UploadService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        storage: StorageBackend,
        fetcher: MediaFetcher,
        max_total_bytes: int,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._session = session
        self._storage = storage
        self._fetcher = fetcher
        self._max_total_bytes = max_total_bytes
        self._clock_ms = clock_ms
        self._community = CommunityCardRepo(session)

    async def _store(self, prefix: str, name: str, asset: MediaAsset) -> str:
        return await self._storage.put(f"{prefix}/{name}", asset.data, content_type=asset.content_type)

    async def _upload_card(
        self,
        card: UploadCard,
        *,
        index: int,
        request_id: str,
        budget: ByteBudget,
    ) -> UploadedCard:
        deck_id = card.deck_id or str(uuid.uuid4())
        timestamp = card.timestamp or self._clock_ms()
        prefix = build_card_path_prefix(
            deck_id=deck_id,
            deck_type=card.deck_type,
            card_number=card.card_number,
            timestamp=timestamp,
            request_id=request_id,
            card_index=index,
        )
        result = UploadedCard(card_number=card.card_number, deck_type=card.deck_type)

        for frame_index, frame in enumerate(card.frames):
            asset = await self._fetcher.resolve(
                frame, expected=MediaKind.image, budget=budget, field=f"cards.{index}.frames.{frame_index}"
            )
            result.frames.append(await self._store(prefix, frame_name(frame_index, asset.extension), asset))

        if card.gif_url:
            asset = await self._fetcher.resolve(
                card.gif_url, expected=MediaKind.image, budget=budget, field=f"cards.{index}.gifUrl"
            )
            result.gif_url = await self._store(prefix, gif_name(asset.extension), asset)

        if card.video_url:
            asset = await self._fetcher.resolve(
                card.video_url, expected=MediaKind.video, budget=budget, field=f"cards.{index}.videoUrl"
            )
            result.video_url = await self._store(prefix, video_name(asset.extension), asset)

        await self._community.add(
            card_number=card.card_number,
            deck_type=card.deck_type,
            frames=list(result.frames),
            gif_url=result.gif_url,
            video_url=result.video_url,
            author=card.author or None,
            timestamp=timestamp,
            model=card.model or None,
            prompt=card.prompt or None,
            deck_prompt_suffix=card.deck_prompt_suffix or None,
            deck_id=deck_id,
            deck_name=card.deck_name or DEFAULT_DECK_NAME,
            deck_description=card.deck_description or None,
        )
        # Committed per card: stored objects and their feed rows stay in step.
        await self._session.commit()
        return result

    async def upload(self, payload: UploadPayload) -> list[UploadedCard]:
        request_id = str(uuid.uuid4())
        budget = ByteBudget(self._max_total_bytes)
        log.info("upload.accepted", upload_id=request_id, card_count=len(payload.cards))

        uploaded: list[UploadedCard] = []
        for index, card in enumerate(payload.cards):
            uploaded.append(await self._upload_card(card, index=index, request_id=request_id, budget=budget))

        log.info("upload.completed", upload_id=request_id, uploaded_cards=len(uploaded), total_bytes=budget.used)
        return uploaded


# --- Module Notes -----------------------------------------------------------
# A failure part-way through leaves earlier objects in storage; nothing is
# rolled back and no retry is attempted. Paths are unique per request, so a
# client retry never collides with the orphans.
