from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.db.models import CommunityCard


class CommunityCardRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        card_number: int,
        deck_type: str,
        frames: list[str],
        gif_url: str | None,
        video_url: str | None,
        author: str | None,
        timestamp: int,
        model: str | None,
        prompt: str | None,
        deck_prompt_suffix: str | None,
        deck_id: str,
        deck_name: str,
        deck_description: str | None,
    ) -> CommunityCard:
        card = CommunityCard(
            card_number=card_number,
            deck_type=deck_type,
            frames=frames,
            gif_url=gif_url,
            video_url=video_url,
            author=author,
            timestamp=timestamp,
            model=model,
            prompt=prompt,
            deck_prompt_suffix=deck_prompt_suffix,
            deck_id=deck_id,
            deck_name=deck_name,
            deck_description=deck_description,
        )
        self._session.add(card)
        await self._session.flush()
        return card

    async def list_recent(self, *, deck_type: str | None = None) -> list[CommunityCard]:
        stmt = select(CommunityCard).order_by(desc(CommunityCard.timestamp))
        if deck_type:
            stmt = stmt.where(CommunityCard.deck_type == deck_type)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        return int((await self._session.execute(select(func.count()).select_from(CommunityCard))).scalar_one())
