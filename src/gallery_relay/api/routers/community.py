from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.api.deps import db_session
from gallery_relay.db.repositories.community import CommunityCardRepo

router = APIRouter(prefix="/api", tags=["community"])


class CommunityFeedResponse(BaseModel):
    galleries: list[dict[str, Any]]


@router.get("/community", response_model=CommunityFeedResponse)
async def community_feed(
    deck_type: str | None = Query(default=None, alias="deckType"),
    session: AsyncSession = Depends(db_session),
) -> CommunityFeedResponse:
    # Rows are returned with their storage column names (snake_case).
    cards = await CommunityCardRepo(session).list_recent(deck_type=(deck_type or "").strip() or None)
    return CommunityFeedResponse(
        galleries=[
            {
                "id": str(card.id),
                "card_number": card.card_number,
                "deck_type": card.deck_type,
                "frames": card.frames,
                "gif_url": card.gif_url,
                "video_url": card.video_url,
                "author": card.author,
                "timestamp": card.timestamp,
                "model": card.model,
                "prompt": card.prompt,
                "deck_prompt_suffix": card.deck_prompt_suffix,
                "deck_id": card.deck_id,
                "deck_name": card.deck_name,
                "deck_description": card.deck_description,
            }
            for card in cards
        ]
    )
