"""
gallery_relay.api.routers.uploads

Guarded media upload endpoint.

Responsibilities:
- Run the upload guard (token, rate limit, schema, media policy).
- Hand the admitted payload to the upload service and return public URLs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gallery_relay.api.deps import upload_guard, upload_service
from gallery_relay.services.upload_service import UploadService
from gallery_relay.uploads.guard import UploadGuard

router = APIRouter(prefix="/api", tags=["uploads"])


class UploadedCardResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    card_number: int
    deck_type: str
    frames: list[str]
    gif_url: str | None = None
    video_url: str | None = None


class UploadResponse(BaseModel):
    uploaded: list[UploadedCardResponse]


@router.post(
    "/uploads",
    response_model=UploadResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def upload_cards(
    request: Request,
    guard: UploadGuard = Depends(upload_guard),
    service: UploadService = Depends(upload_service),
) -> UploadResponse:
    # The raw body is parsed by the guard so auth and rate limiting run first.
    payload = await guard.admit(
        headers=request.headers,
        peer=request.client.host if request.client else None,
        body=await request.body(),
    )
    uploaded = await service.upload(payload)
    return UploadResponse(
        uploaded=[
            UploadedCardResponse(
                card_number=card.card_number,
                deck_type=card.deck_type,
                frames=card.frames,
                gif_url=card.gif_url,
                video_url=card.video_url,
            )
            for card in uploaded
        ]
    )
