"""
gallery_relay.api.routers.galleries

Gallery registry endpoints.

Responsibilities:
- Register a published gallery after the client's content-addressed upload.
- Paginated newest-first listing.
- Single-gallery lookup with its gateway URL.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gallery_relay.api.deps import clock_ms, gallery_service
from gallery_relay.db.models import LOCATOR_MAX_LENGTH, GalleryMetadata
from gallery_relay.services.gallery_service import GalleryService

router = APIRouter(prefix="/api/galleries", tags=["galleries"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterGalleryRequest(CamelModel):
    locator: str = Field(min_length=1, max_length=LOCATOR_MAX_LENGTH)
    author: str | None = Field(default=None, max_length=50)
    card_count: int = Field(ge=1, le=100, strict=True)
    deck_types: list[str] = Field(min_length=1, max_length=10)


class RegisterGalleryResponse(CamelModel):
    success: bool = True
    locator: str
    timestamp: int


class GallerySummary(CamelModel):
    locator: str
    author: str | None = None
    card_count: int
    deck_types: list[str]
    timestamp: int


class GalleryListResponse(CamelModel):
    galleries: list[GallerySummary]
    total: int
    has_more: bool


class GalleryMetadataView(CamelModel):
    author: str | None = None
    card_count: int
    deck_types: list[str]
    timestamp: int


class GalleryDetailResponse(CamelModel):
    locator: str
    resolved_url: str
    metadata: GalleryMetadataView


def _summary(meta: GalleryMetadata) -> GallerySummary:
    return GallerySummary(
        locator=meta.locator,
        author=meta.author or None,
        card_count=meta.card_count,
        deck_types=list(meta.deck_types),
        timestamp=meta.timestamp,
    )


@router.post("", response_model=RegisterGalleryResponse, response_model_by_alias=True)
async def register_gallery(
    body: RegisterGalleryRequest,
    service: GalleryService = Depends(gallery_service),
    now_ms: Callable[[], int] = Depends(clock_ms),
) -> RegisterGalleryResponse:
    # Score is always server time; clients cannot reorder the registry.
    timestamp = now_ms()
    await service.register(
        locator=body.locator,
        author=body.author,
        card_count=body.card_count,
        deck_types=body.deck_types,
        timestamp=timestamp,
    )
    return RegisterGalleryResponse(locator=body.locator, timestamp=timestamp)


@router.get("", response_model=GalleryListResponse, response_model_by_alias=True)
async def list_galleries(
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    service: GalleryService = Depends(gallery_service),
) -> GalleryListResponse:
    page = await service.list(limit=limit, offset=offset)
    return GalleryListResponse(
        galleries=[_summary(meta) for meta in page.galleries],
        total=page.total,
        has_more=page.has_more,
    )


@router.get(
    "/{locator}",
    response_model=GalleryDetailResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def get_gallery(
    locator: str,
    service: GalleryService = Depends(gallery_service),
) -> GalleryDetailResponse:
    meta, resolved_url = await service.get(locator)
    return GalleryDetailResponse(
        locator=meta.locator,
        resolved_url=resolved_url,
        metadata=GalleryMetadataView(
            author=meta.author or None,
            card_count=meta.card_count,
            deck_types=list(meta.deck_types),
            timestamp=meta.timestamp,
        ),
    )


# --- Module Notes -----------------------------------------------------------
# The gallery content itself lives on the content-addressed network; this
# registry only stores discovery metadata.
