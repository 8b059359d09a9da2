"""
gallery_relay.db.models

Persistence schema.

Responsibilities:
- GalleryMetadata: per-locator metadata of a published gallery.
- GalleryIndexEntry: score-ordered index (score = registration time in ms).
- CommunityCard: one uploaded card as listed by the community feed.
- RateLimitHit: shared sliding-window counters for multi-replica deployments.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, BigInteger, Float, Index, Integer, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from gallery_relay.db.base import Base

LOCATOR_MAX_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.utcnow()


class GalleryMetadata(Base):
    __tablename__ = "gallery_metadata"

    locator: Mapped[str] = mapped_column(String(LOCATOR_MAX_LENGTH), primary_key=True)
    author: Mapped[str | None] = mapped_column(String(50), nullable=True)
    card_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # Ordered as submitted.
    deck_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class GalleryIndexEntry(Base):
    __tablename__ = "gallery_index"

    # One member per locator; re-registration moves the member, never duplicates it.
    locator: Mapped[str] = mapped_column(String(LOCATOR_MAX_LENGTH), primary_key=True)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_gallery_index_score_locator", "score", "locator"),)


class CommunityCard(Base):
    __tablename__ = "community_cards"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    card_number: Mapped[int] = mapped_column(Integer, nullable=False)
    deck_type: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    frames: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    gif_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    author: Mapped[str | None] = mapped_column(String(120), nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    model: Mapped[str | None] = mapped_column(String(160), nullable=True)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    deck_prompt_suffix: Mapped[str | None] = mapped_column(Text, nullable=True)
    deck_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    deck_name: Mapped[str] = mapped_column(String(160), nullable=False)
    deck_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class RateLimitHit(Base):
    __tablename__ = "rate_limit_hits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    at: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("ix_rate_limit_hits_key_at", "key", "at"),
        Index("ix_rate_limit_hits_at", "at"),
    )


# --- Module Notes -----------------------------------------------------------
# Gallery metadata and index are separate tables so the two registration
# writes stay independent, mirroring a hash + sorted-set layout.
