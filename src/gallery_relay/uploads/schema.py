"""
gallery_relay.uploads.schema

Request schema for the media upload endpoint.

Responsibilities:
- Define the card/payload models (camelCase on the wire).
- Enforce count, length and range bounds, including the limits that come
  from settings (max cards, max URL length) via validation context.
- Report the first violation with its dotted field path.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from gallery_relay.errors import ValidationError
from gallery_relay.uploads.limits import UploadLimits

MAX_FRAMES_PER_CARD = 12
MAX_TIMESTAMP_MS = 9_999_999_999_999


DeckType = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]
ShortText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=120)]
Label = Annotated[str, StringConstraints(strip_whitespace=True, max_length=160)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=4000)]
PromptText = Annotated[str, StringConstraints(max_length=20000)]
MediaUrl = Annotated[str, StringConstraints(min_length=1)]


def _limits(info: ValidationInfo) -> UploadLimits:
    context = info.context or {}
    return context.get("limits") or UploadLimits()


class UploadCard(BaseModel):
    # Unknown card-level fields are tolerated (and ignored downstream).
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    card_number: int = Field(ge=0, le=500, strict=True)
    deck_type: DeckType
    frames: list[MediaUrl] = Field(min_length=1, max_length=MAX_FRAMES_PER_CARD)
    gif_url: MediaUrl | None = None
    video_url: MediaUrl | None = None
    timestamp: int | None = Field(default=None, gt=0, le=MAX_TIMESTAMP_MS, strict=True)
    model: Label | None = None
    author: ShortText | None = None
    deck_id: ShortText | None = None
    deck_name: Label | None = None
    deck_description: Description | None = None
    prompt: PromptText | None = None
    deck_prompt_suffix: PromptText | None = None

    @field_validator("frames")
    @classmethod
    def _frame_lengths(cls, frames: list[str], info: ValidationInfo) -> list[str]:
        max_length = _limits(info).max_url_length
        for frame in frames:
            if len(frame) > max_length:
                raise ValueError(f"frame URL exceeds {max_length} characters")
        return frames

    @field_validator("gif_url", "video_url")
    @classmethod
    def _url_length(cls, value: str | None, info: ValidationInfo) -> str | None:
        max_length = _limits(info).max_url_length
        if value is not None and len(value) > max_length:
            raise ValueError(f"URL exceeds {max_length} characters")
        return value


class UploadPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cards: list[UploadCard] = Field(min_length=1)

    @field_validator("cards")
    @classmethod
    def _card_count(cls, cards: list[UploadCard], info: ValidationInfo) -> list[UploadCard]:
        max_cards = _limits(info).max_cards_per_request
        if len(cards) > max_cards:
            raise ValueError(f"at most {max_cards} cards per request")
        return cards


def first_error(exc: PydanticValidationError) -> tuple[str, str]:
    issue = exc.errors()[0]
    location = ".".join(str(part) for part in issue.get("loc", ())) or "body"
    return location, issue.get("msg", "unknown error")


def parse_payload(body: bytes | str | Any, limits: UploadLimits) -> UploadPayload:
    if isinstance(body, (bytes, str)):
        try:
            body = json.loads(body)
        except ValueError as e:
            raise ValidationError("Request body must be valid JSON", field="body") from e
    try:
        return UploadPayload.model_validate(body, context={"limits": limits})
    except PydanticValidationError as e:
        location, message = first_error(e)
        raise ValidationError(f'Invalid payload at "{location}": {message}', field=location) from e


# --- Module Notes -----------------------------------------------------------
# The guard calls `parse_payload` only after authorization and rate limiting.
