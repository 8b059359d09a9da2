"""
gallery_relay.uploads.guard

Admission checks for the upload endpoint.

Responsibilities:
- Authorize the caller against the configured upload token.
- Rate limit per client address.
- Validate the payload schema and each card's media-source policy.

The guard performs no network or storage I/O; everything it rejects is
rejected before the first byte is fetched or written.
"""

from __future__ import annotations

import hmac
from collections.abc import Mapping

import structlog

from gallery_relay.errors import AuthorizationError, GalleryRelayError, ValidationError
from gallery_relay.observability.logging import get_logger
from gallery_relay.uploads.limits import UploadLimits
from gallery_relay.uploads.ratelimit import RateLimiter
from gallery_relay.uploads.schema import UploadPayload, parse_payload
from gallery_relay.uploads.ssrf import assert_allowed_remote_url, is_data_url

log = get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


def client_address(headers: Mapping[str, str], peer: str | None) -> str:
    forwarded = headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",", 1)[0].strip()
    if first_hop:
        return first_hop
    real_ip = headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return peer or UNKNOWN_CLIENT


def presented_token(headers: Mapping[str, str]) -> str | None:
    authorization = headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    token = headers.get("x-upload-token", "").strip()
    return token or None


def validate_media_sources(payload: UploadPayload, limits: UploadLimits) -> None:
    for index, card in enumerate(payload.cards):
        for frame_index, frame in enumerate(card.frames):
            if not is_data_url(frame):
                raise ValidationError("Frames must be data URLs", field=f"cards.{index}.frames.{frame_index}")
        if card.gif_url is not None and not is_data_url(card.gif_url):
            raise ValidationError("gifUrl must be a data URL", field=f"cards.{index}.gifUrl")
        if card.video_url is not None and not is_data_url(card.video_url):
            assert_allowed_remote_url(card.video_url, limits.allowed_remote_hosts, field=f"cards.{index}.videoUrl")


class UploadGuard:
    def __init__(
        self,
        *,
        limits: UploadLimits,
        rate_limiter: RateLimiter,
        upload_token: str | None = None,
    ) -> None:
        self._limits = limits
        self._rate_limiter = rate_limiter
        self._upload_token = upload_token or None

    def authorize(self, headers: Mapping[str, str]) -> None:
        # No configured token means the endpoint is open.
        if self._upload_token is None:
            return
        token = presented_token(headers)
        if token is None or not hmac.compare_digest(token.encode(), self._upload_token.encode()):
            raise AuthorizationError("missing or mismatched upload token")

    async def admit(self, *, headers: Mapping[str, str], peer: str | None, body: bytes) -> UploadPayload:
        client_ip = client_address(headers, peer)
        structlog.contextvars.bind_contextvars(client_ip=client_ip)
        try:
            self.authorize(headers)
            await self._rate_limiter.check(client_ip)
            payload = parse_payload(body, self._limits)
            validate_media_sources(payload, self._limits)
        except GalleryRelayError as e:
            log.warning("upload.rejected", code=e.code.value, status=e.status_code, field=e.field, reason=e.detail)
            raise
        return payload


# --- Module Notes -----------------------------------------------------------
# `client_address` trusts X-Forwarded-For as set by the fronting proxy; deploy
# behind one that overwrites the header rather than appending to it.
