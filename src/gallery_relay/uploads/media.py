"""
gallery_relay.uploads.media

Turns card media sources into bytes ready for storage.

Responsibilities:
- Decode `data:<mime>;base64,<payload>` URLs.
- Fetch allow-listed remote URLs with a timeout, no redirects and a
  streamed size cap.
- Enforce per-asset and per-request byte ceilings and the coarse media
  category expected by each card slot.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

import httpx

from gallery_relay.errors import (
    PayloadTooLargeError,
    UpstreamServiceError,
    UpstreamTimeoutError,
    ValidationError,
)
from gallery_relay.uploads.budget import ByteBudget
from gallery_relay.uploads.limits import UploadLimits
from gallery_relay.uploads.ssrf import assert_allowed_remote_url, is_data_url

_DATA_URL = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
}
_KNOWN_SUFFIXES = frozenset(_EXTENSIONS.values())
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class MediaKind(str, Enum):
    image = "image"
    video = "video"


@dataclass(frozen=True, slots=True)
class MediaAsset:
    data: bytes
    content_type: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)


def mime_to_extension(mime: str) -> str:
    return _EXTENSIONS.get(mime.split(";", 1)[0].strip().lower(), ".bin")


def extension_from_url(url: str) -> str | None:
    path = urlsplit(url).path.lower()
    for suffix in _KNOWN_SUFFIXES:
        if path.endswith(suffix):
            return suffix
    return None


def assert_expected_media_type(content_type: str, expected: MediaKind, *, field: str | None = None) -> None:
    mime = content_type.split(";", 1)[0].strip().lower()
    if expected is MediaKind.image and mime.startswith("image/"):
        return
    if expected is MediaKind.video and (mime.startswith("video/") or mime == DEFAULT_CONTENT_TYPE):
        return
    raise ValidationError(f"Expected {expected.value} media but received {mime or 'unknown'}", field=field)


def decode_data_url(url: str, *, max_bytes: int, field: str | None = None) -> MediaAsset:
    match = _DATA_URL.match(url)
    if not match:
        raise ValidationError("Malformed data URL", field=field)
    mime = match.group(1).strip().lower()
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Malformed data URL payload", field=field) from e
    if not data:
        raise ValidationError("Empty media payload", field=field)
    if len(data) > max_bytes:
        raise PayloadTooLargeError(f"Asset exceeds {max_bytes} bytes", field=field)
    return MediaAsset(data=data, content_type=mime, extension=mime_to_extension(mime))


class MediaFetcher:
    """
    Resolves one media source at a time against a shared `ByteBudget`.

    The http client is owned by the application; this class never closes it.
    """

    def __init__(self, *, http: httpx.AsyncClient, limits: UploadLimits) -> None:
        self._http = http
        self._limits = limits

    async def resolve(
        self,
        url: str,
        *,
        expected: MediaKind,
        budget: ByteBudget,
        field: str | None = None,
    ) -> MediaAsset:
        budget.ensure_available()
        if is_data_url(url):
            asset = decode_data_url(url, max_bytes=self._limits.max_single_asset_bytes, field=field)
        else:
            asset = await self.fetch_remote(url, budget=budget, field=field)
        assert_expected_media_type(asset.content_type, expected, field=field)
        budget.charge(asset.size)
        return asset

    async def fetch_remote(self, url: str, *, budget: ByteBudget, field: str | None = None) -> MediaAsset:
        assert_allowed_remote_url(url, self._limits.allowed_remote_hosts, field=field)
        max_bytes = self._limits.max_single_asset_bytes
        timeout = self._limits.fetch_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                async with self._http.stream("GET", url, follow_redirects=False, timeout=timeout) as response:
                    if not response.is_success:
                        raise ValidationError(f"Remote fetch failed with status {response.status_code}", field=field)

                    declared = response.headers.get("content-length")
                    if declared is not None and declared.isdigit():
                        size = int(declared)
                        if size > max_bytes:
                            raise PayloadTooLargeError(f"Asset exceeds {max_bytes} bytes", field=field)
                        budget.ensure_available(size)

                    # Stop reading as soon as the aggregate allowance is spent.
                    cap = min(max_bytes, budget.remaining)
                    chunks: list[bytes] = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > max_bytes:
                            raise PayloadTooLargeError(f"Asset exceeds {max_bytes} bytes", field=field)
                        if received > cap:
                            budget.ensure_available(received)
                        chunks.append(chunk)

                    content_type = response.headers.get("content-type", DEFAULT_CONTENT_TYPE)
        except TimeoutError as e:
            raise UpstreamTimeoutError(f"Timed out after {timeout:g}s", field=field) from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Timed out after {timeout:g}s", field=field) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"remote fetch failed: {e!r}", field=field) from e

        data = b"".join(chunks)
        if not data:
            raise ValidationError("Empty media payload", field=field)
        mime = content_type.split(";", 1)[0].strip().lower() or DEFAULT_CONTENT_TYPE
        extension = extension_from_url(url) if mime == DEFAULT_CONTENT_TYPE else None
        return MediaAsset(data=data, content_type=mime, extension=extension or mime_to_extension(mime))


# --- Module Notes -----------------------------------------------------------
# Remote hosts are re-validated here even though the guard already checked
# them, so the fetcher is safe to call on its own.
