"""
gallery_relay.storage.supabase

HTTP client boundary for Supabase Storage.

Responsibilities:
- Authenticate with the service-role key.
- Upload objects with `x-upsert: false` so existing paths are never replaced.
- Translate transport and status failures into typed upstream errors.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from gallery_relay.errors import UpstreamServiceError, UpstreamTimeoutError
from gallery_relay.storage.base import public_url


class SupabaseStorage:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        supabase_url: str,
        service_key: str,
        bucket: str,
        public_base_url: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._http = http
        self._endpoint = f"{supabase_url.rstrip('/')}/storage/v1/object/{quote(bucket, safe='')}"
        self._service_key = service_key
        self._public_base_url = public_base_url
        self._timeout = timeout_seconds

    def _headers(self, content_type: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
            "Content-Type": content_type,
            "x-upsert": "false",
        }

    async def put(self, path: str, data: bytes, *, content_type: str) -> str:
        try:
            r = await self._http.post(
                f"{self._endpoint}/{quote(path)}",
                content=data,
                headers=self._headers(content_type),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"storage write timed out for {path}") from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"storage write failed for {path}: {e!r}") from e

        if r.is_error:
            # 409 (duplicate) lands here too; paths are unique per request.
            raise UpstreamServiceError(f"storage write failed for {path}: {r.status_code} {r.text[:200]}")
        return public_url(self._public_base_url, path)


# --- Module Notes -----------------------------------------------------------
# Retries are left to the caller; an upload is one attempt per object.
