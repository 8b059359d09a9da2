"""
gallery_relay.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and the shared
  http client.
- Encapsulate app.state access patterns (engine/sessionmaker/identity).
- Assemble per-request services from process-wide components.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery_relay.identity.bootstrap import IdentityProvider
from gallery_relay.services.gallery_service import GalleryService
from gallery_relay.services.upload_service import UploadService
from gallery_relay.settings import Settings
from gallery_relay.storage.base import StorageBackend
from gallery_relay.storage.factory import build_storage
from gallery_relay.uploads.guard import UploadGuard
from gallery_relay.uploads.limits import UploadLimits
from gallery_relay.uploads.media import MediaFetcher


def settings_dep(request: Request) -> Settings:
    # Settings are fixed per app instance in `gallery_relay.api.app.create_app`.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `gallery_relay.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http  # type: ignore[attr-defined]


def identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity  # type: ignore[attr-defined]


def upload_guard(request: Request) -> UploadGuard:
    return request.app.state.upload_guard  # type: ignore[attr-defined]


def clock_ms() -> Callable[[], int]:
    # Overridden in tests to pin registration timestamps.
    return lambda: int(time.time() * 1000)


def upload_limits(settings: Settings = Depends(settings_dep)) -> UploadLimits:
    return UploadLimits.from_settings(settings)


def storage_backend(
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(http_client),
) -> StorageBackend:
    return build_storage(settings, http=http)


def media_fetcher(
    limits: UploadLimits = Depends(upload_limits),
    http: httpx.AsyncClient = Depends(http_client),
) -> MediaFetcher:
    return MediaFetcher(http=http, limits=limits)


def upload_service(
    session: AsyncSession = Depends(db_session),
    storage: StorageBackend = Depends(storage_backend),
    fetcher: MediaFetcher = Depends(media_fetcher),
    limits: UploadLimits = Depends(upload_limits),
    now_ms: Callable[[], int] = Depends(clock_ms),
) -> UploadService:
    return UploadService(
        session=session,
        storage=storage,
        fetcher=fetcher,
        max_total_bytes=limits.max_total_asset_bytes,
        clock_ms=now_ms,
    )


def gallery_service(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> GalleryService:
    return GalleryService(session=session, gateway_base_url=settings.gateway_base_url)


# --- Module Notes -----------------------------------------------------------
# Storage is built per request, so a misconfigured backend fails only the
# upload route (500, before the guard runs).
