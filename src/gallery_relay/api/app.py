"""
gallery_relay.api.app

FastAPI app factory for the gallery relay service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory,
  outbound http client, master identity, upload guard).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from gallery_relay import __version__
from gallery_relay.api.errors import install_error_handlers
from gallery_relay.api.routers.community import router as community_router
from gallery_relay.api.routers.delegation import router as delegation_router
from gallery_relay.api.routers.galleries import router as galleries_router
from gallery_relay.api.routers.health import router as health_router
from gallery_relay.api.routers.uploads import router as uploads_router
from gallery_relay.db.init_db import init_db
from gallery_relay.db.session import create_engine, create_sessionmaker
from gallery_relay.identity.bootstrap import IdentityProvider
from gallery_relay.observability.logging import configure_logging, get_logger
from gallery_relay.observability.middleware import RequestContextMiddleware
from gallery_relay.settings import Settings
from gallery_relay.uploads.guard import UploadGuard
from gallery_relay.uploads.limits import UploadLimits
from gallery_relay.uploads.ratelimit import (
    DatabaseRateLimitStore,
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
)

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    http_transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Create the async DB engine and session factory once and stash them on app.state.
        # Routers obtain sessions via dependencies (see `gallery_relay.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)

        # One outbound client for remote media and storage; per-call timeouts are set by callers.
        app.state.http = httpx.AsyncClient(transport=http_transport, follow_redirects=False)

        app.state.identity = IdentityProvider(settings)
        app.state.identity.load()

        store: RateLimitStore
        if settings.rate_limit_backend == "database":
            store = DatabaseRateLimitStore(app.state.sessionmaker)
        else:
            store = InMemoryRateLimitStore()
        app.state.upload_guard = UploadGuard(
            limits=UploadLimits.from_settings(settings),
            rate_limiter=RateLimiter(
                store=store,
                window_seconds=settings.rate_limit_window_seconds,
                max_requests=settings.rate_limit_max_requests,
                clock=clock,
            ),
            upload_token=settings.upload_token,
        )
        try:
            yield
        finally:
            await app.state.http.aclose()
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Gallery Relay",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    install_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(delegation_router)
    app.include_router(uploads_router)
    app.include_router(galleries_router)
    app.include_router(community_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; business logic stays
# in routers/services/identity layers.
