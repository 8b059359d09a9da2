"""
gallery_relay.api.routers.health

Health, readiness and keepalive endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with DB connectivity validation.
- Provide a cron-authenticated keepalive (`/api/keepalive`) that touches the
  community table so idle databases are not paused.
"""

from __future__ import annotations

import hmac
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.api.deps import db_session, settings_dep
from gallery_relay.db.models import CommunityCard
from gallery_relay.db.repositories.community import CommunityCardRepo
from gallery_relay.errors import AuthorizationError, ConfigurationError
from gallery_relay.settings import Settings

router = APIRouter()


class KeepaliveResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    table: str
    count: int
    duration_ms: int
    timestamp: str


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    # Readiness: verify critical dependency (DB) is reachable.
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get("/api/keepalive", response_model=KeepaliveResponse, response_model_by_alias=True)
async def keepalive(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> KeepaliveResponse:
    if not settings.cron_secret:
        raise ConfigurationError("GALLERY_CRON_SECRET not configured")
    provided = _bearer_token(request)
    if provided is None or not hmac.compare_digest(provided.encode(), settings.cron_secret.encode()):
        raise AuthorizationError("missing or mismatched cron secret")

    started = time.monotonic()
    count = await CommunityCardRepo(session).count()
    response.headers["Cache-Control"] = "no-store"
    return KeepaliveResponse(
        table=CommunityCard.__tablename__,
        count=count,
        duration_ms=int((time.monotonic() - started) * 1000),
        timestamp=datetime.now(tz=UTC).isoformat(),
    )


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating;
# /api/keepalive is meant for an external scheduler.
