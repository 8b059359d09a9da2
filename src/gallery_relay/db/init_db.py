"""
gallery_relay.db.init_db

Creates the registry, community and rate-limit tables for dev/test runs.
Production schemas are managed with Alembic.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from gallery_relay.db import models  # noqa: F401  # register tables on Base.metadata
from gallery_relay.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
