from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gallery_relay.db.models import RateLimitHit


class RateLimitHitRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def prune(self, *, before: float) -> None:
        # Expired rows are dropped for every key, not only the one being checked.
        await self._session.execute(delete(RateLimitHit).where(RateLimitHit.at <= before))

    async def count(self, *, key: str) -> int:
        stmt = select(func.count()).select_from(RateLimitHit).where(RateLimitHit.key == key)
        return int((await self._session.execute(stmt)).scalar_one())

    async def add(self, *, key: str, at: float) -> None:
        self._session.add(RateLimitHit(key=key, at=at))
        await self._session.flush()
