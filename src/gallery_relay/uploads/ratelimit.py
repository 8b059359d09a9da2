"""
gallery_relay.uploads.ratelimit

Sliding-window rate limiting for the upload endpoint.

Responsibilities:
- Define the counter-store seam (`RateLimitStore`).
- Ship a process-local store (default) and a database-backed store that is
  shared by every replica pointing at the same database.
- Enforce the window/cap and raise `RateLimitError` when exceeded.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery_relay.db.repositories.rate_limits import RateLimitHitRepo
from gallery_relay.errors import RateLimitError


class RateLimitStore(Protocol):
    async def hit(self, key: str, *, now: float, window: float, limit: int) -> bool:
        """
        Drop entries older than `window`, then admit and record `now` unless
        `limit` entries remain. Returns whether the hit was admitted.
        """
        ...


class InMemoryRateLimitStore:
    """
    Process-local; each replica counts independently.

    Keys whose newest hit has left the window are swept at most once per
    window, so rotating keys cannot grow the map without bound.
    """

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float, window: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < window:
            return
        self._last_sweep = now
        stale = [key for key, recent in self._hits.items() if not recent or now - recent[-1] >= window]
        for key in stale:
            del self._hits[key]

    async def hit(self, key: str, *, now: float, window: float, limit: int) -> bool:
        async with self._lock:
            self._sweep(now, window)
            recent = self._hits.setdefault(key, deque())
            while recent and now - recent[0] >= window:
                recent.popleft()
            if len(recent) >= limit:
                return False
            recent.append(now)
            return True


class DatabaseRateLimitStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def hit(self, key: str, *, now: float, window: float, limit: int) -> bool:
        async with self._session_factory() as session:
            repo = RateLimitHitRepo(session)
            await repo.prune(before=now - window)
            if await repo.count(key=key) >= limit:
                await session.commit()
                return False
            await repo.add(key=key, at=now)
            await session.commit()
            return True


class RateLimiter:
    def __init__(
        self,
        *,
        store: RateLimitStore,
        window_seconds: float,
        max_requests: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._window = window_seconds
        self._max = max_requests
        self._clock = clock

    async def check(self, key: str) -> None:
        admitted = await self._store.hit(key, now=self._clock(), window=self._window, limit=self._max)
        if not admitted:
            raise RateLimitError(f"more than {self._max} requests in {self._window:g}s from {key}")


# --- Module Notes -----------------------------------------------------------
# The database store prunes, counts and inserts in one transaction; under
# heavy concurrency across replicas the cap can be exceeded by the number of
# simultaneous requests. A Redis-style atomic store can replace it behind the
# same protocol.
