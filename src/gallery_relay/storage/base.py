from __future__ import annotations

from typing import Protocol


class StorageBackend(Protocol):
    async def put(self, path: str, data: bytes, *, content_type: str) -> str:
        """Write a new object (never overwrite) and return its public URL."""
        ...


def public_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
