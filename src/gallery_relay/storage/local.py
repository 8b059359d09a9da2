from __future__ import annotations

import asyncio
from pathlib import Path

from gallery_relay.errors import UpstreamServiceError, ValidationError
from gallery_relay.storage.base import public_url


class LocalStorage:
    """Directory-backed storage for development; objects are created exclusively."""

    def __init__(self, *, root: str | Path, public_base_url: str) -> None:
        self._root = Path(root).resolve()
        self._public_base_url = public_base_url

    def _target(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root):
            raise ValidationError("Storage path escapes the storage root")
        return target

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("xb") as fh:
            fh.write(data)

    async def put(self, path: str, data: bytes, *, content_type: str) -> str:
        target = self._target(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except FileExistsError as e:
            raise UpstreamServiceError(f"object already exists: {path}") from e
        except OSError as e:
            raise UpstreamServiceError(f"storage write failed for {path}: {e!r}") from e
        return public_url(self._public_base_url, path)
