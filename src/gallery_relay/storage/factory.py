from __future__ import annotations

import httpx

from gallery_relay.errors import ConfigurationError
from gallery_relay.settings import Settings
from gallery_relay.storage.base import StorageBackend
from gallery_relay.storage.local import LocalStorage
from gallery_relay.storage.supabase import SupabaseStorage


def build_storage(settings: Settings, *, http: httpx.AsyncClient) -> StorageBackend:
    if not settings.storage_configured:
        raise ConfigurationError(f"storage backend {settings.storage_backend!r} is missing settings")

    if settings.storage_backend == "local":
        return LocalStorage(root=settings.local_storage_dir, public_base_url=settings.public_base_url)

    return SupabaseStorage(
        http=http,
        supabase_url=settings.supabase_url,
        service_key=settings.supabase_service_key,
        bucket=settings.storage_bucket,
        public_base_url=settings.public_base_url,
        timeout_seconds=settings.storage_timeout_seconds,
    )
