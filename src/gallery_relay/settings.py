"""
gallery_relay.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets (signing key, proofs, tokens) from repr/logging.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REMOTE_HOSTS: tuple[str, ...] = (
    "generativelanguage.googleapis.com",
    "storage.googleapis.com",
    "googleapis.com",
    "googleusercontent.com",
)


def parse_allowed_hosts(raw: str | None, fallback: tuple[str, ...] = DEFAULT_REMOTE_HOSTS) -> list[str]:
    # Lower-cased, de-duplicated, order preserved; empty input falls back to the defaults.
    hosts = [h.strip().lower() for h in (raw or "").split(",") if h.strip()]
    return list(dict.fromkeys(hosts or fallback))


class Settings(BaseSettings):
    """
    Single settings object injected across layers.
    Defaults are safe for local dev; credentials are empty until provided.
    """

    model_config = SettingsConfigDict(env_prefix="GALLERY_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "gallery-relay"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence (gallery registry, community feed, optional rate-limit counters)
    database_url: str = "sqlite+aiosqlite:///./gallery.db"

    # Master identity
    agent_key: str = Field(default="", repr=False)
    delegation_proof: str = Field(default="", repr=False)
    gateway_base_url: str = "https://w3s.link/ipfs"

    # Object storage
    storage_backend: Literal["supabase", "local"] = "supabase"
    storage_bucket: str = ""
    public_base_url: str = ""
    supabase_url: str = ""
    supabase_service_key: str = Field(default="", repr=False)
    local_storage_dir: str = "./media"
    storage_timeout_seconds: float = 30.0

    # Shared secrets
    upload_token: str = Field(default="", repr=False)
    cron_secret: str = Field(default="", repr=False)

    # Upload limits
    max_cards_per_request: int = Field(default=4, gt=0)
    max_url_length: int = Field(default=8192, gt=0)
    max_single_asset_bytes: int = Field(default=6_000_000, gt=0)
    max_total_asset_bytes: int = Field(default=18_000_000, gt=0)
    fetch_timeout_seconds: float = Field(default=15.0, gt=0)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_requests: int = Field(default=15, gt=0)
    rate_limit_backend: Literal["memory", "database"] = "memory"
    remote_host_allowlist: str = ""

    @property
    def allowed_remote_hosts(self) -> list[str]:
        return parse_allowed_hosts(self.remote_host_allowlist)

    @property
    def storage_configured(self) -> bool:
        if not self.storage_bucket or not self.public_base_url:
            return False
        if self.storage_backend == "supabase":
            return bool(self.supabase_url and self.supabase_service_key)
        return True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Upload limits are read once per process; change them by restarting with new env vars.
