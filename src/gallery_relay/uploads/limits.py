from __future__ import annotations

from dataclasses import dataclass

from gallery_relay.settings import Settings


@dataclass(frozen=True, slots=True)
class UploadLimits:
    max_cards_per_request: int = 4
    max_url_length: int = 8192
    max_single_asset_bytes: int = 6_000_000
    max_total_asset_bytes: int = 18_000_000
    fetch_timeout_seconds: float = 15.0
    allowed_remote_hosts: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: Settings) -> UploadLimits:
        return cls(
            max_cards_per_request=settings.max_cards_per_request,
            max_url_length=settings.max_url_length,
            max_single_asset_bytes=settings.max_single_asset_bytes,
            max_total_asset_bytes=settings.max_total_asset_bytes,
            fetch_timeout_seconds=settings.fetch_timeout_seconds,
            allowed_remote_hosts=tuple(settings.allowed_remote_hosts),
        )
