"""
gallery_relay.uploads.ssrf

SSRF policy for server-initiated media fetches.

Responsibilities:
- Allow only credential-free https URLs.
- Refuse local hostnames, IP literals in private/loopback/link-local space
  and any IPv6 literal.
- Require the host to match the allow-list exactly or as a subdomain.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from urllib.parse import urlsplit

from gallery_relay.errors import ValidationError

_LOCAL_SUFFIXES = (".local", ".internal", ".localhost")


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def _blocked_ip(host: str) -> str | None:
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return None
    if ip.version == 6:
        return "IPv6 literal hosts are not allowed"
    if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified or ip.is_reserved or ip.is_multicast:
        return "Private IP ranges are not allowed"
    return None


def is_allowed_host(host: str, allowed_hosts: Iterable[str]) -> bool:
    return any(host == allowed or host.endswith(f".{allowed}") for allowed in allowed_hosts)


def assert_allowed_remote_url(url: str, allowed_hosts: Iterable[str], *, field: str | None = None) -> None:
    try:
        parsed = urlsplit(url)
        # Accessing .port validates it; a malformed port raises ValueError.
        parsed.port
    except ValueError as e:
        raise ValidationError("Invalid remote media URL", field=field) from e

    if parsed.scheme != "https":
        raise ValidationError("Only https remote URLs are allowed", field=field)
    if parsed.username or parsed.password:
        raise ValidationError("Remote URLs may not include credentials", field=field)

    host = (parsed.hostname or "").rstrip(".").lower()
    if not host:
        raise ValidationError("Invalid remote media URL", field=field)
    if host == "localhost" or host.endswith(_LOCAL_SUFFIXES):
        raise ValidationError("Local network hosts are not allowed", field=field)

    blocked = _blocked_ip(host)
    if blocked:
        raise ValidationError(blocked, field=field)

    if not is_allowed_host(host, allowed_hosts):
        raise ValidationError(f'Remote host "{host}" is not in the allowlist', field=field)


# --- Module Notes -----------------------------------------------------------
# Hostnames are not resolved here; redirects are disabled on the fetch so the
# validated host is the only one contacted.
