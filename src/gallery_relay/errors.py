"""
gallery_relay.errors

Typed error taxonomy shared by every layer.

Responsibilities:
- Give each failure a stable code and a declared HTTP status.
- Resolve user-facing messages through a code -> message table, never by
  inspecting exception text.
- Keep operator-only detail (credential problems, upstream bodies) out of
  responses while still making it available to logs.
"""

from __future__ import annotations

import enum


class ErrorCode(enum.StrEnum):
    config_missing = "config_missing"
    credentials_unparsable = "credentials_unparsable"
    invalid_request = "invalid_request"
    unauthorized = "unauthorized"
    rate_limited = "rate_limited"
    payload_too_large = "payload_too_large"
    upstream_timeout = "upstream_timeout"
    upstream_failure = "upstream_failure"
    not_found = "not_found"
    internal = "internal"


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.config_missing: "Server credentials not configured. Check environment variables.",
    ErrorCode.credentials_unparsable: "Invalid delegation proof format. Regenerate credentials.",
    ErrorCode.invalid_request: "Invalid request",
    ErrorCode.unauthorized: "Unauthorized upload request",
    ErrorCode.rate_limited: "Rate limit exceeded. Please retry later.",
    ErrorCode.payload_too_large: "Payload too large",
    ErrorCode.upstream_timeout: "Remote fetch timed out",
    ErrorCode.upstream_failure: "Upstream service failed",
    ErrorCode.not_found: "Not found",
    ErrorCode.internal: "Internal server error",
}


def message_for(code: ErrorCode) -> str:
    return _MESSAGES[code]


class GalleryRelayError(Exception):
    """
    Base class for expected failures.

    `detail` is always logged; it is appended to the public message only when
    the error is caller-actionable (`expose_detail`).
    """

    status_code: int = 500
    code: ErrorCode = ErrorCode.internal
    expose_detail: bool = False

    def __init__(
        self,
        detail: str = "",
        *,
        field: str | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        super().__init__(detail or message_for(code or self.code))
        self.detail = detail
        self.field = field
        if code is not None:
            self.code = code

    @property
    def public_message(self) -> str:
        base = message_for(self.code)
        if self.expose_detail and self.detail:
            return f"{base}: {self.detail}"
        return base

    def to_body(self) -> dict[str, str | None]:
        return {"error": self.public_message, "code": self.code.value, "field": self.field}


class ConfigurationError(GalleryRelayError):
    status_code = 500
    code = ErrorCode.config_missing


class KeyFormatError(ConfigurationError):
    code = ErrorCode.credentials_unparsable


class ProofFormatError(ConfigurationError):
    code = ErrorCode.credentials_unparsable


class ValidationError(GalleryRelayError):
    status_code = 400
    code = ErrorCode.invalid_request
    expose_detail = True


class AuthorizationError(GalleryRelayError):
    status_code = 401
    code = ErrorCode.unauthorized


class RateLimitError(GalleryRelayError):
    status_code = 429
    code = ErrorCode.rate_limited


class PayloadTooLargeError(GalleryRelayError):
    status_code = 413
    code = ErrorCode.payload_too_large
    expose_detail = True


class UpstreamTimeoutError(GalleryRelayError):
    status_code = 408
    code = ErrorCode.upstream_timeout
    expose_detail = True


class UpstreamServiceError(GalleryRelayError):
    status_code = 502
    code = ErrorCode.upstream_failure


class NotFoundError(GalleryRelayError):
    status_code = 404
    code = ErrorCode.not_found
    expose_detail = True


# --- Module Notes -----------------------------------------------------------
# The HTTP mapping lives in `api.errors`; services raise these types and never
# build responses themselves.
