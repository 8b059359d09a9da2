"""
gallery_relay.api.errors

HTTP boundary for the error taxonomy.

Responsibilities:
- Map `GalleryRelayError` subclasses to their declared status and body.
- Turn FastAPI request validation failures into 400s with a field path.
- Hide unexpected exceptions behind a generic 500 while logging them in full.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gallery_relay.errors import ErrorCode, GalleryRelayError, message_for
from gallery_relay.observability.logging import get_logger

log = get_logger(__name__)


def _field_path(loc: tuple | list) -> str | None:
    # Drop the leading "body"/"query"/"path" marker FastAPI adds.
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts) or None


async def handle_relay_error(request: Request, exc: GalleryRelayError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", code=exc.code.value, status=exc.status_code, detail=exc.detail)
    else:
        log.info("request.rejected", code=exc.code.value, status=exc.status_code, field=exc.field)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = _field_path(first.get("loc", ()))
    base = message_for(ErrorCode.invalid_request)
    reason = first.get("msg", "invalid input")
    message = f'{base} at "{field}": {reason}' if field else f"{base}: {reason}"
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": ErrorCode.invalid_request.value, "field": field},
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.crashed", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": message_for(ErrorCode.internal), "code": ErrorCode.internal.value, "field": None},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GalleryRelayError, handle_relay_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected)


# --- Module Notes -----------------------------------------------------------
# Services raise typed errors and never build responses; this is the only
# place that knows about status codes.
