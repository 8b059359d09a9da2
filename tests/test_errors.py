from __future__ import annotations

import pytest

from conftest import serve
from gallery_relay.errors import (
    ConfigurationError,
    ErrorCode,
    KeyFormatError,
    PayloadTooLargeError,
    UpstreamServiceError,
    ValidationError,
)


def test_public_messages_hide_operator_detail() -> None:
    err = KeyFormatError("tried base64: bad padding")
    assert err.status_code == 500
    assert isinstance(err, ConfigurationError)
    assert err.public_message == "Invalid delegation proof format. Regenerate credentials."
    assert "padding" not in err.public_message

    upstream = UpstreamServiceError("storage write failed: 503 secret-bucket")
    assert "secret-bucket" not in upstream.public_message


def test_caller_actionable_errors_expose_detail() -> None:
    err = ValidationError("Frames must be data URLs", field="cards.0.frames.0")
    assert err.to_body() == {
        "error": "Invalid request: Frames must be data URLs",
        "code": "invalid_request",
        "field": "cards.0.frames.0",
    }
    assert PayloadTooLargeError("Asset exceeds 10 bytes").public_message.endswith("Asset exceeds 10 bytes")
    assert ValidationError(code=ErrorCode.not_found).code is ErrorCode.not_found


@pytest.mark.asyncio
async def test_unexpected_exception_is_generic_500(make_app) -> None:
    app = make_app()

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database password is hunter2")

    async with serve(app, raise_app_exceptions=False) as client:
        r = await client.get("/boom")
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error", "code": "internal", "field": None}
