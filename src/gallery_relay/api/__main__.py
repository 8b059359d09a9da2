"""
gallery_relay.api.__main__

Entrypoint for running the FastAPI application via `python -m gallery_relay.api`.

Responsibilities:
- Load settings.
- Create the app.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn

from gallery_relay.api.app import create_app
from gallery_relay.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# Run behind a proxy that sets X-Forwarded-For; the upload rate limiter keys on
# its first hop.
