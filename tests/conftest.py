"""
tests.conftest

Shared fixtures: a throwaway master identity, test settings backed by a temp
SQLite file and local storage, and an in-process client with lifespan managed.
"""

from __future__ import annotations

import base64
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from gallery_relay.api.app import create_app
from gallery_relay.identity.keys import Ed25519Signer
from gallery_relay.identity.ucan import Capability, Delegation, delegate
from gallery_relay.settings import Settings

REMOTE_HOST = "media.example.com"
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG-frame").decode()
GIF_DATA_URL = "data:image/gif;base64," + base64.b64encode(b"GIF89a-anim").decode()
TINY_PNG_DATA_URL = "data:image/png;base64,AA=="


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def space_signer() -> Ed25519Signer:
    return Ed25519Signer.generate()


@pytest.fixture
def agent_signer() -> Ed25519Signer:
    return Ed25519Signer.generate()


@pytest.fixture
def space_proof(space_signer: Ed25519Signer, agent_signer: Ed25519Signer) -> Delegation:
    # The space owner delegates everything on the space to the agent.
    return delegate(
        issuer=space_signer,
        audience=agent_signer.did,
        capabilities=[Capability(can="*", with_=space_signer.did)],
        expiration=None,
    )


@pytest.fixture
def settings(tmp_path: Path, agent_signer: Ed25519Signer, space_proof: Delegation) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}",
        agent_key=agent_signer.export(),
        delegation_proof=base64.b64encode(space_proof.archive()).decode("ascii"),
        storage_backend="local",
        storage_bucket="media",
        public_base_url="https://cdn.example.test/media/",
        local_storage_dir=str(tmp_path / "media"),
        remote_host_allowlist=REMOTE_HOST,
    )


@asynccontextmanager
async def serve(app: FastAPI, **client_kwargs) -> AsyncIterator[httpx.AsyncClient]:
    # ASGITransport does not run lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app, **client_kwargs)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def make_app(settings: Settings) -> Callable[..., FastAPI]:
    def _make(**overrides) -> FastAPI:
        transport = overrides.pop("http_transport", None)
        clock = overrides.pop("clock", None)
        kwargs = {"http_transport": transport}
        if clock is not None:
            kwargs["clock"] = clock
        return create_app(settings=settings.model_copy(update=overrides), **kwargs)

    return _make
