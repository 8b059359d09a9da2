"""
tests.test_uploads_api

End-to-end tests for `POST /api/uploads` with local storage and a mocked
remote media host.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from conftest import GIF_DATA_URL, PNG_DATA_URL, REMOTE_HOST, TINY_PNG_DATA_URL, FakeClock, serve
from gallery_relay.errors import PayloadTooLargeError
from gallery_relay.uploads.budget import ByteBudget
from gallery_relay.uploads.limits import UploadLimits
from gallery_relay.uploads.media import MediaFetcher, MediaKind

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp4"


def _video_host(calls: list[str], body: bytes = VIDEO_BYTES, status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if request.url.host != REMOTE_HOST:
            return httpx.Response(404)
        return httpx.Response(status, content=body, headers={"content-type": "video/mp4"})

    return httpx.MockTransport(handler)


def _card(**overrides) -> dict:
    card = {"cardNumber": 1, "deckType": "Tarot", "frames": [PNG_DATA_URL]}
    card.update(overrides)
    return card


@pytest.mark.asyncio
async def test_upload_stores_assets_and_records_feed(make_app, tmp_path: Path) -> None:
    calls: list[str] = []
    app = make_app(http_transport=_video_host(calls))
    payload = {
        "cards": [
            _card(
                frames=[PNG_DATA_URL, PNG_DATA_URL],
                gifUrl=GIF_DATA_URL,
                videoUrl=f"https://{REMOTE_HOST}/renders/clip.mp4",
                deckId="Deck 42",
                author="Ada",
                timestamp=1_700_000_000_000,
                prompt="a tower struck by lightning",
            )
        ]
    }
    async with serve(app) as client:
        r = await client.post("/api/uploads", json=payload)
        assert r.status_code == 200, r.text
        (card,) = r.json()["uploaded"]
        assert card["cardNumber"] == 1
        assert card["deckType"] == "Tarot"
        assert len(card["frames"]) == 2

        base = "https://cdn.example.test/media/deck-42/tarot/card-1/1700000000000-"
        assert all(url.startswith(base) for url in card["frames"])
        assert card["frames"][0].endswith("/frame-0.png")
        assert card["frames"][1].endswith("/frame-1.png")
        assert card["gifUrl"].endswith("/gif.gif")
        assert card["videoUrl"].endswith("/video.mp4")
        assert calls == [f"https://{REMOTE_HOST}/renders/clip.mp4"]

        stored = card["videoUrl"].removeprefix("https://cdn.example.test/media/")
        assert (tmp_path / "media" / stored).read_bytes() == VIDEO_BYTES

        feed = (await client.get("/api/community")).json()["galleries"]
        assert len(feed) == 1
        assert feed[0]["deck_id"] == "Deck 42"
        assert feed[0]["deck_name"] == "Community Deck"
        assert feed[0]["frames"] == card["frames"]
        assert feed[0]["timestamp"] == 1_700_000_000_000

        assert (await client.get("/api/community", params={"deckType": " Tarot "})).json()["galleries"]
        assert (await client.get("/api/community", params={"deckType": "Runes"})).json()["galleries"] == []


@pytest.mark.asyncio
async def test_repeated_upload_uses_fresh_paths(make_app) -> None:
    async with serve(make_app()) as client:
        first = await client.post("/api/uploads", json={"cards": [_card(timestamp=5)]})
        second = await client.post("/api/uploads", json={"cards": [_card(timestamp=5)]})
        assert first.status_code == second.status_code == 200
        assert first.json()["uploaded"][0]["frames"] != second.json()["uploaded"][0]["frames"]


@pytest.mark.asyncio
async def test_upload_token_is_required_when_configured(make_app) -> None:
    async with serve(make_app(upload_token="s3cret")) as client:
        r = await client.post("/api/uploads", json={"cards": [_card()]})
        assert r.status_code == 401
        assert r.json()["code"] == "unauthorized"

        r = await client.post("/api/uploads", json={"cards": [_card()]}, headers={"Authorization": "Bearer wrong"})
        assert r.status_code == 401

        r = await client.post("/api/uploads", json={"cards": [_card()]}, headers={"X-Upload-Token": "s3cret"})
        assert r.status_code == 200


@pytest.mark.asyncio
async def test_sixteenth_request_in_window_is_rate_limited(make_app) -> None:
    clock = FakeClock()
    headers = {"X-Forwarded-For": "203.0.113.7"}
    async with serve(make_app(clock=clock)) as client:
        for _ in range(15):
            r = await client.post("/api/uploads", content=b"{}", headers=headers)
            assert r.status_code == 400

        r = await client.post("/api/uploads", content=b"{}", headers=headers)
        assert r.status_code == 429
        assert r.json()["code"] == "rate_limited"

        r = await client.post("/api/uploads", content=b"{}", headers={"X-Forwarded-For": "203.0.113.8"})
        assert r.status_code == 400

        clock.advance(61)
        r = await client.post("/api/uploads", content=b"{}", headers=headers)
        assert r.status_code == 400


@pytest.mark.asyncio
async def test_aggregate_ceiling_stops_before_third_fetch(make_app) -> None:
    calls: list[str] = []
    app = make_app(
        http_transport=_video_host(calls, body=b"v" * 8),
        max_single_asset_bytes=10,
        max_total_asset_bytes=15,
    )
    cards = [
        _card(cardNumber=n, frames=[TINY_PNG_DATA_URL], videoUrl=f"https://{REMOTE_HOST}/{n}.mp4")
        for n in range(3)
    ]
    async with serve(app) as client:
        r = await client.post("/api/uploads", json={"cards": cards})
        assert r.status_code == 413
        assert r.json()["code"] == "payload_too_large"
        assert len(calls) == 2


@pytest.mark.asyncio
async def test_single_asset_ceiling(make_app) -> None:
    app = make_app(http_transport=_video_host([], body=b"v" * 11), max_single_asset_bytes=10)
    async with serve(app) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(frames=[TINY_PNG_DATA_URL], videoUrl=f"https://{REMOTE_HOST}/big.mp4")]})
        assert r.status_code == 413

        r = await client.post("/api/uploads", json={"cards": [_card(frames=[GIF_DATA_URL])]})
        assert r.status_code == 413


@pytest.mark.asyncio
async def test_remote_failures_map_to_statuses(make_app) -> None:
    async with serve(make_app(http_transport=_video_host([], status=404))) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl=f"https://{REMOTE_HOST}/gone.mp4")]})
        assert r.status_code == 400

    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with serve(make_app(http_transport=httpx.MockTransport(timeout))) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl=f"https://{REMOTE_HOST}/slow.mp4")]})
        assert r.status_code == 408

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with serve(make_app(http_transport=httpx.MockTransport(refused))) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl=f"https://{REMOTE_HOST}/down.mp4")]})
        assert r.status_code == 502


@pytest.mark.asyncio
async def test_media_type_and_source_policy(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(frames=["data:video/mp4;base64,AAAA"])]})
        assert r.status_code == 400

        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl="https://169.254.169.254/latest")]})
        assert r.status_code == 400
        assert r.json()["field"] == "cards.0.videoUrl"

        r = await client.post("/api/uploads", json={"cards": [_card(frames=["data:image/png;base64,"])]})
        assert r.status_code == 400

        r = await client.post("/api/uploads", json={"cards": [_card(frames=["data:image/png,notbase64"])]})
        assert r.status_code == 400


@pytest.mark.asyncio
async def test_missing_storage_config_is_a_server_error(make_app) -> None:
    async with serve(make_app(storage_bucket="")) as client:
        r = await client.post("/api/uploads", json={"cards": [_card()]})
        assert r.status_code == 500
        assert r.json()["code"] == "config_missing"


@pytest.mark.asyncio
async def test_remote_fetch_uses_configured_timeout(make_app) -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(200, content=VIDEO_BYTES, headers={"content-type": "video/mp4"})

    app = make_app(http_transport=httpx.MockTransport(handler), fetch_timeout_seconds=30)
    async with serve(app) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl=f"https://{REMOTE_HOST}/clip.mp4")]})
        assert r.status_code == 200, r.text
    assert seen == [{"connect": 30.0, "read": 30.0, "write": 30.0, "pool": 30.0}]


@pytest.mark.asyncio
async def test_remote_redirect_is_not_followed(make_app) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(302, headers={"location": f"https://{REMOTE_HOST}/elsewhere.mp4"})

    async with serve(make_app(http_transport=httpx.MockTransport(handler))) as client:
        r = await client.post("/api/uploads", json={"cards": [_card(videoUrl=f"https://{REMOTE_HOST}/moved.mp4")]})
        assert r.status_code == 400
        assert r.json()["field"] == "cards.0.videoUrl"
    assert calls == [f"https://{REMOTE_HOST}/moved.mp4"]


@pytest.mark.asyncio
async def test_unsized_remote_stream_stops_at_remaining_budget() -> None:
    pulled: list[int] = []

    async def chunks():
        for n in range(10):
            pulled.append(n)
            yield b"v" * 100

    def handler(request: httpx.Request) -> httpx.Response:
        # No content-length: the body is a stream.
        return httpx.Response(200, content=chunks(), headers={"content-type": "video/mp4"})

    limits = UploadLimits(max_single_asset_bytes=10_000, allowed_remote_hosts=(REMOTE_HOST,))
    budget = ByteBudget(1_000)
    budget.charge(850)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        fetcher = MediaFetcher(http=http, limits=limits)
        with pytest.raises(PayloadTooLargeError):
            await fetcher.resolve(
                f"https://{REMOTE_HOST}/long.mp4", expected=MediaKind.video, budget=budget, field="cards.0.videoUrl"
            )
    assert len(pulled) == 2
    assert budget.used == 850
