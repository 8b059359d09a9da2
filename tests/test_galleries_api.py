"""
tests.test_galleries_api

Gallery registry: registration, newest-first pagination and lookup.
"""

from __future__ import annotations

import itertools

import pytest

from conftest import serve
from gallery_relay.api.deps import clock_ms
from gallery_relay.db.models import GalleryIndexEntry
from gallery_relay.services.gallery_service import strip_markup


def _pin_clock(app, *values: int) -> None:
    ticks = itertools.chain(values, itertools.count(values[-1] + 1))
    app.dependency_overrides[clock_ms] = lambda: (lambda: next(ticks))


def _gallery(locator: str, **overrides) -> dict:
    body = {"locator": locator, "cardCount": 22, "deckTypes": ["tarot"]}
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_register_and_get(make_app) -> None:
    app = make_app()
    _pin_clock(app, 1_732_534_800_000)
    async with serve(app) as client:
        r = await client.post("/api/galleries", json=_gallery("bafyone", author="  <b>Alice</b> "))
        assert r.status_code == 200
        assert r.json() == {"success": True, "locator": "bafyone", "timestamp": 1_732_534_800_000}

        r = await client.get("/api/galleries/bafyone")
        assert r.status_code == 200
        assert r.json() == {
            "locator": "bafyone",
            "resolvedUrl": "https://w3s.link/ipfs/bafyone",
            "metadata": {
                "author": "Alice",
                "cardCount": 22,
                "deckTypes": ["tarot"],
                "timestamp": 1_732_534_800_000,
            },
        }


@pytest.mark.asyncio
async def test_listing_is_newest_first_with_tie_break(make_app) -> None:
    app = make_app()
    _pin_clock(app, 100, 300, 200, 200)
    async with serve(app) as client:
        for locator in ("a", "b", "c", "d"):
            assert (await client.post("/api/galleries", json=_gallery(locator))).status_code == 200

        r = await client.get("/api/galleries")
        body = r.json()
        # c and d share a timestamp; the greater locator comes first.
        assert [g["locator"] for g in body["galleries"]] == ["b", "d", "c", "a"]
        assert body["total"] == 4
        assert body["hasMore"] is False


@pytest.mark.asyncio
async def test_pagination(make_app) -> None:
    app = make_app()
    _pin_clock(app, 1)
    async with serve(app) as client:
        for n in range(5):
            await client.post("/api/galleries", json=_gallery(f"g{n}"))

        page = (await client.get("/api/galleries", params={"limit": 2, "offset": 0})).json()
        assert [g["locator"] for g in page["galleries"]] == ["g4", "g3"]
        assert page["hasMore"] is True

        page = (await client.get("/api/galleries", params={"limit": 2, "offset": 4})).json()
        assert [g["locator"] for g in page["galleries"]] == ["g0"]
        assert page["hasMore"] is False

        page = (await client.get("/api/galleries", params={"limit": 2, "offset": 10})).json()
        assert page == {"galleries": [], "total": 5, "hasMore": False}

        for params in ({"limit": 0}, {"limit": 101}, {"offset": -1}, {"limit": "many"}):
            r = await client.get("/api/galleries", params=params)
            assert r.status_code == 400
            assert r.json()["code"] == "invalid_request"


@pytest.mark.asyncio
async def test_latest_registration_leads_and_reads_are_stable(make_app) -> None:
    app = make_app()
    _pin_clock(app, 1_000, 2_000)
    async with serve(app) as client:
        await client.post("/api/galleries", json=_gallery("A"))
        await client.post("/api/galleries", json=_gallery("B"))

        first = (await client.get("/api/galleries", params={"limit": 1})).json()
        assert [g["locator"] for g in first["galleries"]] == ["B"]
        assert first["total"] == 2
        assert first["hasMore"] is True

        again = (await client.get("/api/galleries", params={"limit": 1})).json()
        assert again == first


@pytest.mark.asyncio
async def test_listing_skips_index_entries_without_metadata(make_app) -> None:
    app = make_app()
    _pin_clock(app, 1_000)
    async with serve(app) as client:
        await client.post("/api/galleries", json=_gallery("kept"))
        async with app.state.sessionmaker() as session:
            session.add(GalleryIndexEntry(locator="orphan", score=5_000))
            await session.commit()

        body = (await client.get("/api/galleries")).json()
        assert [g["locator"] for g in body["galleries"]] == ["kept"]
        assert body["total"] == 2
        assert body["hasMore"] is False

        r = await client.get("/api/galleries/orphan")
        assert r.status_code == 404


@pytest.mark.asyncio
async def test_reregistration_moves_entry_without_duplicating(make_app) -> None:
    app = make_app()
    _pin_clock(app, 10, 20, 30)
    async with serve(app) as client:
        await client.post("/api/galleries", json=_gallery("x"))
        await client.post("/api/galleries", json=_gallery("y"))
        await client.post("/api/galleries", json=_gallery("x", cardCount=5))

        body = (await client.get("/api/galleries")).json()
        assert body["total"] == 2
        assert [(g["locator"], g["cardCount"]) for g in body["galleries"]] == [("x", 5), ("y", 22)]


@pytest.mark.asyncio
async def test_empty_registry(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.get("/api/galleries")
        assert r.json() == {"galleries": [], "total": 0, "hasMore": False}


@pytest.mark.parametrize(
    ("body", "field"),
    [
        (_gallery(""), "locator"),
        (_gallery("l" * 101), "locator"),
        (_gallery("ok", cardCount=0), "cardCount"),
        (_gallery("ok", cardCount=101), "cardCount"),
        (_gallery("ok", deckTypes=[]), "deckTypes"),
        (_gallery("ok", deckTypes=["t"] * 11), "deckTypes"),
        (_gallery("ok", author="a" * 51), "author"),
    ],
)
@pytest.mark.asyncio
async def test_register_validation(make_app, body: dict, field: str) -> None:
    async with serve(make_app()) as client:
        r = await client.post("/api/galleries", json=body)
        assert r.status_code == 400
        assert r.json()["field"] == field


@pytest.mark.asyncio
async def test_get_unknown_and_oversized_locator(make_app) -> None:
    async with serve(make_app()) as client:
        r = await client.get("/api/galleries/bafymissing")
        assert r.status_code == 404
        assert r.json()["code"] == "not_found"

        r = await client.get("/api/galleries/" + "l" * 101)
        assert r.status_code == 400
        assert r.json()["field"] == "locator"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  <b>Alice</b> ", "Alice"),
        ("<script>alert(1)</script>Bob", "Bob"),
        ("Tom <3 Jerry", "Tom &lt;3 Jerry"),
        ('<img src=x onerror="alert(1)">', None),
        ("a" * 60, "a" * 50),
        (None, None),
    ],
)
def test_author_markup_is_stripped(raw: str | None, expected: str | None) -> None:
    assert strip_markup(raw) == expected
