"""End-to-end tests for the addon HTTP surface with fake collaborators."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.models.debrid import ResolutionOutcome
from app.services.addon import AddonService, parse_stremio_id
from app.services.cache import MagnetLookup, ResolutionCache
from app.services.container import Services
from app.services.resolver import DebridResolver
from app.services.schedule import ScheduleStore
from app.services.search import TorrentSearchAggregator
from conftest import HASH_A, HASH_B, FakeIndex, make_entry, make_torrent
from main import create_app

DOWNLOADING_URL = "https://placeholder/downloading"
FAILED_URL = "https://placeholder/failed"


def build_client(entries, pages=None, resolver_outcome=None, debrid=True):
    cache = ResolutionCache()
    source = AsyncMock()
    source.fetch_today = AsyncMock(return_value=entries)
    store = ScheduleStore(source, cache)
    store._entries = tuple(entries)

    index = FakeIndex(pages=pages or {})
    search = TorrentSearchAggregator(index)

    resolver = DebridResolver(object() if debrid else None, cache)
    resolver.resolve = AsyncMock(return_value=resolver_outcome or ResolutionOutcome.failed("x"))

    lookup = MagnetLookup()
    addon = AddonService(
        store, search, resolver, lookup,
        placeholder_poster_url="https://placeholder/poster",
        placeholder_downloading_url=DOWNLOADING_URL,
        placeholder_failed_url=FAILED_URL,
    )
    services = Services(store=store, addon=addon, resolution_cache=cache, lookup=lookup)
    app = create_app(services=services, start_scheduler=False)
    return TestClient(app), services, index, resolver


def test_parse_stremio_id():
    assert parse_stremio_id("nyaa:154587:7") == (154587, 7)
    assert parse_stremio_id("tt123:1:2") is None
    assert parse_stremio_id("nyaa:abc:2") is None
    assert parse_stremio_id("nyaa:1") is None


def test_manifest():
    client, *_ = build_client([])

    data = client.get("/manifest.json").json()

    assert data["resources"] == ["catalog", "meta", "stream"]
    assert data["idPrefixes"] == ["nyaa:"]
    assert data["catalogs"][0]["id"] == "anime-today"


def test_catalog_sorted_by_airing_time():
    late = make_entry(show_id=2, airing_at=2000)
    early = make_entry(show_id=1, airing_at=1000)
    client, *_ = build_client([late, early])

    metas = client.get("/catalog/series/anime-today.json").json()["metas"]

    assert [m["id"] for m in metas] == ["nyaa:1:7", "nyaa:2:7"]
    assert metas[0]["poster"] == "https://img/cover.jpg"
    assert metas[0]["imdbRating"] == "9.1"
    assert "<i>" not in metas[0]["description"]


def test_catalog_skip_returns_empty_page():
    client, *_ = build_client([make_entry()])

    assert client.get("/catalog/series/anime-today/skip=20.json").json() == {"metas": []}
    assert len(client.get("/catalog/series/anime-today/skip=0.json").json()["metas"]) == 1


def test_catalog_unknown_id():
    client, *_ = build_client([make_entry()])
    assert client.get("/catalog/series/other.json").json() == {"metas": []}


def test_meta_found_and_missing():
    client, *_ = build_client([make_entry(show_id=5, episode=3)])

    meta = client.get("/meta/series/nyaa:5:3.json").json()["meta"]
    assert meta["name"] == "Sousou no Frieren"
    assert meta["videos"][0]["episode"] == 3
    assert meta["videos"][0]["released"].endswith("Z")

    assert client.get("/meta/series/nyaa:5:4.json").json() == {"meta": None}


def test_no_episode_match_gives_single_placeholder():
    entry = make_entry(episode=7)
    older = [make_torrent(f"[Group] Sousou no Frieren - {ep:02d} (1080p)", f"{ep:040d}") for ep in range(1, 7)]
    client, *_ = build_client([entry], pages={"Sousou no Frieren 07": [older]})

    streams = client.get("/stream/series/nyaa:101:7.json").json()["streams"]

    assert len(streams) == 1
    assert streams[0]["behaviorHints"]["notWebReady"] is True
    assert "Not available" in streams[0]["name"]


def test_streams_list_debrid_entries_then_magnets():
    entry = make_entry(episode=7)
    torrents = [
        make_torrent("[Group] Sousou no Frieren - 07 (1080p)", HASH_A, seeders=100),
        make_torrent("[Other] Sousou no Frieren - 07 (720p)", HASH_B, seeders=10),
        make_torrent("[Group] Sousou no Frieren - 06 (1080p)", "c" * 40, seeders=999),
    ]
    client, services, _, _ = build_client([entry], pages={"Sousou no Frieren 07": [torrents]})

    streams = client.get("/stream/series/nyaa:101:7.json").json()["streams"]

    debrid = [s for s in streams if s["name"] == "⚡ RealDebrid"]
    magnets = [s for s in streams if s["name"] == "Nyaa (Magnet)"]
    assert len(debrid) == 2
    assert len(magnets) == 2
    assert debrid[0]["url"].endswith(f"/resolve/{HASH_A}")
    assert "1080p" in debrid[0]["title"]
    assert "🏷️ Group" in debrid[0]["title"]
    assert "🏷️ Other" in debrid[1]["title"]
    assert magnets[0]["url"].startswith("magnet:?xt=urn:btih:" + HASH_A)
    assert services.lookup.get(HASH_A) is not None


def test_streams_without_debrid_are_magnet_only():
    entry = make_entry(episode=7)
    torrents = [make_torrent("Sousou no Frieren - 07", HASH_A)]
    client, *_ = build_client([entry], pages={"Sousou no Frieren 07": [torrents]}, debrid=False)

    streams = client.get("/stream/series/nyaa:101:7.json").json()["streams"]

    assert [s["name"] for s in streams] == ["Nyaa (Magnet)"]


def test_streams_fall_back_to_english_title():
    entry = make_entry(episode=7)
    client, _, index, _ = build_client(
        [entry], pages={"Frieren 07": [[make_torrent("Frieren - 07", HASH_A)]]}, debrid=False,
    )

    streams = client.get("/stream/series/nyaa:101:7.json").json()["streams"]

    assert len(streams) == 1
    assert streams[0]["url"].startswith("magnet:")
    assert any(q == "Frieren 07" for q, _ in index.calls)


def test_streams_unknown_entry_or_prefix():
    client, *_ = build_client([make_entry()])
    assert client.get("/stream/series/nyaa:999:1.json").json() == {"streams": []}
    assert client.get("/stream/series/tt0388629:1:1.json").json() == {"streams": []}


@pytest.mark.parametrize("outcome,expected", [
    (ResolutionOutcome.ready("https://dl.example/ep.mkv"), "https://dl.example/ep.mkv"),
    (ResolutionOutcome.downloading(12), DOWNLOADING_URL),
    (ResolutionOutcome.failed("dead"), FAILED_URL),
])
def test_resolve_redirects(outcome, expected):
    client, services, _, resolver = build_client([], resolver_outcome=outcome)
    key = services.lookup.register("magnet:?xt=urn:btih:" + HASH_A)

    resp = client.get(f"/resolve/{key}", follow_redirects=False)

    assert resp.status_code == 302
    assert resp.headers["location"] == expected
    resolver.resolve.assert_awaited_once()


def test_resolve_unknown_key_redirects_to_placeholder():
    client, _, _, resolver = build_client([])

    resp = client.get("/resolve/deadbeef", follow_redirects=False)

    assert resp.status_code == 302
    assert resp.headers["location"] == FAILED_URL
    resolver.resolve.assert_not_awaited()


def test_refresh_endpoint_reports_count():
    client, *_ = build_client([make_entry(), make_entry(show_id=2)])

    data = client.get("/refresh").json()

    assert data == {"success": True, "count": 2}


def test_root_status():
    client, *_ = build_client([make_entry()])
    assert client.get("/").json()["entries"] == 1
