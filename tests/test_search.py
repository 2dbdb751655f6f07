"""Tests for TorrentSearchAggregator."""

import pytest

from app.services.search import TorrentSearchAggregator
from conftest import HASH_A, HASH_B, HASH_C, FakeIndex, make_torrent


@pytest.mark.asyncio
async def test_dedup_keeps_first_occurrence_in_variant_order():
    first = make_torrent("Frieren - 05 [GroupA]", HASH_A, seeders=5, source="first")
    duplicate = make_torrent("Frieren 05 repack", HASH_A.upper(), seeders=500, source="dup")
    other = make_torrent("Frieren - 05 [GroupB]", HASH_B, seeders=50)
    index = FakeIndex(pages={
        "Frieren 05": [[first]],
        "Frieren 5": [[duplicate, other]],
    })

    results = await TorrentSearchAggregator(index).search("Frieren", 5)

    assert [t.info_hash.lower() for t in results] == [HASH_B, HASH_A]
    kept = next(t for t in results if t.info_hash.lower() == HASH_A)
    assert kept.source == "first"
    assert kept.seeders == 5


@pytest.mark.asyncio
async def test_results_sorted_by_seeders_descending():
    index = FakeIndex(pages={"Frieren 05": [[
        make_torrent("a", HASH_A, seeders=1),
        make_torrent("b", HASH_B, seeders=30),
        make_torrent("c", HASH_C, seeders=7),
    ]]})

    results = await TorrentSearchAggregator(index).search("Frieren", 5)

    assert [t.seeders for t in results] == [30, 7, 1]


@pytest.mark.asyncio
async def test_pagination_stops_on_empty_page():
    index = FakeIndex(pages={"Frieren 05": [[make_torrent("a", HASH_A)], [make_torrent("b", HASH_B)]]})

    results = await TorrentSearchAggregator(index, max_pages=2).search("Frieren", 5)

    assert len(results) == 2
    assert ("Frieren 05", 1) in index.calls
    assert ("Frieren 05", 2) in index.calls
    # "Frieren 5" page 1 is empty so page 2 is never requested
    assert ("Frieren 5", 1) in index.calls
    assert ("Frieren 5", 2) not in index.calls


@pytest.mark.asyncio
async def test_unpaged_index_is_asked_for_first_page_only():
    index = FakeIndex(pages={"Frieren 05": [[make_torrent("a", HASH_A)], [make_torrent("b", HASH_B)]]},
                      paged=False)

    results = await TorrentSearchAggregator(index, max_pages=2).search("Frieren", 5)

    assert [t.info_hash for t in results] == [HASH_A]
    assert all(page == 1 for _, page in index.calls)


@pytest.mark.asyncio
async def test_index_errors_are_swallowed():
    index = FakeIndex(
        pages={"Frieren 5": [[make_torrent("a", HASH_A)]]},
        fail_queries=("Frieren 05",),
    )

    results = await TorrentSearchAggregator(index).search("Frieren", 5)

    assert [t.info_hash for t in results] == [HASH_A]


@pytest.mark.asyncio
async def test_falls_back_to_secondary_then_broad():
    primary = FakeIndex(name="primary")
    secondary = FakeIndex(name="secondary")
    broad = FakeIndex(name="broad", pages={"Show Title Sub 03": [[make_torrent("Show Title Sub - 03", HASH_C)]]})

    aggregator = TorrentSearchAggregator(primary, secondary, broad)
    results = await aggregator.search("Show Title: Sub (TV)", 3)

    assert [t.info_hash for t in results] == [HASH_C]
    assert {q for q, _ in secondary.calls} == {q for q, _ in primary.calls}
    # only the first two title forms are used on the broad query
    assert {q for q, _ in broad.calls} == {
        "Show Title: Sub (TV) 03",
        "Show Title: Sub (TV) 3",
        "Show Title Sub 03",
        "Show Title Sub 3",
    }


@pytest.mark.asyncio
async def test_secondary_not_queried_when_primary_has_results():
    primary = FakeIndex(name="primary", pages={"Frieren 05": [[make_torrent("a", HASH_A)]]})
    secondary = FakeIndex(name="secondary")

    await TorrentSearchAggregator(primary, secondary).search("Frieren", 5)

    assert secondary.calls == []


@pytest.mark.asyncio
async def test_no_results_anywhere_is_empty_list():
    aggregator = TorrentSearchAggregator(FakeIndex(), FakeIndex(), FakeIndex())
    assert await aggregator.search("Nothing", 1) == []
    assert await aggregator.search("", 1) == []


@pytest.mark.asyncio
async def test_primary_is_walked_over_two_pages():
    primary = FakeIndex(name="primary", pages={
        "Frieren 05": [[make_torrent("Frieren - 05 [A]", HASH_A)], [make_torrent("Frieren - 05 [B]", HASH_B)]],
    })
    secondary = FakeIndex(name="secondary")

    results = await TorrentSearchAggregator(primary, secondary, max_pages=2).search("Frieren", 5)

    assert {t.info_hash for t in results} == {HASH_A, HASH_B}
    assert [p for q, p in primary.calls if q == "Frieren 05"] == [1, 2]
    assert secondary.calls == []
