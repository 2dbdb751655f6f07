"""Shared fakes and fixtures for the addon tests."""

from typing import Dict, List, Optional

import pytest

from app.core.exceptions import RealDebridError
from app.models.debrid import RDFile, RDTorrentInfo, RDTorrentSummary, RDUnrestrictedLink
from app.models.schedule import AiringEntry, ShowImages, ShowTitles
from app.models.torrent import TorrentCandidate
from app.services.base import TorrentIndex

HASH_A = "a" * 40
HASH_B = "b" * 40
HASH_C = "c" * 40


def make_magnet(info_hash: str, name: str = "") -> str:
    return f"magnet:?xt=urn:btih:{info_hash}&dn={name}"


def make_torrent(name: str, info_hash: str, seeders: int = 10, source: str = "fake") -> TorrentCandidate:
    return TorrentCandidate(
        name=name,
        magnet=make_magnet(info_hash),
        info_hash=info_hash,
        seeders=seeders,
        size="1.2 GiB",
        source=source,
    )


def make_entry(show_id: int = 101, episode: int = 7, airing_at: int = 1_700_000_000,
               romaji: str = "Sousou no Frieren", english: Optional[str] = "Frieren") -> AiringEntry:
    return AiringEntry(
        show_id=show_id,
        episode=episode,
        airing_at=airing_at,
        titles=ShowTitles(romaji=romaji, english=english, native="葬送のフリーレン"),
        images=ShowImages(cover_extra_large="https://img/cover.jpg", banner="https://img/banner.jpg"),
        description="<i>An elf</i> mage.",
        genres=["Adventure", "Fantasy"],
        average_score=91,
        season="FALL",
        season_year=2023,
    )


class FakeIndex(TorrentIndex):
    """Returns canned pages per query and records every call."""

    def __init__(self, name: str = "fake", pages: Optional[Dict[str, List[List[TorrentCandidate]]]] = None,
                 fail_queries: tuple = (), paged: bool = True):
        self.name = name
        self.pages = pages or {}
        self.fail_queries = fail_queries
        self.paged = paged
        self.calls: List[tuple] = []

    async def search_page(self, query: str, page: int = 1) -> List[TorrentCandidate]:
        self.calls.append((query, page))
        if query in self.fail_queries:
            raise ConnectionError(f"boom: {query}")
        query_pages = self.pages.get(query, [])
        if page - 1 < len(query_pages):
            return query_pages[page - 1]
        return []


class FakeRealDebrid:
    """
    Scripted Real-Debrid API. `infos` is consumed one per get_info call; the
    last one repeats.
    """

    def __init__(self, infos: List[RDTorrentInfo], existing: Optional[List[RDTorrentSummary]] = None,
                 unrestrict_fails: bool = False):
        self.infos = list(infos)
        self.existing = existing or []
        self.unrestrict_fails = unrestrict_fails
        self.calls: List[str] = []
        self.selected: List[List[int]] = []

    async def list_torrents(self, limit: int = 100):
        self.calls.append("list_torrents")
        return self.existing

    async def add_magnet(self, magnet: str) -> str:
        self.calls.append("add_magnet")
        return "TID1"

    async def get_info(self, torrent_id: str) -> RDTorrentInfo:
        self.calls.append("get_info")
        if len(self.infos) > 1:
            return self.infos.pop(0)
        return self.infos[0]

    async def select_files(self, torrent_id: str, file_ids: List[int]) -> None:
        self.calls.append("select_files")
        self.selected.append(file_ids)

    async def unrestrict_link(self, link: str) -> RDUnrestrictedLink:
        self.calls.append("unrestrict_link")
        if self.unrestrict_fails:
            raise RealDebridError("unrestrict down", 503)
        return RDUnrestrictedLink(filename="ep.mkv", download=f"https://dl.example/{link.rsplit('/', 1)[-1]}")

    async def delete_torrent(self, torrent_id: str) -> None:
        self.calls.append("delete_torrent")
        raise RealDebridError("delete failed", 500)

    def count(self, call: str) -> int:
        return self.calls.count(call)


def rd_info(status: str, links: Optional[List[str]] = None, files: Optional[List[RDFile]] = None,
            progress: float = 0) -> RDTorrentInfo:
    return RDTorrentInfo(
        id="TID1",
        hash=HASH_A,
        status=status,
        progress=progress,
        files=files if files is not None else [
            RDFile(id=1, path="/Show - 07 (1080p).mkv", bytes=1_400_000_000),
            RDFile(id=2, path="/Show - 07.nfo", bytes=2_000),
        ],
        links=links or [],
    )


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorded_sleep():
    waits: List[float] = []

    async def _sleep(delay: float) -> None:
        waits.append(delay)

    _sleep.waits = waits
    return _sleep
