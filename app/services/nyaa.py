import feedparser
import httpx
from bs4 import BeautifulSoup
from typing import List, Optional

from app.core.exceptions import TorrentIndexError
from app.models.torrent import TorrentCandidate
from app.services.base import TorrentIndex
from app.utils.magnet import build_magnet, extract_info_hash

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"


def _to_int(value, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


class NyaaRssIndex(TorrentIndex):
    """
    Nyaa search through its RSS feed. The feed carries seeders, size and
    info-hash in the `nyaa:` namespace; magnets are rebuilt from the hash.
    The feed has no paging, so it serves the single-page broad search.
    """

    paged = False

    def __init__(self, base_url: str = "https://nyaa.si", category: str = "1_0", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.category = category
        self.name = f"nyaa-rss:{category}"
        self.client = client or httpx.AsyncClient(timeout=timeout, headers={"User-Agent": USER_AGENT})

    async def search_page(self, query: str, page: int = 1) -> List[TorrentCandidate]:
        params = {"page": "rss", "q": query, "c": self.category, "f": "0"}
        try:
            resp = await self.client.get(f"{self.base_url}/", params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise TorrentIndexError(f"{self.name} request failed for '{query}': {e}") from e

        feed = feedparser.parse(resp.content)
        if feed.bozo and not feed.entries:
            raise TorrentIndexError(f"{self.name} returned a malformed feed: {feed.bozo_exception}")

        results = []
        for entry in feed.entries:
            info_hash = (entry.get("nyaa_infohash") or "").lower()
            if len(info_hash) not in (32, 40):
                continue
            title = entry.get("title", "")
            results.append(TorrentCandidate(
                name=title,
                magnet=build_magnet(info_hash, title),
                info_hash=info_hash,
                seeders=_to_int(entry.get("nyaa_seeders")),
                size=entry.get("nyaa_size") or "?",
                source=self.name,
            ))
        return results

    async def aclose(self):
        await self.client.aclose()


class NyaaHtmlIndex(TorrentIndex):
    """
    Nyaa search by scraping the HTML result table. Unlike the feed it pages
    through results with `p`.

    Row layout: category | name | links (torrent, magnet) | size | date | seeders | leechers | completed
    """

    def __init__(self, base_url: str = "https://nyaa.si", category: str = "1_2", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.category = category
        self.name = f"nyaa-html:{category}"
        self.client = client or httpx.AsyncClient(timeout=timeout, headers={"User-Agent": USER_AGENT})

    async def search_page(self, query: str, page: int = 1) -> List[TorrentCandidate]:
        params = {"q": query, "c": self.category, "f": "0", "p": page}
        try:
            resp = await self.client.get(f"{self.base_url}/", params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise TorrentIndexError(f"{self.name} request failed for '{query}' (page {page}): {e}") from e
        return self.parse(resp.text)

    def parse(self, html: str) -> List[TorrentCandidate]:
        soup = BeautifulSoup(html, "html.parser")
        results = []
        for row in soup.select("table.torrent-list tbody tr"):
            cells = row.find_all("td")
            if len(cells) < 6:
                continue

            name_links = [a for a in cells[1].find_all("a") if "comments" not in (a.get("class") or [])]
            if not name_links:
                continue
            name = (name_links[-1].get("title") or name_links[-1].get_text()).strip()

            magnet_tag = cells[2].find("a", href=lambda h: h and h.startswith("magnet:"))
            if not magnet_tag:
                continue
            magnet = magnet_tag["href"]
            info_hash = extract_info_hash(magnet)
            if not info_hash:
                continue

            results.append(TorrentCandidate(
                name=name,
                magnet=magnet,
                info_hash=info_hash,
                seeders=_to_int(cells[5].get_text()),
                size=cells[3].get_text().strip() or "?",
                source=self.name,
            ))
        return results

    async def aclose(self):
        await self.client.aclose()
