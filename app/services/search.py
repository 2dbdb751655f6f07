import asyncio
from loguru import logger
from typing import List, Optional

from app.models.torrent import TorrentCandidate
from app.services.base import TorrentIndex
from app.utils.parser import TitleVariants


class TorrentSearchAggregator:
    """
    Searches torrent indexes with several spellings of a title and merges the
    results into one list, unique by info-hash, sorted by seeders.

    Fallback chain: primary index -> secondary index -> broadened primary
    query (first two title forms only).
    """

    BROAD_VARIANT_BASES = 2

    def __init__(
        self,
        primary: TorrentIndex,
        secondary: Optional[TorrentIndex] = None,
        broad: Optional[TorrentIndex] = None,
        max_pages: int = 2,
    ):
        self.primary = primary
        self.secondary = secondary
        self.broad = broad
        self.max_pages = max_pages

    async def search(self, title: str, episode: int) -> List[TorrentCandidate]:
        if not title:
            return []

        queries = TitleVariants.build(title, episode)

        results = await self._search_index(self.primary, queries)
        if not results and self.secondary is not None:
            logger.info(f"No results on {self.primary.name} for '{title}' ep {episode}, trying {self.secondary.name}")
            results = await self._search_index(self.secondary, queries)
        if not results and self.broad is not None:
            broad_queries = TitleVariants.with_episode(TitleVariants.bases(title)[:self.BROAD_VARIANT_BASES], episode)
            logger.info(f"Still nothing for '{title}' ep {episode}, broad search on {self.broad.name}")
            results = await self._search_index(self.broad, broad_queries)

        if results:
            logger.info(f"Total unique: {len(results)} torrents for '{title}' ep {episode}")
        # sort is stable, so equal seeders keep first-seen order
        return sorted(results, key=lambda t: t.seeders, reverse=True)

    async def _search_index(self, index: TorrentIndex, queries: List[str]) -> List[TorrentCandidate]:
        pages = await asyncio.gather(*(self._search_query(index, q) for q in queries))
        return self.merge(pages)

    async def _search_query(self, index: TorrentIndex, query: str) -> List[TorrentCandidate]:
        torrents = []
        max_pages = self.max_pages if index.paged else 1
        for page in range(1, max_pages + 1):
            try:
                result = await index.search_page(query, page)
            except Exception as e:
                logger.warning(f"{index.name} error for '{query}' (page {page}): {e}")
                break
            if not result:
                break
            torrents.extend(result)

        if torrents:
            logger.info(f"Found {len(torrents)} torrents for '{query}' on {index.name}")
        return torrents

    @staticmethod
    def merge(batches: List[List[TorrentCandidate]]) -> List[TorrentCandidate]:
        """First occurrence of each info-hash wins; seeders are not merged."""
        seen = set()
        merged = []
        for batch in batches:
            for torrent in batch:
                key = torrent.info_hash.lower()
                if key in seen:
                    continue
                seen.add(key)
                merged.append(torrent)
        return merged
