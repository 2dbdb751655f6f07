import asyncio
import time
from loguru import logger
from typing import List, Optional, Tuple

from app.core.exceptions import UpstreamUnavailable
from app.models.schedule import AiringEntry
from app.services.anilist import AniListService
from app.services.cache import ResolutionCache
from app.services.tmdb import TMDBService


class ScheduleStore:
    """
    Holds today's airing entries.

    A refresh replaces the whole set at once; readers see either the old or
    the new tuple. When the source fails the previous set stays in place.
    Every refresh clears the resolution cache, since resolved magnets belong
    to the day's catalog.
    """

    ENRICH_CONCURRENCY = 5

    def __init__(
        self,
        source: AniListService,
        resolution_cache: ResolutionCache,
        tmdb: Optional[TMDBService] = None,
    ):
        self.source = source
        self.resolution_cache = resolution_cache
        self.tmdb = tmdb
        self._entries: Tuple[AiringEntry, ...] = ()
        self._refresh_lock = asyncio.Lock()
        self.last_refresh: Optional[float] = None

    def current_entries(self) -> Tuple[AiringEntry, ...]:
        return self._entries

    def find(self, show_id: int, episode: int) -> Optional[AiringEntry]:
        for entry in self._entries:
            if entry.show_id == show_id and entry.episode == episode:
                return entry
        return None

    async def refresh(self) -> bool:
        async with self._refresh_lock:
            logger.info("Updating schedule cache...")
            try:
                entries = await self.source.fetch_today()
            except UpstreamUnavailable as e:
                logger.error(f"Schedule refresh failed, keeping {len(self._entries)} cached entries: {e}")
                return False
            finally:
                self.resolution_cache.clear()
                logger.info("RD cache cleared")

            entries = await self._enrich(entries)
            self._entries = tuple(entries)
            self.last_refresh = time.time()
            logger.info(f"Cache: {len(self._entries)} anime")
            return True

    async def _enrich(self, entries: List[AiringEntry]) -> List[AiringEntry]:
        if self.tmdb is None:
            return entries

        semaphore = asyncio.Semaphore(self.ENRICH_CONCURRENCY)

        async def enrich_one(entry: AiringEntry) -> AiringEntry:
            name = entry.titles.english or entry.titles.romaji
            if not name:
                return entry
            async with semaphore:
                try:
                    images = await self.tmdb.find_images(name, entry.season_year)
                except Exception as e:
                    logger.warning(f"TMDB enrichment failed for '{name}': {e}")
                    return entry
            if not images:
                return entry
            return entry.model_copy(update={
                "images": entry.images.model_copy(update={
                    "tmdb_poster": images.get("poster"),
                    "tmdb_backdrop": images.get("backdrop"),
                })
            })

        return list(await asyncio.gather(*(enrich_one(e) for e in entries)))
