from dataclasses import dataclass, field
from loguru import logger
from typing import List, Optional

from app.core.config import Settings
from app.services.addon import AddonService
from app.services.anilist import AniListService
from app.services.cache import MagnetLookup, ResolutionCache
from app.services.nyaa import NyaaHtmlIndex, NyaaRssIndex
from app.services.realdebrid import RealDebridAPI
from app.services.resolver import DebridResolver
from app.services.schedule import ScheduleStore
from app.services.search import TorrentSearchAggregator
from app.services.tmdb import TMDBService


@dataclass
class Services:
    store: ScheduleStore
    addon: AddonService
    resolution_cache: ResolutionCache
    lookup: MagnetLookup
    closeables: List[object] = field(default_factory=list)

    async def aclose(self):
        for closeable in self.closeables:
            try:
                await closeable.aclose()
            except Exception as e:
                logger.warning(f"Error closing {type(closeable).__name__}: {e}")


def build_services(settings: Settings) -> Services:
    """
    Wires the addon from settings. Missing credentials disable the features
    that need them (no TMDB enrichment, magnet-only streams).
    """
    resolution_cache = ResolutionCache(ttl=settings.RD_CACHE_TTL)
    lookup = MagnetLookup(maxsize=settings.MAGNET_LOOKUP_SIZE)

    anilist = AniListService(settings.ANILIST_API_URL, max_pages=settings.ANILIST_MAX_PAGES)

    tmdb: Optional[TMDBService] = None
    if settings.TMDB_API_KEY:
        tmdb = TMDBService(settings.TMDB_API_KEY)
    else:
        logger.warning("TMDB_API_KEY missing, image enrichment disabled")

    store = ScheduleStore(anilist, resolution_cache, tmdb=tmdb)

    primary = NyaaHtmlIndex(settings.NYAA_URL, category=settings.NYAA_CATEGORY)
    secondary = NyaaHtmlIndex(settings.NYAA_SECONDARY_URL, category=settings.NYAA_SECONDARY_CATEGORY)
    broad = NyaaRssIndex(settings.NYAA_URL, category=settings.NYAA_BROAD_CATEGORY)
    search = TorrentSearchAggregator(primary, secondary, broad, max_pages=settings.SEARCH_MAX_PAGES)

    api: Optional[RealDebridAPI] = None
    if settings.REALDEBRID_API_KEY:
        api = RealDebridAPI(settings.REALDEBRID_API_KEY)
    else:
        logger.warning("REALDEBRID_API_KEY missing, serving magnet streams only")

    resolver = DebridResolver(
        api,
        resolution_cache,
        poll_interval=settings.poll_interval,
        max_polls=settings.max_polls,
        early_exit_on_fetching=settings.RD_EARLY_EXIT_ON_FETCHING,
        fetching_grace_polls=settings.RD_FETCHING_GRACE_POLLS,
        delete_uncached=settings.RD_DELETE_UNCACHED,
        timeout=settings.RD_RESOLVE_TIMEOUT,
    )

    addon = AddonService(
        store,
        search,
        resolver,
        lookup,
        name=settings.PROJECT_NAME,
        version=settings.VERSION,
        logo_url=settings.LOGO_URL,
        placeholder_poster_url=settings.PLACEHOLDER_POSTER_URL,
        placeholder_downloading_url=settings.PLACEHOLDER_DOWNLOADING_URL,
        placeholder_failed_url=settings.PLACEHOLDER_FAILED_URL,
        debrid_candidates=settings.STREAM_DEBRID_CANDIDATES,
        magnet_limit=settings.STREAM_MAGNET_LIMIT,
    )

    closeables = [c for c in (anilist, tmdb, primary, secondary, broad, api) if c is not None]
    return Services(store=store, addon=addon, resolution_cache=resolution_cache, lookup=lookup,
                    closeables=closeables)
