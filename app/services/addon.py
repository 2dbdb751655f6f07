from datetime import datetime, timezone
from loguru import logger
from typing import List, Optional, Tuple

from app.models.debrid import OutcomeStatus
from app.models.schedule import AiringEntry
from app.models.stremio import CatalogDescriptor, CatalogExtra, Manifest, Meta, MetaPreview, Stream, Video
from app.models.torrent import TorrentCandidate
from app.services.cache import MagnetLookup
from app.services.resolver import DebridResolver
from app.services.schedule import ScheduleStore
from app.services.search import TorrentSearchAggregator
from app.utils.parser import EpisodeMatcher, VideoParser, strip_html

ID_PREFIX = "nyaa"
CATALOG_ID = "anime-today"
CONTENT_TYPE = "series"


def parse_stremio_id(stremio_id: str) -> Optional[Tuple[int, int]]:
    """'nyaa:{showId}:{episode}' -> (showId, episode)"""
    parts = (stremio_id or "").split(":")
    if len(parts) != 3 or parts[0] != ID_PREFIX:
        return None
    try:
        return int(parts[1]), int(parts[2])
    except ValueError:
        return None


def make_stremio_id(entry: AiringEntry) -> str:
    return f"{ID_PREFIX}:{entry.show_id}:{entry.episode}"


class AddonService:
    """
    Catalog, meta and stream handlers of the Stremio addon protocol, plus the
    lazy /resolve step behind each Real-Debrid stream entry.
    """

    def __init__(
        self,
        store: ScheduleStore,
        search: TorrentSearchAggregator,
        resolver: DebridResolver,
        lookup: MagnetLookup,
        name: str = "Anime Today",
        version: str = "2.0.0",
        logo_url: Optional[str] = None,
        placeholder_poster_url: str = "",
        placeholder_downloading_url: str = "",
        placeholder_failed_url: str = "",
        debrid_candidates: int = 3,
        magnet_limit: int = 10,
    ):
        self.store = store
        self.search = search
        self.resolver = resolver
        self.lookup = lookup
        self.name = name
        self.version = version
        self.logo_url = logo_url
        self.placeholder_poster_url = placeholder_poster_url
        self.placeholder_downloading_url = placeholder_downloading_url
        self.placeholder_failed_url = placeholder_failed_url
        self.debrid_candidates = debrid_candidates
        self.magnet_limit = magnet_limit

    def manifest(self) -> Manifest:
        return Manifest(
            id="community.anime.today.rd",
            version=self.version,
            name=self.name,
            description="Today's airing anime with Nyaa torrents through Real-Debrid",
            logo=self.logo_url,
            resources=["catalog", "meta", "stream"],
            types=[CONTENT_TYPE],
            catalogs=[CatalogDescriptor(
                type=CONTENT_TYPE,
                id=CATALOG_ID,
                name="Anime Today",
                extra=[CatalogExtra(name="skip")],
            )],
            idPrefixes=[f"{ID_PREFIX}:"],
            behaviorHints={"configurable": False, "configurationRequired": False},
        )

    # --- Images ---

    def _poster(self, entry: AiringEntry) -> str:
        images = entry.images
        return images.tmdb_poster or images.cover_extra_large or images.cover_large or self.placeholder_poster_url

    def _background(self, entry: AiringEntry) -> str:
        return entry.images.banner or entry.images.tmdb_backdrop or self._poster(entry)

    @staticmethod
    def _rating(entry: AiringEntry) -> Optional[str]:
        if not entry.average_score:
            return None
        return f"{entry.average_score / 10:.1f}"

    @staticmethod
    def _season_label(entry: AiringEntry) -> str:
        return f"{entry.season or ''} {entry.season_year or ''}".strip()

    # --- Catalog ---

    def catalog(self, catalog_type: str, catalog_id: str, skip: int = 0) -> List[MetaPreview]:
        if catalog_type != CONTENT_TYPE or catalog_id != CATALOG_ID:
            return []
        # Single page
        if skip > 0:
            return []

        entries = sorted(self.store.current_entries(), key=lambda e: e.airing_at)
        return [
            MetaPreview(
                id=make_stremio_id(e),
                name=e.titles.display,
                poster=self._poster(e),
                background=self._background(e),
                logo=e.images.banner,
                description=f"Episode {e.episode}\n\n{strip_html(e.description)}",
                genres=list(e.genres),
                releaseInfo=f"{self._season_label(e)} - Ep {e.episode}".strip(),
                imdbRating=self._rating(e),
            )
            for e in entries
        ]

    # --- Meta ---

    def meta(self, stremio_id: str) -> Optional[Meta]:
        parsed = parse_stremio_id(stremio_id)
        if not parsed:
            return None
        entry = self.store.find(*parsed)
        if entry is None:
            return None

        poster = self._poster(entry)
        released = datetime.fromtimestamp(entry.airing_at, tz=timezone.utc).isoformat().replace("+00:00", "Z")
        return Meta(
            id=stremio_id,
            name=entry.titles.display,
            poster=poster,
            background=self._background(entry),
            logo=entry.images.banner,
            description=strip_html(entry.description),
            genres=list(entry.genres),
            releaseInfo=f"{self._season_label(entry)} - Episode {entry.episode}".strip(),
            imdbRating=self._rating(entry),
            videos=[Video(
                id=stremio_id,
                title=f"Episode {entry.episode}",
                episode=entry.episode,
                released=released,
                thumbnail=poster,
            )],
        )

    # --- Streams ---

    async def find_torrents(self, entry: AiringEntry) -> List[TorrentCandidate]:
        titles = entry.titles
        primary = titles.romaji or titles.english
        torrents = await self.search.search(primary, entry.episode)
        if not torrents and titles.english and titles.english != primary:
            torrents = await self.search.search(titles.english, entry.episode)
        return EpisodeMatcher.filter(torrents, entry.episode)

    @staticmethod
    def _describe(torrent: TorrentCandidate) -> str:
        quality = VideoParser.get_quality(torrent.name)
        group = VideoParser.get_release_group(torrent.name)
        details = f"👥 {torrent.seeders} seeders | 📦 {torrent.size}"
        if quality != "Unknown":
            details += f" | {quality}"
        if group:
            details += f" | 🏷️ {group}"
        return f"{torrent.name}\n{details}"

    async def streams(self, stremio_id: str, base_url: str) -> List[Stream]:
        parsed = parse_stremio_id(stremio_id)
        if not parsed:
            return []
        entry = self.store.find(*parsed)
        if entry is None:
            return []

        logger.info(f"Stream: {entry.titles.display} Ep {entry.episode}")
        torrents = [t for t in await self.find_torrents(entry) if t.magnet]

        if not torrents:
            logger.info("No matching torrents")
            return [Stream(
                name="⏳ Not available yet",
                title=f"Episode {entry.episode} has not been uploaded to Nyaa yet\n\nTry again later",
                url="https://nyaa.si",
                behaviorHints={"notWebReady": True},
            )]

        logger.info(f"{len(torrents)} matching torrents")
        streams = []

        if self.resolver.configured:
            for torrent in torrents[:self.debrid_candidates]:
                key = self.lookup.register(torrent.magnet)
                streams.append(Stream(
                    name="⚡ RealDebrid",
                    title=f"🎬 {self._describe(torrent)}",
                    url=f"{base_url.rstrip('/')}/resolve/{key}",
                ))

        for torrent in torrents[:self.magnet_limit]:
            streams.append(Stream(
                name="Nyaa (Magnet)",
                title=f"🧲 {self._describe(torrent)}",
                url=torrent.magnet,
                behaviorHints={"notWebReady": True},
            ))

        logger.info(f"{len(streams)} streams total")
        return streams

    # --- Lazy resolution ---

    async def resolve(self, key: str) -> str:
        """URL to redirect the player to for a /resolve/{key} request."""
        magnet = self.lookup.get(key)
        if magnet is None:
            logger.warning(f"Unknown resolve key {key}")
            return self.placeholder_failed_url

        outcome = await self.resolver.resolve(magnet)
        if outcome.status == OutcomeStatus.READY:
            return outcome.url
        if outcome.status == OutcomeStatus.DOWNLOADING:
            logger.info(f"RD: {key} is downloading ({outcome.progress:.0f}%)")
            return self.placeholder_downloading_url
        logger.info(f"RD: Not available for {key}: {outcome.reason}")
        return self.placeholder_failed_url
