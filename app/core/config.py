from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Anime Today"
    VERSION: str = "2.0.0"
    PORT: int = 7000
    LOG_LEVEL: str = "INFO"

    # Public base URL used to build /resolve links (falls back to the request URL)
    PUBLIC_URL: Optional[str] = None

    # External credentials (features are skipped when missing)
    REALDEBRID_API_KEY: Optional[str] = None
    TMDB_API_KEY: Optional[str] = None

    # Schedule source
    ANILIST_API_URL: str = "https://graphql.anilist.co"
    ANILIST_MAX_PAGES: int = 3
    SCHEDULE_REFRESH_HOUR: int = 4
    SCHEDULE_REFRESH_INTERVAL_HOURS: int = 6

    # Torrent indexes
    NYAA_URL: str = "https://nyaa.si"
    NYAA_CATEGORY: str = "1_2"  # English-translated
    NYAA_SECONDARY_URL: str = "https://nyaa.si"
    NYAA_SECONDARY_CATEGORY: str = "1_4"  # Raw
    NYAA_BROAD_CATEGORY: str = "1_0"  # All anime
    SEARCH_MAX_PAGES: int = 2

    # Real-Debrid resolution
    RD_POLL_INTERVAL: float = 2.0
    RD_MAX_POLLS: int = 15
    RD_FAST_MODE: bool = False
    RD_EARLY_EXIT_ON_FETCHING: bool = True
    RD_FETCHING_GRACE_POLLS: int = 3
    RD_DELETE_UNCACHED: bool = True
    RD_RESOLVE_TIMEOUT: float = 32.0
    RD_CACHE_TTL: float = 3600.0

    # Stream listing
    STREAM_DEBRID_CANDIDATES: int = 3
    STREAM_MAGNET_LIMIT: int = 10
    MAGNET_LOOKUP_SIZE: int = 5000

    # Fallback assets
    PLACEHOLDER_POSTER_URL: str = "https://via.placeholder.com/230x345/1a1a2e/ffffff?text=No+Image"
    PLACEHOLDER_DOWNLOADING_URL: str = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4"
    PLACEHOLDER_FAILED_URL: str = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerEscapes.mp4"
    LOGO_URL: str = "https://raw.githubusercontent.com/david325345/animetoday/main/public/logo.png"

    @property
    def poll_interval(self) -> float:
        return 1.0 if self.RD_FAST_MODE else self.RD_POLL_INTERVAL

    @property
    def max_polls(self) -> int:
        return 5 if self.RD_FAST_MODE else self.RD_MAX_POLLS

    class Config:
        env_file = ".env"

settings = Settings()
