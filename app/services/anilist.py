import time
import httpx
from loguru import logger
from pydantic import ValidationError
from typing import Any, Dict, List, Optional, Tuple

from app.core.exceptions import ScheduleUnavailable
from app.models.schedule import AiringEntry, ShowImages, ShowTitles

SCHEDULE_QUERY = """
query ($page: Int, $dayStart: Int, $dayEnd: Int) {
  Page(page: $page, perPage: 50) {
    pageInfo { hasNextPage }
    airingSchedules(airingAt_greater: $dayStart, airingAt_lesser: $dayEnd, sort: TIME) {
      id
      airingAt
      episode
      media {
        id
        title { romaji english native }
        coverImage { extraLarge large }
        bannerImage
        description
        genres
        averageScore
        season
        seasonYear
      }
    }
  }
}
"""


def day_window(now: Optional[float] = None) -> Tuple[int, int]:
    """UTC day boundaries around `now`."""
    now = int(now if now is not None else time.time())
    day_start = now - (now % 86400)
    return day_start, day_start + 86400


def parse_airing_schedule(raw: Dict[str, Any]) -> AiringEntry:
    media = raw.get("media") or {}
    cover = media.get("coverImage") or {}
    return AiringEntry(
        show_id=media["id"],
        episode=raw["episode"],
        airing_at=raw["airingAt"],
        titles=ShowTitles(**(media.get("title") or {})),
        images=ShowImages(
            cover_extra_large=cover.get("extraLarge"),
            cover_large=cover.get("large"),
            banner=media.get("bannerImage"),
        ),
        description=media.get("description"),
        genres=media.get("genres") or [],
        average_score=media.get("averageScore"),
        season=media.get("season"),
        season_year=media.get("seasonYear"),
    )


class AniListService:
    """
    Today's airing schedule from the AniList GraphQL API.
    """

    def __init__(self, base_url: str = "https://graphql.anilist.co", max_pages: int = 3,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url
        self.max_pages = max_pages
        self.client = client or httpx.AsyncClient(timeout=15.0)

    async def fetch_today(self, now: Optional[float] = None) -> List[AiringEntry]:
        """
        Raises ScheduleUnavailable when AniList cannot be reached or answers
        with errors, so callers can keep their previous schedule.
        """
        day_start, day_end = day_window(now)
        entries: List[AiringEntry] = []

        for page in range(1, self.max_pages + 1):
            page_data = await self._fetch_page(page, day_start, day_end)
            for raw in page_data.get("airingSchedules") or []:
                if not isinstance(raw, dict):
                    logger.warning(f"Skipping malformed AniList schedule: {raw!r}")
                    continue
                try:
                    entries.append(parse_airing_schedule(raw))
                except (KeyError, TypeError, ValidationError) as e:
                    logger.warning(f"Skipping malformed AniList schedule {raw.get('id')}: {e}")
            if not (page_data.get("pageInfo") or {}).get("hasNextPage"):
                break

        logger.info(f"AniList returned {len(entries)} airing entries")
        return entries

    async def _fetch_page(self, page: int, day_start: int, day_end: int) -> Dict[str, Any]:
        payload = {
            "query": SCHEDULE_QUERY,
            "variables": {"page": page, "dayStart": day_start, "dayEnd": day_end},
        }
        try:
            response = await self.client.post(self.base_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ScheduleUnavailable(f"AniList error: {e}") from e

        if not isinstance(data, dict):
            raise ScheduleUnavailable(f"AniList returned {type(data).__name__}, expected an object")
        if data.get("errors"):
            raise ScheduleUnavailable(f"AniList error: {data['errors']}")

        body = data.get("data")
        page_data = body.get("Page") if isinstance(body, dict) else None
        if not isinstance(page_data, dict):
            raise ScheduleUnavailable("AniList response has no Page")
        if not isinstance(page_data.get("airingSchedules") or [], list):
            raise ScheduleUnavailable("AniList Page.airingSchedules is not a list")
        return page_data

    async def aclose(self):
        await self.client.aclose()
