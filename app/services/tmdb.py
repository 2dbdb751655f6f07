import httpx
from loguru import logger
from typing import Any, Dict, List, Optional
from async_lru import alru_cache

IMAGE_BASE = "https://image.tmdb.org/t/p"


def pick_image(images: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """English or untagged image first, else whatever comes first."""
    for image in images:
        if image.get("iso_639_1") in ("en", None, ""):
            return image
    return images[0] if images else None


class TMDBService:
    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.base_url = "https://api.themoviedb.org/3"
        self.client = client or httpx.AsyncClient(timeout=5.0)

    @alru_cache(maxsize=256)
    async def search_show(self, query: str, year: Optional[int] = None) -> Optional[int]:
        """
        Search for a TV show and return the TMDB ID of the top result.
        """
        params = {"api_key": self.api_key, "query": query}
        if year:
            params["first_air_date_year"] = year
        try:
            response = await self.client.get(f"{self.base_url}/search/tv", params=params)
            response.raise_for_status()
            data = response.json()

            if data.get("results"):
                return data["results"][0]["id"]
            return None
        except Exception as e:
            logger.error(f"TMDB TV search failed for '{query}': {e}")
            return None

    @alru_cache(maxsize=256)
    async def get_images(self, tmdb_id: int) -> Optional[Dict[str, Optional[str]]]:
        """
        Poster (w500) and backdrop (w1280) URLs for a TV show.
        """
        try:
            response = await self.client.get(
                f"{self.base_url}/tv/{tmdb_id}/images",
                params={"api_key": self.api_key}
            )
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            logger.error(f"TMDB images failed for {tmdb_id}: {e}")
            return None

        backdrop = pick_image(data.get("backdrops") or [])
        poster = pick_image(data.get("posters") or [])
        return {
            "backdrop": f"{IMAGE_BASE}/w1280{backdrop['file_path']}" if backdrop else None,
            "poster": f"{IMAGE_BASE}/w500{poster['file_path']}" if poster else None,
        }

    async def find_images(self, name: str, year: Optional[int] = None) -> Optional[Dict[str, Optional[str]]]:
        tmdb_id = await self.search_show(name, year)
        if not tmdb_id:
            return None
        return await self.get_images(tmdb_id)

    async def aclose(self):
        await self.client.aclose()
