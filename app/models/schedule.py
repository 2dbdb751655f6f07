from pydantic import BaseModel, ConfigDict
from typing import List, Optional


class ShowTitles(BaseModel):
    model_config = ConfigDict(frozen=True)

    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None

    @property
    def display(self) -> str:
        return self.romaji or self.english or self.native or ""


class ShowImages(BaseModel):
    model_config = ConfigDict(frozen=True)

    cover_extra_large: Optional[str] = None
    cover_large: Optional[str] = None
    banner: Optional[str] = None
    tmdb_poster: Optional[str] = None
    tmdb_backdrop: Optional[str] = None


class AiringEntry(BaseModel):
    """
    One episode airing today. Identity is (show_id, episode).
    """
    model_config = ConfigDict(frozen=True)

    show_id: int
    episode: int
    airing_at: int
    titles: ShowTitles
    images: ShowImages = ShowImages()
    description: Optional[str] = None
    genres: List[str] = []
    average_score: Optional[int] = None
    season: Optional[str] = None
    season_year: Optional[int] = None

    @property
    def key(self):
        return (self.show_id, self.episode)
