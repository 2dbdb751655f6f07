from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class CatalogExtra(BaseModel):
    name: str
    isRequired: bool = False


class CatalogDescriptor(BaseModel):
    type: str
    id: str
    name: str
    extra: List[CatalogExtra] = []


class Manifest(BaseModel):
    id: str
    version: str
    name: str
    description: str
    logo: Optional[str] = None
    resources: List[str]
    types: List[str]
    catalogs: List[CatalogDescriptor]
    idPrefixes: List[str]
    behaviorHints: Dict[str, Any] = {}


class MetaPreview(BaseModel):
    id: str
    type: str = "series"
    name: str
    poster: Optional[str] = None
    background: Optional[str] = None
    logo: Optional[str] = None
    description: Optional[str] = None
    genres: List[str] = []
    releaseInfo: Optional[str] = None
    imdbRating: Optional[str] = None


class Video(BaseModel):
    id: str
    title: str
    season: int = 1
    episode: int
    released: str
    thumbnail: Optional[str] = None


class Meta(MetaPreview):
    videos: List[Video] = []


class Stream(BaseModel):
    name: str
    title: str
    url: str
    behaviorHints: Optional[Dict[str, Any]] = None
