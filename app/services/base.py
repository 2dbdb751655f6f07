from abc import ABC, abstractmethod
from typing import List

from app.models.debrid import ResolutionOutcome
from app.models.torrent import TorrentCandidate


class TorrentIndex(ABC):
    """
    Abstract Base Class for torrent indexes (Nyaa RSS, Nyaa HTML, ...)
    """

    name: str = "index"
    # Unpaged indexes are only asked for page 1
    paged: bool = True

    @abstractmethod
    async def search_page(self, query: str, page: int = 1) -> List[TorrentCandidate]:
        """
        Returns one page of results for a text query. An empty list signals
        the end of pagination. Network and parse failures raise.
        """
        pass


class DebridClient(ABC):
    """
    Abstract Base Class for Debrid resolvers (RealDebrid, ...)
    """

    @abstractmethod
    async def resolve(self, magnet: str) -> ResolutionOutcome:
        """
        Resolves a magnet to a direct download link.
        Must handle:
        1. Adding magnet to service (or reusing an existing job)
        2. Selecting the video file
        3. Polling and unrestricting the link
        Never raises; remote failures become a failed/downloading outcome.
        """
        pass
