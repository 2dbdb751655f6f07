import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional

from pydantic import BaseModel

from app.utils.magnet import short_key


class ResolutionCacheEntry(BaseModel):
    magnet_identity: str
    url: str
    resolved_at: float


class ResolutionCache:
    """
    Magnet identity -> resolved direct URL, valid for `ttl` seconds.

    Expired entries are treated as absent but not purged. The whole cache is
    cleared on every schedule refresh. Concurrent writers for the same key are
    tolerated, the last one wins.
    """

    def __init__(self, ttl: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, ResolutionCacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, magnet_identity: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(magnet_identity)
        if entry is None:
            return None
        if self._clock() - entry.resolved_at >= self.ttl:
            return None
        return entry.url

    def put(self, magnet_identity: str, url: str) -> None:
        entry = ResolutionCacheEntry(magnet_identity=magnet_identity, url=url, resolved_at=self._clock())
        with self._lock:
            self._entries[magnet_identity] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class MagnetLookup:
    """
    Short identifier -> magnet URI, filled when streams are listed so that
    /resolve/{key} links stay short. Bounded, least recently used keys go first.
    """

    def __init__(self, maxsize: int = 5000):
        self.maxsize = maxsize
        self._magnets: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def register(self, magnet: str) -> str:
        key = short_key(magnet)
        with self._lock:
            self._magnets[key] = magnet
            self._magnets.move_to_end(key)
            while len(self._magnets) > self.maxsize:
                self._magnets.popitem(last=False)
        return key

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            magnet = self._magnets.get(key.lower())
            if magnet is not None:
                self._magnets.move_to_end(key.lower())
            return magnet

    def __len__(self) -> int:
        with self._lock:
            return len(self._magnets)
