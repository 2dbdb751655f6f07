import hashlib
import re
from typing import Iterable, Optional
from urllib.parse import quote

_BTIH_RE = re.compile(r"btih:([a-zA-Z0-9]+)")

NYAA_TRACKERS = (
    "http://nyaa.tracker.wf:7777/announce",
    "udp://open.stealth.si:80/announce",
    "udp://tracker.opentrackr.org:1337/announce",
    "udp://exodus.desync.com:6969/announce",
    "udp://tracker.torrent.eu.org:451/announce",
)


def extract_info_hash(magnet: str) -> Optional[str]:
    """
    Returns the lowercase BitTorrent info-hash of a magnet URI, or None.
    Accepts the 40-char hex and the 32-char base32 forms.
    """
    if not magnet:
        return None
    match = _BTIH_RE.search(magnet)
    if not match:
        return None
    info_hash = match.group(1)
    if len(info_hash) not in (32, 40):
        return None
    return info_hash.lower()


def magnet_identity(magnet: str) -> str:
    """Cache key for a magnet: its info-hash, or the magnet itself when unparseable."""
    return extract_info_hash(magnet) or magnet


def short_key(magnet: str) -> str:
    return extract_info_hash(magnet) or hashlib.sha1(magnet.encode("utf-8")).hexdigest()[:16]


def build_magnet(info_hash: str, name: str = "", trackers: Iterable[str] = NYAA_TRACKERS) -> str:
    magnet = f"magnet:?xt=urn:btih:{info_hash}"
    if name:
        magnet += f"&dn={quote(name)}"
    for tracker in trackers:
        magnet += f"&tr={quote(tracker, safe='')}"
    return magnet
