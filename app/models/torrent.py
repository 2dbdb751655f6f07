from pydantic import BaseModel, ConfigDict


class TorrentCandidate(BaseModel):
    """
    A torrent returned by an index. `info_hash` (lowercase) is the dedup identity.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    magnet: str
    info_hash: str
    seeders: int = 0
    size: str = "?"
    source: str = ""
