import time
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class RDTorrentStatus(str, Enum):
    """Real-Debrid torrent status vocabulary"""
    MAGNET_ERROR = "magnet_error"
    MAGNET_CONVERSION = "magnet_conversion"
    WAITING_FILES_SELECTION = "waiting_files_selection"
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    ERROR = "error"
    VIRUS = "virus"
    COMPRESSING = "compressing"
    UPLOADING = "uploading"
    DEAD = "dead"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES

    @property
    def is_fetching(self) -> bool:
        return self in FETCHING_STATUSES


FAILURE_STATUSES = frozenset({
    RDTorrentStatus.DEAD,
    RDTorrentStatus.ERROR,
    RDTorrentStatus.VIRUS,
    RDTorrentStatus.MAGNET_ERROR,
})

FETCHING_STATUSES = frozenset({
    RDTorrentStatus.QUEUED,
    RDTorrentStatus.DOWNLOADING,
})


class RDFile(BaseModel):
    id: int
    path: str = ""
    bytes: int = 0
    selected: int = 0


class RDTorrentSummary(BaseModel):
    """Entry of GET /torrents"""
    id: str
    hash: str = ""
    filename: str = ""
    status: RDTorrentStatus = RDTorrentStatus.UNKNOWN
    progress: float = 0


class RDTorrentInfo(BaseModel):
    """Body of GET /torrents/info/{id}"""
    id: str
    hash: str = ""
    filename: str = ""
    status: RDTorrentStatus = RDTorrentStatus.UNKNOWN
    progress: float = 0
    files: List[RDFile] = []
    links: List[str] = []

    @property
    def has_selection(self) -> bool:
        return any(f.selected for f in self.files)


class RDUnrestrictedLink(BaseModel):
    id: Optional[str] = None
    filename: Optional[str] = None
    filesize: int = 0
    download: Optional[str] = None


class ResolutionState(str, Enum):
    SUBMITTED = "submitted"
    FILES_LISTED = "files_listed"
    FILES_SELECTED = "files_selected"
    LINK_READY = "link_ready"
    UNRESTRICTED = "unrestricted"
    NOT_CACHED = "not_cached"
    REMOTE_ERROR = "remote_error"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ResolutionState.UNRESTRICTED,
            ResolutionState.NOT_CACHED,
            ResolutionState.REMOTE_ERROR,
            ResolutionState.TIMEOUT,
        )


class ResolutionAttempt(BaseModel):
    """
    A single run of the resolution state machine for one magnet.
    """
    magnet_identity: str
    state: ResolutionState = ResolutionState.SUBMITTED
    torrent_id: Optional[str] = None
    # False when an existing remote job was reused
    created_remote: bool = False
    selected_file_id: Optional[int] = None
    result_url: Optional[str] = None
    created_at: float = Field(default_factory=time.monotonic)


class OutcomeStatus(str, Enum):
    READY = "ready"
    DOWNLOADING = "downloading"
    FAILED = "failed"


class ResolutionOutcome(BaseModel):
    status: OutcomeStatus
    url: Optional[str] = None
    progress: float = 0
    reason: Optional[str] = None

    @classmethod
    def ready(cls, url: str) -> "ResolutionOutcome":
        return cls(status=OutcomeStatus.READY, url=url, progress=100)

    @classmethod
    def downloading(cls, progress: float = 0) -> "ResolutionOutcome":
        return cls(status=OutcomeStatus.DOWNLOADING, progress=progress)

    @classmethod
    def failed(cls, reason: str) -> "ResolutionOutcome":
        return cls(status=OutcomeStatus.FAILED, reason=reason)

    @property
    def is_ready(self) -> bool:
        return self.status == OutcomeStatus.READY
