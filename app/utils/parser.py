import re
from typing import Iterable, List

from app.models.torrent import TorrentCandidate

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".avi", ".webm", ".m4v", ".flv", ".mov", ".wmv")

_HTML_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str) -> str:
    return _HTML_TAG_RE.sub("", text or "").strip()


def is_video_file(path: str) -> bool:
    return (path or "").lower().endswith(VIDEO_EXTENSIONS)


class VideoParser:
    @staticmethod
    def get_quality(filename: str) -> str:
        filename = filename.lower()
        if any(x in filename for x in ["2160p", "4k", "uhd"]):
            return "4K"
        if "1080p" in filename:
            return "1080p"
        if "720p" in filename:
            return "720p"
        if "480p" in filename:
            return "480p"
        return "Unknown"

    @staticmethod
    def get_release_group(filename: str) -> str:
        # Fansub releases lead with the group: "[SubsPlease] Title - 05 (1080p)"
        match = re.match(r"^\s*\[([^\]]+)\]", filename)
        if match:
            return match.group(1).strip()
        return ""


class TitleVariants:
    """
    Builds the query variants tried against torrent indexes for one title.
    """

    _SEASON_MARKERS = [
        re.compile(r"\b\d+(?:st|nd|rd|th) Season\b", re.IGNORECASE),
        re.compile(r"\bSeason \d+\b", re.IGNORECASE),
        re.compile(r"\bPart \d+\b", re.IGNORECASE),
    ]

    @classmethod
    def clean(cls, title: str) -> str:
        cleaned = title
        for pattern in cls._SEASON_MARKERS:
            cleaned = pattern.sub("", cleaned)
        cleaned = re.sub(r"\([^)]*\)", "", cleaned)
        cleaned = cleaned.replace(":", "")
        return re.sub(r"\s+", " ", cleaned).strip()

    @staticmethod
    def alphanumeric(title: str) -> str:
        return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", " ", title)).strip()

    @classmethod
    def bases(cls, title: str) -> List[str]:
        """Title forms in priority order, deduplicated, empty ones dropped."""
        title = (title or "").strip()
        candidates = [
            title,
            cls.clean(title),
            title.split(":")[0].strip(),
            title.split("-")[0].strip(),
            cls.alphanumeric(title),
        ]
        bases = []
        for base in candidates:
            if base and base not in bases:
                bases.append(base)
        return bases

    @staticmethod
    def with_episode(bases: Iterable[str], episode: int) -> List[str]:
        queries = []
        for base in bases:
            for ep in (f"{episode:02d}", str(episode)):
                query = f"{base} {ep}"
                if query not in queries:
                    queries.append(query)
        return queries

    @classmethod
    def build(cls, title: str, episode: int) -> List[str]:
        return cls.with_episode(cls.bases(title), episode)


class EpisodeMatcher:
    """
    Conservative filter keeping torrents whose name denotes a given episode.

    The number (bare or zero-padded) must follow a separator, an E/EP/Episode
    marker or an SxxEyy marker, and must not be followed by another digit or
    by a decimal part, a bit depth ("10bit"), an ordinal ("2nd") or a
    resolution suffix ("720p"). Version tags ("05v2") are accepted.
    """

    # Lookbehinds must be fixed width, hence one per season length
    _MARKER = (
        r"(?:"
        r"(?<![a-z0-9])e(?:p(?:isode)?)?\.?\s*"
        r"|(?<=s\d)e"
        r"|(?<=s\d\d)e"
        r"|(?<!season)(?<!part)(?<!cour)[\s\-_]"
        r")"
    )
    _TRAILER = r"(?!\d)(?!\.\d)(?!\s?-?bit)(?!st|nd|rd|th)(?![pi](?![a-z]))"

    @classmethod
    def pattern(cls, episode: int) -> "re.Pattern":
        return re.compile(rf"{cls._MARKER}0*{int(episode)}{cls._TRAILER}", re.IGNORECASE)

    @classmethod
    def matches(cls, name: str, episode: int) -> bool:
        return bool(cls.pattern(episode).search(name or ""))

    @classmethod
    def filter(cls, candidates: Iterable[TorrentCandidate], episode: int) -> List[TorrentCandidate]:
        pattern = cls.pattern(episode)
        return [c for c in candidates if pattern.search(c.name or "")]
