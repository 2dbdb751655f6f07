class UpstreamUnavailable(Exception):
    """A remote collaborator (AniList, TMDB, Nyaa, Real-Debrid) failed or timed out."""


class ScheduleUnavailable(UpstreamUnavailable):
    pass


class TorrentIndexError(UpstreamUnavailable):
    pass


class RealDebridError(UpstreamUnavailable):
    """Real-Debrid returned an error status or an undecodable body."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationMissing(Exception):
    """A credential required by an optional feature is not configured."""
