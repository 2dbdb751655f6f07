import asyncio
from loguru import logger
from typing import Awaitable, Callable, List, Optional, Tuple

from app.core.exceptions import ConfigurationMissing, RealDebridError
from app.models.debrid import (
    RDFile,
    RDTorrentStatus,
    ResolutionAttempt,
    ResolutionOutcome,
    ResolutionState,
)
from app.services.base import DebridClient
from app.services.cache import ResolutionCache
from app.services.realdebrid import RealDebridAPI
from app.utils.magnet import extract_info_hash, magnet_identity
from app.utils.parser import is_video_file
from app.utils.polling import poll_until


def select_best_file(files: List[RDFile]) -> Optional[RDFile]:
    """Largest video file, else the largest file overall."""
    if not files:
        return None
    videos = [f for f in files if is_video_file(f.path)]
    pool = videos or files
    return max(pool, key=lambda f: f.bytes)


class DebridResolver(DebridClient):
    """
    Turns a magnet into a direct Real-Debrid URL within a bounded time.

    1. Resolution cache lookup
    2. Reuse an existing RD job for the same hash, else add the magnet
    3. Torrent info: links already present -> unrestrict right away
    4. Select the best file
    5. Poll until a link shows up, a failure status is reported, or the
       torrent is found to be fetching (cheap exit)
    6. Unrestrict, cache, return
    """

    def __init__(
        self,
        api: Optional[RealDebridAPI],
        cache: ResolutionCache,
        poll_interval: float = 2.0,
        max_polls: int = 15,
        early_exit_on_fetching: bool = True,
        fetching_grace_polls: int = 3,
        delete_uncached: bool = True,
        timeout: float = 32.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.cache = cache
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.early_exit_on_fetching = early_exit_on_fetching
        self.fetching_grace_polls = fetching_grace_polls
        self.delete_uncached = delete_uncached
        self.timeout = timeout
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self.api is not None

    async def resolve(self, magnet: str) -> ResolutionOutcome:
        identity = magnet_identity(magnet)

        cached = self.cache.get(identity)
        if cached:
            logger.info(f"RD: Cached URL for {identity}")
            return ResolutionOutcome.ready(cached)

        try:
            self._require_api()
        except ConfigurationMissing as e:
            logger.warning(str(e))
            return ResolutionOutcome.failed("debrid not configured")

        attempt = ResolutionAttempt(magnet_identity=identity)
        try:
            return await asyncio.wait_for(self._run(attempt, magnet), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._transition(attempt, ResolutionState.TIMEOUT)
            logger.warning(f"RD: Gave up on {identity} after {self.timeout:.0f}s")
            return ResolutionOutcome.downloading()
        except RealDebridError as e:
            self._transition(attempt, ResolutionState.REMOTE_ERROR)
            logger.error(f"RD error: {e}")
            return ResolutionOutcome.failed(str(e))
        except Exception as e:
            self._transition(attempt, ResolutionState.REMOTE_ERROR)
            logger.exception(f"RD Resolve Exception: {e}")
            return ResolutionOutcome.failed("unexpected error")

    def _require_api(self) -> RealDebridAPI:
        if self.api is None:
            raise ConfigurationMissing("No RealDebrid API Key configured")
        return self.api

    def _transition(self, attempt: ResolutionAttempt, state: ResolutionState) -> None:
        logger.debug(f"RD: {attempt.magnet_identity} {attempt.state.value} -> {state.value}")
        attempt.state = state

    async def _run(self, attempt: ResolutionAttempt, magnet: str) -> ResolutionOutcome:
        # 1. Submit (or reuse)
        attempt.torrent_id, attempt.created_remote = await self._submit(magnet)
        self._transition(attempt, ResolutionState.SUBMITTED)

        # 2. File listing
        info = await self.api.get_info(attempt.torrent_id)
        self._transition(attempt, ResolutionState.FILES_LISTED)
        logger.info(f"RD: Status: {info.status.value}, Files: {len(info.files)}")

        if info.status.is_failure:
            self._transition(attempt, ResolutionState.REMOTE_ERROR)
            return ResolutionOutcome.failed(info.status.value)

        if info.links:
            logger.info("RD: Links already available!")
            outcome = await self._finish(attempt, info.links[0])
            if outcome is not None:
                return outcome

        # 3. File selection
        if info.status == RDTorrentStatus.WAITING_FILES_SELECTION or not info.has_selection:
            target = select_best_file(info.files)
            if target is None:
                self._transition(attempt, ResolutionState.REMOTE_ERROR)
                logger.error("RD: No files")
                return ResolutionOutcome.failed("no files")
            logger.info(f"RD: Selected: {target.path} ({round(target.bytes / 1024 / 1024)}MB)")
            await self.api.select_files(attempt.torrent_id, [target.id])
            attempt.selected_file_id = target.id
        self._transition(attempt, ResolutionState.FILES_SELECTED)

        # 4. Bounded polling
        last_progress = {"value": info.progress}

        async def check(poll: int) -> Optional[ResolutionOutcome]:
            try:
                current = await self.api.get_info(attempt.torrent_id)
            except RealDebridError as e:
                logger.warning(f"RD: Poll {poll + 1}/{self.max_polls} failed: {e}")
                return None

            status = current.status
            last_progress["value"] = current.progress
            logger.info(f"RD: Poll {poll + 1}/{self.max_polls} - {status.value}")

            if status.is_failure:
                self._transition(attempt, ResolutionState.REMOTE_ERROR)
                logger.error(f"RD: {status.value}")
                return ResolutionOutcome.failed(status.value)

            if current.links:
                return await self._finish(attempt, current.links[0])

            if self.early_exit_on_fetching and status.is_fetching and poll >= self.fetching_grace_polls:
                self._transition(attempt, ResolutionState.NOT_CACHED)
                logger.info("RD: Not cached, skipping")
                await self._discard(attempt)
                return ResolutionOutcome.downloading(current.progress)
            return None

        outcome = await poll_until(check, self.poll_interval, self.max_polls, sleep=self._sleep)
        if outcome is not None:
            return outcome

        # 5. Exhaustion
        self._transition(attempt, ResolutionState.TIMEOUT)
        logger.warning(f"RD: Timeout after {self.max_polls} polls")
        return ResolutionOutcome.downloading(last_progress["value"])

    async def _submit(self, magnet: str) -> Tuple[str, bool]:
        """Remote job id, and whether this call created it."""
        info_hash = extract_info_hash(magnet)
        if info_hash:
            try:
                for torrent in await self.api.list_torrents():
                    if torrent.hash.lower() == info_hash and not torrent.status.is_failure:
                        logger.info(f"RD: Reusing torrent {torrent.id} ({torrent.status.value})")
                        return torrent.id, False
            except RealDebridError as e:
                logger.warning(f"RD: Could not list torrents, adding magnet: {e}")

        logger.info("RD: Adding magnet...")
        torrent_id = await self.api.add_magnet(magnet)
        logger.info(f"RD: Torrent ID: {torrent_id}")
        return torrent_id, True

    async def _finish(self, attempt: ResolutionAttempt, link: str) -> Optional[ResolutionOutcome]:
        """Unrestrict a ready link. Returns None when unrestriction fails."""
        self._transition(attempt, ResolutionState.LINK_READY)
        try:
            unrestricted = await self.api.unrestrict_link(link)
        except RealDebridError as e:
            logger.error(f"RD unrestrict error: {e}")
            return None

        attempt.result_url = unrestricted.download
        self._transition(attempt, ResolutionState.UNRESTRICTED)
        self.cache.put(attempt.magnet_identity, unrestricted.download)
        return ResolutionOutcome.ready(unrestricted.download)

    async def _discard(self, attempt: ResolutionAttempt) -> None:
        # Reused jobs belong to someone else
        if not self.delete_uncached or not attempt.created_remote:
            return
        try:
            await self.api.delete_torrent(attempt.torrent_id)
        except RealDebridError as e:
            logger.debug(f"RD: Delete of {attempt.torrent_id} failed: {e}")
