import httpx
from loguru import logger
from pydantic import ValidationError
from typing import Any, Dict, List, Optional

from app.core.exceptions import RealDebridError
from app.models.debrid import RDTorrentInfo, RDTorrentSummary, RDUnrestrictedLink


class RealDebridAPI:
    """
    Client for Real-Debrid API.
    Docs: https://api.real-debrid.com/

    Every method either returns a decoded model or raises RealDebridError
    (HTTP error, timeout, unexpected body).
    """
    base_url = "https://api.real-debrid.com/rest/1.0"

    ADD_TIMEOUT = 15.0
    CALL_TIMEOUT = 10.0

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=self.CALL_TIMEOUT)

    def _get_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request(self, method: str, path: str, timeout: float = CALL_TIMEOUT, **kwargs) -> Any:
        try:
            resp = await self.client.request(
                method, f"{self.base_url}{path}", headers=self._get_headers(), timeout=timeout, **kwargs
            )
        except httpx.HTTPError as e:
            raise RealDebridError(f"{method} {path} failed: {e!r}") from e

        if resp.status_code >= 400:
            raise RealDebridError(f"{method} {path} -> {resp.status_code}: {resp.text[:200]}", resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RealDebridError(f"{method} {path} returned invalid JSON") from e

    async def add_magnet(self, magnet: str) -> str:
        data = await self._request("POST", "/torrents/addMagnet", timeout=self.ADD_TIMEOUT, data={"magnet": magnet})
        torrent_id = (data or {}).get("id")
        if not torrent_id:
            raise RealDebridError("RD did not return torrent ID")
        return str(torrent_id)

    async def list_torrents(self, limit: int = 100) -> List[RDTorrentSummary]:
        data = await self._request("GET", "/torrents", params={"limit": limit})
        if not data:
            return []
        try:
            return [RDTorrentSummary.model_validate(t) for t in data]
        except (ValidationError, TypeError) as e:
            raise RealDebridError(f"Unexpected torrent list: {e}") from e

    async def get_info(self, torrent_id: str) -> RDTorrentInfo:
        data = await self._request("GET", f"/torrents/info/{torrent_id}")
        try:
            return RDTorrentInfo.model_validate(data)
        except ValidationError as e:
            raise RealDebridError(f"Unexpected torrent info for {torrent_id}: {e}") from e

    async def select_files(self, torrent_id: str, file_ids: List[int]) -> None:
        files = ",".join(str(f) for f in file_ids)
        await self._request("POST", f"/torrents/selectFiles/{torrent_id}", data={"files": files})

    async def unrestrict_link(self, link: str) -> RDUnrestrictedLink:
        data = await self._request("POST", "/unrestrict/link", data={"link": link})
        try:
            unrestricted = RDUnrestrictedLink.model_validate(data)
        except ValidationError as e:
            raise RealDebridError(f"Unexpected unrestrict response: {e}") from e
        if not unrestricted.download:
            raise RealDebridError("Unrestrict returned no download URL")
        logger.info(f"RD: URL ready ({unrestricted.filename or '?'})")
        return unrestricted

    async def delete_torrent(self, torrent_id: str) -> None:
        await self._request("DELETE", f"/torrents/delete/{torrent_id}")

    async def aclose(self):
        await self.client.aclose()
