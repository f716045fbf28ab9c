"""
Async client for the Pixiv web AJAX API and artwork pages.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from pixiv_cli.exceptions import RemoteRequestFailed

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
)
REFERER = "https://www.pixiv.net/"


def build_request_headers(accept: str = "*/*") -> Dict[str, str]:
    """Headers Pixiv expects on every request, including image CDN fetches."""
    return {"User-Agent": USER_AGENT, "Referer": REFERER, "Accept": accept}


class PixivAPIClient:
    """
    Async client for the JSON endpoints used by the Pixiv web frontend.

    The session cookie (PHPSESSID) is supplied by configuration and sent
    unchanged; this client never logs in.
    """

    BASE_URL = "https://www.pixiv.net/"

    def __init__(
        self,
        session_cookie: str = "",
        base_url: Optional[str] = None,
        rate_limiter: Optional[AdaptiveRateLimiter] = None,
    ):
        self.session_cookie = session_cookie
        self.base_url = base_url or self.BASE_URL
        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = rate_limiter or AdaptiveRateLimiter()

    @property
    def cookies(self) -> Dict[str, str]:
        return {"PHPSESSID": self.session_cookie} if self.session_cookie else {}

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=build_request_headers("application/json"),
                cookies=self.cookies,
                timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get(self, path: str, **params: Any) -> aiohttp.ClientResponse:
        session = await self._initialize_session()
        await self._rate_limiter.acquire()
        return await session.get(self.base_url + path, params=params or None)

    async def api_call(self, path: str, **params: Any) -> Dict[str, Any]:
        """
        Calls a JSON endpoint and unwraps Pixiv's '{error, message, body}' envelope.

        Raises:
            RemoteRequestFailed: Non-2xx status or a truthy 'error' field.
        """
        start_time = time.monotonic()
        try:
            async with await self._get(path, **params) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(f"GET {path} -> {r.status} ({duration_ms:.0f} ms)")

                if r.status == 429:
                    await self._rate_limiter.on_429()
                if not 200 <= r.status < 300:
                    raise RemoteRequestFailed(f"Pixiv request failed ({r.status}).")

                try:
                    payload = await r.json(content_type=None)
                except ValueError as e:
                    raise RemoteRequestFailed(
                        f"Pixiv returned an unreadable response: {e}"
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"API call to {path} failed: {e}")
            raise RemoteRequestFailed(f"Pixiv request failed ({e}).") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise RemoteRequestFailed(
                payload.get("message") or "Pixiv returned an error."
            )
        return payload if isinstance(payload, dict) else {}

    async def fetch_illust_detail(self, illust_id: str) -> Dict[str, Any]:
        return await self.api_call(f"ajax/illust/{illust_id}", lang="en")

    async def fetch_ugoira_meta(self, illust_id: str) -> Dict[str, Any]:
        return await self.api_call(f"ajax/illust/{illust_id}/ugoira_meta")

    async def fetch_artwork_page(self, illust_id: str) -> str:
        """Returns the HTML of an artwork page, which embeds the preload metadata."""
        try:
            async with await self._get(f"artworks/{illust_id}") as r:
                if not 200 <= r.status < 300:
                    raise RemoteRequestFailed(f"Pixiv request failed ({r.status}).")
                return await r.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteRequestFailed(f"Pixiv request failed ({e}).") from e
