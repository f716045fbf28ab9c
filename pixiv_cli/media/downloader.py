"""
Handles the low-level fetching of image and ugoira assets over HTTP.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

import aiohttp

from pixiv_cli.api.client import build_request_headers
from pixiv_cli.exceptions import AssetFetchFailed

log = logging.getLogger(__name__)

ACCEPTABLE_CONTENT_TYPES = (
    re.compile(r"^image/", re.IGNORECASE),
    re.compile(r"application/zip", re.IGNORECASE),
)

_connection_pool: Optional[aiohttp.ClientSession] = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(session_cookie: str = "") -> aiohttp.ClientSession:
    """
    Gets or creates the shared aiohttp ClientSession used for asset downloads.

    Only one pool is created for the lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=4,
            limit_per_host=2,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90),
            headers=build_request_headers(),
            cookies={"PHPSESSID": session_cookie} if session_cookie else None,
        )
        log.debug("Created asset download pool.")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared asset download pool closed.")


def is_acceptable_content_type(content_type: str) -> bool:
    return any(p.search(content_type or "") for p in ACCEPTABLE_CONTENT_TYPES)


@dataclass
class FetchedAsset:
    """Bytes of a fetched asset together with what the server said about them."""

    data: bytes
    content_type: str
    final_url: str


class Downloader:
    """Fetches a single asset URL into memory, one attempt per call."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        session_cookie: str = "",
    ):
        self._session = session
        self._session_cookie = session_cookie

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        return await get_connection_pool(self._session_cookie)

    async def fetch(self, url: str) -> FetchedAsset:
        """
        Downloads url and checks that it is an image or a zip archive.

        Raises:
            AssetFetchFailed: Network error, non-2xx status or unexpected content type.
        """
        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                if not 200 <= response.status < 300:
                    raise AssetFetchFailed(f"Failed to fetch image ({response.status})")

                content_type = response.headers.get("Content-Type", "")
                if not is_acceptable_content_type(content_type):
                    raise AssetFetchFailed(
                        f"Unexpected content type: {content_type or 'unknown'}"
                    )

                buffer = bytearray()
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    buffer.extend(chunk)

                return FetchedAsset(
                    data=bytes(buffer),
                    content_type=content_type or "application/octet-stream",
                    final_url=str(response.url) or url,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AssetFetchFailed(f"Failed to fetch image ({e})") from e
