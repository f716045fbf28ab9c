"""
Resolves artwork metadata from the embedded page data or the Pixiv API.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from pixiv_cli.api.client import PixivAPIClient
from pixiv_cli.exceptions import (
    MetadataUnavailable,
    NoDownloadableAssets,
    PixivCliError,
    RemoteRequestFailed,
)
from pixiv_cli.models.metadata import IllustrationMetadata
from pixiv_cli.web.preload_fetcher import load_embedded_preload

from .normalizer import UGOIRA_ILLUST_TYPE, ApiPayload, EmbeddedPayload, normalize

log = logging.getLogger(__name__)

EmbeddedLoader = Callable[[str], Awaitable[Dict[str, Any]]]


@dataclass
class ResolverState:
    """Single-slot cache of the last successful resolution plus in-flight work."""

    last_id: Optional[str] = None
    last_result: Optional[IllustrationMetadata] = None
    inflight: Dict[str, "asyncio.Task[IllustrationMetadata]"] = field(
        default_factory=dict
    )


class MetadataResolver:
    """
    Produces IllustrationMetadata for an artwork ID.

    The embedded preload data is always tried first and the API only when it
    is missing or unusable. Concurrent requests for the same ID share one
    resolution; only the most recent successful result is cached.
    """

    def __init__(
        self,
        api_client: PixivAPIClient,
        embedded_loader: Optional[EmbeddedLoader] = None,
    ):
        self.api_client = api_client
        self._load_embedded = embedded_loader or (
            lambda illust_id: load_embedded_preload(api_client, illust_id)
        )
        self.state = ResolverState()

    def reset(self) -> None:
        """Forgets the cached result, e.g. when the caller moves to another context."""
        self.state.last_id = None
        self.state.last_result = None

    async def resolve(self, illust_id: str) -> IllustrationMetadata:
        """
        Returns metadata for illust_id, from cache, shared in-flight work, or a new resolution.

        Raises:
            MetadataUnavailable, NoDownloadableAssets, RemoteRequestFailed:
                Neither source produced usable metadata.
        """
        state = self.state
        if state.last_id == illust_id and state.last_result is not None:
            log.debug(f"Metadata for {illust_id} served from cache.")
            return state.last_result

        task = state.inflight.get(illust_id)
        if task is None:
            task = asyncio.create_task(self._resolve_uncached(illust_id))
            state.inflight[illust_id] = task
            task.add_done_callback(lambda t: self._on_done(illust_id, t))
        else:
            log.debug(f"Joining in-flight resolution for {illust_id}.")

        return await asyncio.shield(task)

    def _on_done(self, illust_id: str, task: "asyncio.Task[IllustrationMetadata]") -> None:
        if self.state.inflight.get(illust_id) is task:
            del self.state.inflight[illust_id]
        if task.cancelled() or task.exception() is not None:
            return
        self.state.last_id = illust_id
        self.state.last_result = task.result()

    async def _resolve_uncached(self, illust_id: str) -> IllustrationMetadata:
        try:
            data = await self._load_embedded(illust_id)
            return normalize(illust_id, EmbeddedPayload(data))
        except (MetadataUnavailable, NoDownloadableAssets, RemoteRequestFailed) as e:
            log.debug(f"Embedded metadata unusable for {illust_id} ({e}); using the API.")

        return await self._resolve_from_api(illust_id)

    async def _resolve_from_api(self, illust_id: str) -> IllustrationMetadata:
        response = await self.api_client.fetch_illust_detail(illust_id)
        body = response.get("body")
        if not isinstance(body, dict) or not body:
            raise MetadataUnavailable("Pixiv illustration data was not found.")

        ugoira_meta = None
        if _as_int(body.get("illustType")) == UGOIRA_ILLUST_TYPE:
            try:
                ugoira_meta = await self.api_client.fetch_ugoira_meta(illust_id)
            except PixivCliError as e:
                log.warning(
                    f"[yellow]Failed to fetch ugoira metadata for {illust_id}: {e}[/yellow]"
                )

        return normalize(illust_id, ApiPayload(body, ugoira_meta))


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
