"""
Handles the download of a single asset across its fallback URLs and path candidates.
"""

import asyncio
import logging
from typing import Optional

from pixiv_cli.exceptions import AssetFetchFailed, DownloadCommitFailed
from pixiv_cli.media.downloader import Downloader, FetchedAsset
from pixiv_cli.media.sink import ConflictPolicy, FileSystemSink, is_path_rejection
from pixiv_cli.models.metadata import DownloadOutcome, IllustrationMetadata, ImageAsset
from pixiv_cli.utils.formatting import format_error_message
from pixiv_cli.utils.path import build_candidate_paths

log = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to fetch image (?)"


class AssetProcessor:
    """
    Downloads one asset: every candidate URL in fallback order, a bounded
    number of fetch attempts per URL, and every candidate path in order until
    the sink accepts one.
    """

    def __init__(
        self,
        downloader: Downloader,
        sink: FileSystemSink,
        root_folder: str,
        retry_enabled: bool = True,
        anti_theft_suffix_enabled: bool = True,
        conflict_policy: ConflictPolicy = ConflictPolicy.UNIQUIFY,
        retry_delay: float = 0.15,
    ):
        self.downloader = downloader
        self.sink = sink
        self.root_folder = root_folder
        self.max_attempts = 4 if retry_enabled else 1
        self.anti_theft_suffix_enabled = anti_theft_suffix_enabled
        self.conflict_policy = conflict_policy
        self.retry_delay = retry_delay

    async def _fetch_with_retries(self, url: str) -> FetchedAsset:
        last_exception: Optional[AssetFetchFailed] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.downloader.fetch(url)
            except AssetFetchFailed as e:
                last_exception = e
                log.debug(
                    f"Fetch attempt {attempt}/{self.max_attempts} for {url} failed: {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay * attempt)
        raise last_exception

    async def _commit(
        self, meta: IllustrationMetadata, asset: ImageAsset, fetched: FetchedAsset
    ) -> str:
        paths = build_candidate_paths(
            root=self.root_folder,
            author=meta.author,
            illust_id=meta.illust_id,
            title=meta.title,
            page_index=asset.page_index,
            extension_source=fetched.final_url,
            anti_theft_suffix_enabled=self.anti_theft_suffix_enabled,
        )

        path_error: Optional[Exception] = None
        for path in paths:
            try:
                saved = await self.sink.commit(fetched.data, path, self.conflict_policy)
                return str(saved)
            except Exception as e:
                path_error = e
                if is_path_rejection(e):
                    log.debug(f"Path rejected, trying a simpler one: {path} ({e})")
                    continue
                break
        raise path_error or DownloadCommitFailed("No path candidates were produced.")

    async def process_asset(
        self, meta: IllustrationMetadata, asset: ImageAsset
    ) -> DownloadOutcome:
        """
        Downloads an asset, never raising for download or save failures.

        Returns:
            A successful outcome with the saved path, or a failed one carrying
            the last error seen.
        """
        last_error: Optional[Exception] = None

        for url in asset.candidate_urls:
            try:
                fetched = await self._fetch_with_retries(url)
            except AssetFetchFailed as e:
                last_error = e
                continue

            try:
                saved_path = await self._commit(meta, asset, fetched)
            except Exception as e:
                last_error = e
                log.debug(f"Could not save {url}: {e}")
                continue

            if url != asset.url:
                log.info(f"  [dim]Used fallback URL for page {asset.page_index + 1}: {url}[/dim]")
            return DownloadOutcome(asset_url=asset.url, success=True, saved_path=saved_path)

        message = (
            format_error_message(str(last_error)) if last_error else DEFAULT_FAILURE_MESSAGE
        )
        log.error(f"  [red]✗ Failed:[/] {asset.url} ({message})")
        return DownloadOutcome(asset_url=asset.url, success=False, error=message)
