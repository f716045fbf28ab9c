"""
The main orchestrator for handling artwork URLs, resolving metadata, and running downloads.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.markup import escape

from pixiv_cli.api.client import PixivAPIClient
from pixiv_cli.cli.progress_manager import ProgressManager
from pixiv_cli.exceptions import PixivCliError
from pixiv_cli.media import Downloader, FileSystemSink
from pixiv_cli.models.config import DownloadConfig
from pixiv_cli.models.metadata import DownloadOutcome, summarize_outcomes
from pixiv_cli.models.stats import DownloadStats
from pixiv_cli.utils.formatting import describe_summary
from pixiv_cli.utils.path import parse_pixiv_url

from .asset_processor import AssetProcessor
from .orchestrator import DownloadOrchestrator
from .resolver import MetadataResolver
from .selection import RangePrompt, apply_selection, resolve_selection

log = logging.getLogger(__name__)


class DownloadManager:
    """Orchestrates the entire download session, one artwork at a time."""

    def __init__(
        self,
        config: DownloadConfig,
        api_client: PixivAPIClient,
        progress_manager: ProgressManager,
        prompt: Optional[RangePrompt] = None,
        resolver: Optional[MetadataResolver] = None,
        downloader: Optional[Downloader] = None,
        sink: Optional[FileSystemSink] = None,
    ):
        self.config = config
        self.api_client = api_client
        self.progress_manager = progress_manager
        self.prompt = prompt
        self.stats = DownloadStats()
        self.resolver = resolver or MetadataResolver(api_client)
        self.orchestrator = DownloadOrchestrator(
            AssetProcessor(
                downloader or Downloader(session_cookie=config.session_cookie),
                sink or FileSystemSink(Path(config.output_dir)),
                root_folder=config.root_folder_name,
                retry_enabled=config.retry_enabled,
                anti_theft_suffix_enabled=config.anti_theft_suffix_enabled,
                conflict_policy=config.conflict_policy,
            )
        )

    def _expand_sources(self) -> list[str]:
        expanded = []
        for source in self.config.source_urls:
            if Path(source).is_file():
                log.info(f"Reading URLs from file: [dim]{escape(source)}[/dim]")
                try:
                    with open(source, "r", encoding="utf-8") as f:
                        expanded.extend(
                            line.strip()
                            for line in f
                            if line.strip() and not line.startswith("#")
                        )
                except (IOError, UnicodeDecodeError) as e:
                    log.error(f"[red]Could not read file {escape(source)}: {e}[/red]")
            else:
                expanded.append(source)
        return expanded

    async def execute_downloads(self) -> None:
        """Processes every URL from the config, strictly in order."""
        expanded = self._expand_sources()
        unique_urls = list(dict.fromkeys(expanded))
        if len(unique_urls) < len(expanded):
            log.info(f"Removed {len(expanded) - len(unique_urls)} duplicate URLs.")

        if not unique_urls:
            log.warning("[yellow]No URLs to process. Exiting.[/yellow]")
            return

        for url in unique_urls:
            await self._process_url(url)

    async def _process_url(self, url: str) -> None:
        illust_id = parse_pixiv_url(url)
        if not illust_id:
            log.error(f"[red]Invalid or unsupported URL: {escape(url)}[/red]")
            self.stats.illusts_failed += 1
            return

        try:
            await self.process_illust(illust_id)
        except PixivCliError as e:
            self.stats.illusts_failed += 1
            log.error(f"[red]✗ Artwork {illust_id}: {escape(str(e))}[/red]")

    async def process_illust(self, illust_id: str) -> Optional[list[DownloadOutcome]]:
        """
        Resolves, selects and downloads one artwork.

        Returns:
            The per-asset outcomes, or None when the range prompt was cancelled.

        Raises:
            PixivCliError: Metadata for the artwork could not be resolved.
        """
        meta = await self.resolver.resolve(illust_id)
        self.stats.illusts_processed.add(illust_id)
        self.progress_manager.log_message(
            f"\n[bold cyan]▶ Artwork:[/] {escape(meta.author)} - {escape(meta.title)} "
            f"[dim]({illust_id}, {meta.total} assets)[/dim]"
        )

        selection = resolve_selection(
            meta.total,
            self.config.range_mode,
            self.config.custom_range_start,
            self.config.custom_range_end,
            self.prompt,
        )
        if selection is None:
            self.stats.illusts_cancelled += 1
            self.progress_manager.log_message(
                "  [yellow]○ Selection cancelled, nothing downloaded.[/yellow]",
                level="warning",
            )
            return None

        assets = apply_selection(meta.assets, selection)
        if not assets:
            self.progress_manager.log_message(
                "  [yellow]The selected range contains no images.[/yellow]",
                level="warning",
            )
            return []

        task_id = self.progress_manager.start_illust(illust_id, meta.title, len(assets))

        def on_progress(index: int, total: int, outcome: DownloadOutcome) -> None:
            size = 0
            if outcome.saved_path:
                try:
                    size = Path(outcome.saved_path).stat().st_size
                except OSError:
                    pass
            self.stats.record_outcome(outcome, size)
            self.progress_manager.advance(task_id, index, total)

        try:
            outcomes = await self.orchestrator.run(meta, assets, on_progress)
        finally:
            self.progress_manager.finish_illust(task_id)

        summary = summarize_outcomes(outcomes)
        level = {"all_succeeded": "success", "partial": "warning"}.get(
            summary.status.value, "error"
        )
        self.progress_manager.log_message(f"  {describe_summary(summary)}.", level=level)
        return outcomes
