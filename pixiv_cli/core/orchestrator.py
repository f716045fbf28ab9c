"""
Runs a batch of asset downloads for one artwork.
"""

import logging
from typing import Callable, Optional, Sequence

from pixiv_cli.models.metadata import (
    DownloadOutcome,
    IllustrationMetadata,
    ImageAsset,
    summarize_outcomes,
)

from .asset_processor import AssetProcessor

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, DownloadOutcome], None]


class DownloadOrchestrator:
    """
    Downloads the selected assets strictly one after another.

    Pixiv does not publish rate limits but throttles clients that fetch in
    parallel, so there is never more than one request in flight. A failed
    asset is recorded and the batch moves on.
    """

    def __init__(self, processor: AssetProcessor):
        self.processor = processor

    async def run(
        self,
        meta: IllustrationMetadata,
        assets: Sequence[ImageAsset],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[DownloadOutcome]:
        """Returns one outcome per asset, in the order given."""
        outcomes: list[DownloadOutcome] = []
        total = len(assets)
        for index, asset in enumerate(assets, 1):
            outcome = await self.processor.process_asset(meta, asset)
            outcomes.append(outcome)
            if on_progress:
                on_progress(index, total, outcome)

        summary = summarize_outcomes(outcomes)
        log.debug(
            f"Artwork {meta.illust_id}: {summary.succeeded}/{summary.total} assets saved "
            f"({summary.status.value})."
        )
        return outcomes
