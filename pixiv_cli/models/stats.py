"""
Dataclass for tracking download session statistics.
"""

import time
from dataclasses import dataclass, field

from .metadata import DownloadOutcome


@dataclass
class DownloadStats:
    """Tracks statistics for a download session."""

    assets_downloaded: int = 0
    assets_failed: int = 0
    illusts_processed: set[str] = field(default_factory=set)
    illusts_failed: int = 0
    illusts_cancelled: int = 0
    total_size_downloaded: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)

    def record_outcome(self, outcome: DownloadOutcome, size_bytes: int = 0) -> None:
        if outcome.success:
            self.assets_downloaded += 1
            self.total_size_downloaded += size_bytes
        else:
            self.assets_failed += 1

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at
