"""
Core data structures shared by the resolution, selection and download stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AssetVariant(str, Enum):
    """Provenance of an asset URL."""

    ORIGINAL = "original"
    PAGE = "page"
    GUESSED = "guessed"  # Built by substituting a page index; may not exist.
    UGOIRA = "ugoira"


@dataclass(frozen=True)
class ImageAsset:
    """One downloadable media unit of an artwork."""

    url: str
    page_index: int
    variant: AssetVariant
    fallbacks: tuple[str, ...] = ()

    @property
    def candidate_urls(self) -> list[str]:
        """The primary URL followed by its fallbacks, empty entries and repeats removed."""
        return list(dict.fromkeys(u for u in (self.url, *self.fallbacks) if u))


@dataclass(frozen=True)
class IllustrationMetadata:
    """The canonical, source-independent description of an artwork."""

    illust_id: str
    title: str
    author: str
    assets: tuple[ImageAsset, ...]

    @property
    def total(self) -> int:
        return len(self.assets)


class SelectionMode(str, Enum):
    ALL = "all"
    RANGE = "range"


@dataclass(frozen=True)
class Selection:
    """A choice of assets: everything, or a 1-indexed inclusive range."""

    mode: SelectionMode = SelectionMode.ALL
    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def all(cls) -> "Selection":
        return cls(SelectionMode.ALL)

    @classmethod
    def range(cls, start: Optional[int], end: Optional[int]) -> "Selection":
        return cls(SelectionMode.RANGE, start, end)

    def describe(self) -> str:
        if self.mode == SelectionMode.RANGE:
            return f"{self.start}-{self.end}"
        return "all"


@dataclass
class DownloadOutcome:
    """The result of processing one selected asset."""

    asset_url: str
    success: bool
    error: Optional[str] = None
    saved_path: Optional[str] = None


class BatchStatus(str, Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL = "partial"
    ALL_FAILED = "all_failed"


@dataclass
class BatchSummary:
    """Aggregated view of a finished download batch."""

    total: int
    succeeded: int
    failures: list[DownloadOutcome] = field(default_factory=list)

    @property
    def status(self) -> BatchStatus:
        if self.succeeded == self.total:
            return BatchStatus.ALL_SUCCEEDED
        if self.succeeded == 0:
            return BatchStatus.ALL_FAILED
        return BatchStatus.PARTIAL


def summarize_outcomes(outcomes: list[DownloadOutcome]) -> BatchSummary:
    """Reduces a list of outcomes to the all / partial / none summary."""
    failures = [o for o in outcomes if not o.success]
    return BatchSummary(
        total=len(outcomes),
        succeeded=len(outcomes) - len(failures),
        failures=failures,
    )
