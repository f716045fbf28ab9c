"""
Data Models Layer.

This package contains the dataclasses and Pydantic models that define the
core data structures used throughout the application: artwork metadata,
selections, download outcomes, configuration and statistics.
"""

from .config import DownloadConfig
from .metadata import (
    AssetVariant,
    BatchStatus,
    BatchSummary,
    DownloadOutcome,
    IllustrationMetadata,
    ImageAsset,
    Selection,
    SelectionMode,
    summarize_outcomes,
)
from .stats import DownloadStats

__all__ = [
    "AssetVariant",
    "BatchStatus",
    "BatchSummary",
    "DownloadConfig",
    "DownloadOutcome",
    "DownloadStats",
    "IllustrationMetadata",
    "ImageAsset",
    "Selection",
    "SelectionMode",
    "summarize_outcomes",
]
