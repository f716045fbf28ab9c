"""
Media Layer.

This package is responsible for fetching asset bytes over HTTP and
committing them to disk.
"""

from .downloader import Downloader, FetchedAsset
from .sink import ConflictPolicy, FileSystemSink

__all__ = ["ConflictPolicy", "Downloader", "FetchedAsset", "FileSystemSink"]
