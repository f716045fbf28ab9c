"""
Web Scraping Layer.

This package contains modules for fetching and parsing Pixiv artwork pages,
primarily to read the metadata the page embeds for its own frontend.
"""

from .preload_fetcher import PreloadFetcher, load_embedded_preload

__all__ = ["PreloadFetcher", "load_embedded_preload"]
