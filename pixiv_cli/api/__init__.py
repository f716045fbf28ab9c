"""
Pixiv API Layer.

This package handles all communication with Pixiv's web AJAX endpoints.
"""

from .client import PixivAPIClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "PixivAPIClient"]
