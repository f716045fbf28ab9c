"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class PixivCliError(Exception):
    """Base exception for all application-specific errors."""


class MetadataUnavailable(PixivCliError):
    """Raised when no metadata source exposes a usable record for an artwork."""


class MetadataMalformed(MetadataUnavailable):
    """
    Raised when the page-embedded preload metadata cannot be parsed.

    Resolution recovers from this by falling through to the remote API.
    """


class NoDownloadableAssets(PixivCliError):
    """Raised when metadata was found but yielded no downloadable assets."""


class RemoteRequestFailed(PixivCliError):
    """Raised on a non-2xx response or an error envelope from the Pixiv API."""


class AssetFetchFailed(PixivCliError):
    """Raised when a single asset URL could not be fetched as an image or archive."""


class PathRejected(PixivCliError):
    """Raised by a download sink when a target path is invalid or too long."""


class DownloadCommitFailed(PixivCliError):
    """Raised by a download sink for any failure other than a rejected path."""


class ConfigurationError(PixivCliError):
    """Raised for issues related to configuration loading or validation."""
