"""
Helper functions for formatting data into human-readable strings.
"""

from pixiv_cli.models.metadata import BatchStatus, BatchSummary

MAX_ERROR_LENGTH = 120


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '14.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """Formats a duration in seconds (e.g., '1m 12s')."""
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    parts = [f"{v}{u}" for v, u in ((hours, "h"), (minutes, "m")) if v]
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_error_message(message: str | None) -> str:
    """Shortens an error message for one-line display."""
    if not message:
        return "Unknown error."
    if len(message) < MAX_ERROR_LENGTH:
        return message
    return f"{message[: MAX_ERROR_LENGTH - 3]}..."


def describe_summary(summary: BatchSummary) -> str:
    """One-line description of a batch, e.g. '3 of 5 downloaded'."""
    if summary.status == BatchStatus.ALL_SUCCEEDED:
        noun = "image" if summary.total == 1 else "images"
        return f"All {summary.total} {noun} downloaded"
    if summary.status == BatchStatus.ALL_FAILED:
        return f"All {summary.total} downloads failed"
    return f"{summary.succeeded} of {summary.total} downloaded"
