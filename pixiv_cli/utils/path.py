"""
Utilities for handling file paths, download path candidates, and URL parsing.
"""

import re
import time
import unicodedata
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pathvalidate import sanitize_filename

DEFAULT_ROOT_FOLDER = "Pixiv"
ANTI_THEFT_TAG = "__pixiv-only"

MAX_SEGMENT_LENGTH = 80
MAX_FILENAME_LENGTH = 120
MAX_PATH_LENGTH = 240

WINDOWS_RESERVED_NAMES = frozenset(
    ["con", "prn", "aux", "nul"]
    + [f"com{i}" for i in range(1, 10)]
    + [f"lpt{i}" for i in range(1, 10)]
)

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_DOTS_RE = re.compile(r"\.+$")
_EXTENSION_RE = re.compile(r"\.([a-z0-9]+)(?:$|\?)", re.IGNORECASE)
_ARTWORK_URL_RE = re.compile(r"(?:artworks/|illust_id=)(?P<id>\d+)")


def parse_pixiv_url(value: str) -> Optional[str]:
    """
    Extracts an artwork ID from a Pixiv URL or a bare numeric ID.
    Handles both the current '/artworks/<id>' and the legacy 'illust_id=' formats.
    """
    value = value.strip()
    if value.isdigit():
        return value
    match = _ARTWORK_URL_RE.search(value)
    return match.group("id") if match else None


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def _clean(value: str) -> str:
    cleaned = sanitize_filename(value, replacement_text=" ", platform="windows")
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return _TRAILING_DOTS_RE.sub("", cleaned).strip()


def ensure_safe_path_segment(value: object) -> str:
    """
    Makes a single path segment legal on every target platform.

    Illegal and control characters become spaces, whitespace is collapsed,
    trailing dots are dropped and reserved device names get a trailing '_'.
    """
    normalized = _clean("" if value is None else str(value))
    if not normalized:
        return "_"
    if normalized.lower() in WINDOWS_RESERVED_NAMES:
        return f"{normalized}_"
    return normalized


def sanitize_segment(value: object, fallback: object) -> str:
    """Sanitizes user-facing text (titles, names) into a bounded folder or file segment."""
    text = unicodedata.normalize("NFKC", "" if value is None else str(value))
    cleaned = _clean(text)
    candidate = str(fallback) if not cleaned else cleaned[:MAX_SEGMENT_LENGTH]
    return ensure_safe_path_segment(candidate)


def sanitize_root_folder(value: Optional[str]) -> str:
    """Normalizes the configured root folder name, falling back to the default."""
    candidate = unicodedata.normalize("NFKC", str(value or DEFAULT_ROOT_FOLDER))
    return ensure_safe_path_segment(candidate[:MAX_SEGMENT_LENGTH]) or DEFAULT_ROOT_FOLDER


def truncate_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Shortens a file name to max_length characters, keeping its extension."""
    if not name:
        return f"file.{int(time.time() * 1000)}"
    if len(name) <= max_length:
        return name

    dot_index = name.rfind(".")
    if 0 < dot_index < len(name) - 1:
        extension = name[dot_index:]
        base_length = max(1, max_length - len(extension))
        return f"{name[:base_length]}{extension}"
    return name[:max_length]


def ensure_safe_filename(name: str) -> str:
    """Sanitizes the stem of a file name while preserving its extension."""
    trimmed = _TRAILING_DOTS_RE.sub("", name or "").strip()
    dot_index = trimmed.rfind(".")
    if 0 < dot_index < len(trimmed) - 1:
        return f"{ensure_safe_path_segment(trimmed[:dot_index])}{trimmed[dot_index:]}"
    return ensure_safe_path_segment(trimmed)


def extract_filename_from_url(url: str) -> Optional[str]:
    """Returns the last path component of a URL, or None."""
    try:
        parts = [p for p in urlparse(url).path.split("/") if p]
    except ValueError:
        return None
    return parts[-1] if parts else None


def get_extension_from_url(url: str) -> str:
    """Returns the lowercase file extension of a URL, defaulting to 'jpg'."""
    match = _EXTENSION_RE.search(extract_filename_from_url(url) or "")
    return match.group(1).lower() if match else "jpg"


def build_candidate_paths(
    root: str,
    author: str,
    illust_id: str,
    title: str,
    page_index: Optional[int],
    extension_source: str,
    anti_theft_suffix_enabled: bool = True,
    now: Optional[float] = None,
    max_path_length: int = MAX_PATH_LENGTH,
) -> list[str]:
    """
    Builds relative download paths for one asset, most descriptive first.

    Nested 'root/author/id-title' layouts come first, flatter layouts after
    and bare file names last. Every path is at most max_path_length
    characters; when none fit, a single '<id>_<epoch ms>.<ext>' name is returned.
    """
    extension = get_extension_from_url(extension_source)
    page_label = f"p{page_index:02d}_" if isinstance(page_index, int) else ""
    safe_author = sanitize_segment(author, DEFAULT_ROOT_FOLDER)
    safe_title = sanitize_segment(title, illust_id)
    safe_id = ensure_safe_path_segment(illust_id or "pixiv")
    safe_folder = ensure_safe_path_segment(f"{safe_id}-{safe_title}")
    simple_folder = ensure_safe_path_segment(safe_id)
    safe_root = ensure_safe_path_segment(root or DEFAULT_ROOT_FOLDER)

    tag = ANTI_THEFT_TAG if anti_theft_suffix_enabled else ""
    base_name = ensure_safe_filename(
        truncate_filename(f"{page_label}{safe_id}_by_{safe_author}{tag}.{extension}")
    )
    original_name = (
        extract_filename_from_url(extension_source) or f"{safe_id}.{extension}"
    )
    labeled_original = ensure_safe_filename(
        truncate_filename(f"{page_label}{original_name}")
    )
    backup_name = ensure_safe_filename(
        truncate_filename(f"{page_label}{safe_id}.{extension}")
    )
    file_names = [n for n in (base_name, labeled_original, backup_name) if n]

    layouts = [
        [safe_root, safe_author, safe_folder],
        [safe_root, safe_author, simple_folder],
        [safe_root, simple_folder],
        [safe_root],
    ]

    candidates: dict[str, None] = {}
    for parts in layouts:
        base_path = "/".join(p for p in parts if p)
        if not base_path:
            continue
        for name in file_names:
            candidate = f"{base_path}/{name}"
            if len(candidate) <= max_path_length:
                candidates[candidate] = None

    for name in file_names:
        if len(name) <= max_path_length:
            candidates[name] = None

    if not candidates:
        stamp = int((now if now is not None else time.time()) * 1000)
        return [f"{safe_id or 'pixiv'}_{stamp}.{extension}"]
    return list(candidates)
