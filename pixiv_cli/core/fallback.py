"""
Fallback URL chains for Pixiv image assets, and merging of duplicate assets.

Pixiv serves each page at several resolutions. When the original file has
been removed or renamed, or a CDN node returns an error, the 1200px
'master' rendition of the same page is usually still reachable.
"""

import dataclasses
import re
from typing import Iterable, Optional

from pixiv_cli.models.metadata import ImageAsset

_ORIGINAL_SEGMENT = "/img-original/"
_MASTER_SEGMENT = "/img-master/"
_PAGE_SUFFIX_RE = re.compile(r"_p(\d+)(\.[^.]+)$", re.IGNORECASE)


def build_master_candidates(url: Optional[str]) -> list[str]:
    """
    Derives same-page master-resolution URLs from an original-resolution URL.

    '.../img-original/.../123_p0.png' yields
    '.../img-master/.../123_p0_master1200.jpg' and, because the original is
    not a JPEG, '.../img-master/.../123_p0_master1200.png'.
    """
    if not url or _ORIGINAL_SEGMENT not in url:
        return []

    match = _PAGE_SUFFIX_RE.search(url)
    if not match:
        return []

    page_index, extension = match.groups()
    base = url.replace(_ORIGINAL_SEGMENT, _MASTER_SEGMENT).replace(
        f"_p{page_index}{extension}", f"_p{page_index}_master1200"
    )

    candidates = [f"{base}.jpg"]
    if extension.lower() != ".jpg":
        candidates.append(f"{base}{extension}")
    return candidates


def build_fallback_list(
    primary: str, extras: Optional[Iterable[Optional[str]]] = None
) -> tuple[str, ...]:
    """
    Returns the ordered fallback chain for a primary URL.

    Known alternates come first, derived master candidates after. The
    primary itself, empty values and repeats are dropped; the first
    occurrence of a URL decides its position.
    """
    seen = {primary}
    result = []
    for candidate in list(extras or []) + build_master_candidates(primary):
        if not isinstance(candidate, str) or not candidate or candidate in seen:
            continue
        seen.add(candidate)
        result.append(candidate)
    return tuple(result)


def dedupe_assets(assets: Iterable[ImageAsset]) -> list[ImageAsset]:
    """
    Merges assets that point at the same URL.

    The first asset seen for a URL keeps its page index and variant; its
    fallbacks become the union of every fallback list seen for that URL.
    """
    merged: dict[str, ImageAsset] = {}
    for asset in assets:
        if not asset or not asset.url:
            continue

        existing = merged.get(asset.url)
        current = existing.fallbacks if existing else ()
        fallbacks = dict.fromkeys(current)
        for candidate in asset.fallbacks:
            if candidate and candidate != asset.url:
                fallbacks.setdefault(candidate)

        base = existing or asset
        merged[asset.url] = dataclasses.replace(base, fallbacks=tuple(fallbacks))

    return list(merged.values())
