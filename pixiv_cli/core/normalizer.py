"""
Normalizes Pixiv artwork metadata into IllustrationMetadata.

Two raw shapes exist: the preload JSON embedded in an artwork page, and the
'/ajax/illust' API response. The API shape is first converted into the
preload shape so both go through the same asset extraction.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pixiv_cli.exceptions import MetadataUnavailable, NoDownloadableAssets
from pixiv_cli.models.metadata import AssetVariant, IllustrationMetadata, ImageAsset

from .fallback import build_fallback_list, dedupe_assets

log = logging.getLogger(__name__)

UNKNOWN_CREATOR = "Unknown Creator"
UGOIRA_ILLUST_TYPE = 2

_FIRST_PAGE_RE = re.compile(r"_p0(\.[^./]+)$", re.IGNORECASE)


def fallback_title(illust_id: str) -> str:
    return f"Pixiv Artwork {illust_id}".strip()


@dataclass(frozen=True)
class EmbeddedPayload:
    """Preload JSON read from an artwork page's 'meta-preload-data' element."""

    data: Dict[str, Any]


@dataclass(frozen=True)
class ApiPayload:
    """The 'body' of an '/ajax/illust/<id>' response plus optional ugoira metadata."""

    body: Dict[str, Any]
    ugoira_meta: Optional[Dict[str, Any]] = None


RawPayload = Union[EmbeddedPayload, ApiPayload]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _api_to_preload(illust_id: str, payload: ApiPayload) -> Dict[str, Any]:
    body = _as_dict(payload.body)
    title = body.get("title") or fallback_title(illust_id)
    author = body.get("userName") or body.get("userAccount") or UNKNOWN_CREATOR
    manga_pages = body.get("mangaPages")
    if not isinstance(manga_pages, list):
        manga_pages = []

    try:
        page_count = int(body.get("pageCount") or len(manga_pages) or 1)
    except (TypeError, ValueError):
        page_count = 1

    preload: Dict[str, Any] = {
        "illust": {
            illust_id: {
                "title": title,
                "userName": author,
                "urls": _as_dict(body.get("urls")),
                "pageCount": page_count,
            }
        },
        "illustManga": {},
        "ugoira": {},
    }

    if manga_pages:
        preload["illustManga"][illust_id] = {
            "title": title,
            "userName": author,
            "pages": [
                {"urls": _as_dict(_as_dict(page).get("urls"))} for page in manga_pages
            ],
        }

    meta = _as_dict(payload.ugoira_meta)
    ugoira_body = _as_dict(meta.get("body")) or meta
    if ugoira_body:
        source = (
            ugoira_body.get("originalSrc")
            or ugoira_body.get("src")
            or _as_dict(ugoira_body.get("zipUrls")).get("medium")
        )
        if source:
            preload["ugoira"][illust_id] = {"originalSrc": source}

    return preload


def to_preload(illust_id: str, payload: RawPayload) -> Dict[str, Any]:
    """Converts either raw payload into the preload shape keyed by artwork ID."""
    if isinstance(payload, EmbeddedPayload):
        return payload.data if isinstance(payload.data, dict) else {}
    if isinstance(payload, ApiPayload):
        return _api_to_preload(illust_id, payload)
    raise TypeError(f"Unsupported metadata payload: {type(payload).__name__}")


def _entry(data: Dict[str, Any], key: str, illust_id: str) -> Optional[Dict[str, Any]]:
    return _as_dict(_as_dict(_as_dict(data).get(key)).get(illust_id)) or None


def extract_assets(illust_id: str, data: Dict[str, Any]) -> IllustrationMetadata:
    """
    Builds the canonical metadata from a preload-shaped dictionary.

    Raises:
        MetadataUnavailable: No illustration, manga or ugoira record exists for the ID.
        NoDownloadableAssets: Records exist but contain no usable URL.
    """
    illust = _entry(data, "illust", illust_id)
    manga = _entry(data, "illustManga", illust_id)
    ugoira = _entry(data, "ugoira", illust_id)

    if not illust and not manga and not ugoira:
        raise MetadataUnavailable(
            "The current page does not expose illustration data."
        )

    illust = illust or {}
    manga = manga or {}
    title = (
        _text(illust.get("title")) or _text(manga.get("title")) or fallback_title(illust_id)
    )
    author = (
        _text(illust.get("userName")) or _text(manga.get("userName")) or UNKNOWN_CREATOR
    )

    assets: List[ImageAsset] = []

    def push(url: Optional[str], page_index: int, variant: AssetVariant, extras=()):
        if isinstance(url, str) and url:
            assets.append(
                ImageAsset(url, page_index, variant, build_fallback_list(url, extras))
            )

    urls = _as_dict(illust.get("urls"))
    original = urls.get("original")
    if not isinstance(original, str):
        original = None
    if original:
        extras = [urls.get(k) for k in ("regular", "small", "thumb", "mini")]
        push(original, 0, AssetVariant.ORIGINAL, extras)

    pages = manga.get("pages")
    if not isinstance(pages, list):
        pages = []
    for index, page in enumerate(pages):
        page_urls = _as_dict(_as_dict(page).get("urls"))
        extras = [page_urls.get(k) for k in ("regular", "small", "thumb")]
        push(
            page_urls.get("original") or page_urls.get("regular"),
            index,
            AssetVariant.PAGE,
            extras,
        )

    page_count = illust.get("pageCount") or 0
    if isinstance(page_count, int) and page_count > max(1, len(pages)) and original:
        log.debug(
            f"Artwork {illust_id} declares {page_count} pages but lists {len(pages)}; "
            "guessing the missing page URLs."
        )
        for index in range(len(pages), page_count):
            guess = _FIRST_PAGE_RE.sub(lambda m: f"_p{index}{m.group(1)}", original)
            push(guess, index, AssetVariant.GUESSED)

    push((ugoira or {}).get("originalSrc"), 0, AssetVariant.UGOIRA)

    unique = dedupe_assets(assets)
    if not unique:
        raise NoDownloadableAssets(
            "No downloadable images were found on this artwork."
        )

    return IllustrationMetadata(
        illust_id=illust_id, title=title, author=author, assets=tuple(unique)
    )


def normalize(illust_id: str, payload: RawPayload) -> IllustrationMetadata:
    """Normalizes an embedded or API payload into IllustrationMetadata."""
    return extract_assets(illust_id, to_preload(illust_id, payload))
