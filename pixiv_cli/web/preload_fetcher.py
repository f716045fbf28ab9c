"""
Fetches a Pixiv artwork page and extracts the preload metadata embedded in it.
"""

import json
import logging
from typing import Any, Dict

from bs4 import BeautifulSoup

from pixiv_cli.api.client import PixivAPIClient
from pixiv_cli.exceptions import MetadataMalformed, MetadataUnavailable

log = logging.getLogger(__name__)

PRELOAD_SELECTOR = "meta#meta-preload-data"


class PreloadFetcher:
    """
    Parses the 'meta-preload-data' element of an artwork page.

    The element's content attribute holds JSON with 'illust', 'illustManga'
    and 'ugoira' maps keyed by artwork ID.
    """

    def __init__(self, page_html: str):
        self._page_html = page_html

    @classmethod
    async def fetch(cls, api_client: PixivAPIClient, illust_id: str) -> "PreloadFetcher":
        """Downloads the artwork page through the shared API client session."""
        html = await api_client.fetch_artwork_page(illust_id)
        log.debug(f"Fetched artwork page for {illust_id} ({len(html)} bytes).")
        return cls(html)

    def extract_preload(self) -> Dict[str, Any]:
        """
        Returns the parsed preload JSON.

        Raises:
            MetadataUnavailable: The page has no preload element.
            MetadataMalformed: The element content is not a JSON object.
        """
        soup = BeautifulSoup(self._page_html, "html.parser")
        meta = soup.select_one(PRELOAD_SELECTOR)
        if meta is None:
            raise MetadataUnavailable("Pixiv preload metadata is missing.")

        try:
            data = json.loads(meta.get("content") or "{}")
        except (TypeError, ValueError) as e:
            raise MetadataMalformed(f"Failed to parse Pixiv metadata: {e}") from e

        if not isinstance(data, dict):
            raise MetadataMalformed(
                "Failed to parse Pixiv metadata: expected a JSON object."
            )
        return data


async def load_embedded_preload(
    api_client: PixivAPIClient, illust_id: str
) -> Dict[str, Any]:
    """Embedded metadata provider used by the resolver."""
    fetcher = await PreloadFetcher.fetch(api_client, illust_id)
    return fetcher.extract_preload()
