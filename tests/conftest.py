"""
Shared fixtures: sample Pixiv payloads and a throwaway aiohttp server.
"""

from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

ORIGINAL_BASE = "https://i.pximg.net/img-original/img/2024/05/01/12/00/00"
MASTER_BASE = "https://i.pximg.net/img-master/img/2024/05/01/12/00/00"


def original_url(illust_id: str, page: int = 0, ext: str = "png") -> str:
    return f"{ORIGINAL_BASE}/{illust_id}_p{page}.{ext}"


def master_url(illust_id: str, page: int = 0) -> str:
    return f"{MASTER_BASE}/{illust_id}_p{page}_master1200.jpg"


def build_preload(
    illust_id: str = "123",
    title: str = "Sunset",
    author: str = "Alice",
    page_count: int = 1,
    manga_pages: int = 0,
    ugoira_src: str | None = None,
    with_illust: bool = True,
) -> dict:
    """Builds a dictionary shaped like Pixiv's embedded preload JSON."""
    data: dict = {"illust": {}, "illustManga": {}, "ugoira": {}}
    if with_illust:
        data["illust"][illust_id] = {
            "title": title,
            "userName": author,
            "pageCount": page_count,
            "urls": {
                "original": original_url(illust_id),
                "regular": master_url(illust_id),
                "small": f"https://i.pximg.net/c/540x540_70/img-master/{illust_id}_p0.jpg",
            },
        }
    if manga_pages:
        data["illustManga"][illust_id] = {
            "title": title,
            "userName": author,
            "pages": [
                {
                    "urls": {
                        "original": original_url(illust_id, i),
                        "regular": master_url(illust_id, i),
                    }
                }
                for i in range(manga_pages)
            ],
        }
    if ugoira_src:
        data["ugoira"][illust_id] = {"originalSrc": ugoira_src}
    return data


@pytest.fixture
def preload_factory():
    return build_preload


@pytest.fixture
def urls():
    """URL builders for the i.pximg.net layouts used in the samples."""

    class _Urls:
        original = staticmethod(original_url)
        master = staticmethod(master_url)

    return _Urls


@asynccontextmanager
async def _serve(*routes: web.RouteDef):
    app = web.Application()
    app.add_routes(list(routes))
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def http_server():
    """Returns an async context manager that serves the given aiohttp routes."""
    return _serve
