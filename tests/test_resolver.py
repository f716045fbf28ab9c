"""
Tests for MetadataResolver: source order, single-flight and the one-slot cache.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pixiv_cli.core.resolver import MetadataResolver
from pixiv_cli.exceptions import (
    MetadataMalformed,
    MetadataUnavailable,
    RemoteRequestFailed,
)
from pixiv_cli.models.metadata import AssetVariant

API_ORIGINAL = "https://i.pximg.net/img-original/img/2024/05/01/12/00/00/{id}_p0.jpg"


def api_response(illust_id: str = "123", **overrides) -> dict:
    body = {
        "title": "From API",
        "userName": "Bob",
        "illustType": 0,
        "pageCount": 1,
        "urls": {"original": API_ORIGINAL.format(id=illust_id)},
    }
    body.update(overrides)
    return {"error": False, "message": "", "body": body}


@pytest.fixture
def api_client():
    client = MagicMock()
    client.fetch_illust_detail = AsyncMock(side_effect=lambda i: api_response(i))
    client.fetch_ugoira_meta = AsyncMock(return_value={})
    return client


class TestSourceOrder:
    @pytest.mark.asyncio
    async def test_embedded_source_preferred(self, api_client, preload_factory):
        loader = AsyncMock(return_value=preload_factory())
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        meta = await resolver.resolve("123")

        assert meta.title == "Sunset"
        loader.assert_awaited_once_with("123")
        api_client.fetch_illust_detail.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_embedded_data_falls_back_to_api(self, api_client):
        loader = AsyncMock(side_effect=MetadataMalformed("bad json"))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        meta = await resolver.resolve("123")

        assert meta.title == "From API"
        assert meta.author == "Bob"
        api_client.fetch_illust_detail.assert_awaited_once_with("123")

    @pytest.mark.asyncio
    async def test_embedded_without_record_falls_back_to_api(
        self, api_client, preload_factory
    ):
        loader = AsyncMock(return_value=preload_factory(illust_id="999"))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        meta = await resolver.resolve("123")

        assert meta.title == "From API"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "embedded",
        [
            {"illust": {"123": {"urls": "oops"}}},
            {"illustManga": {"123": {"pages": [None, "p1", {"urls": ["x"]}]}}},
            {"illust": {"123": {"urls": {"original": 42}, "title": 7}}},
            ["not", "a", "dict"],
        ],
    )
    async def test_wrong_shaped_embedded_data_falls_back_to_api(
        self, api_client, embedded
    ):
        loader = AsyncMock(return_value=embedded)
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        meta = await resolver.resolve("123")

        assert meta.title == "From API"
        assert meta.assets[0].url == API_ORIGINAL.format(id="123")
        api_client.fetch_illust_detail.assert_awaited_once_with("123")

    @pytest.mark.asyncio
    async def test_non_object_api_body_is_unavailable(self, api_client):
        api_client.fetch_illust_detail = AsyncMock(
            return_value={"error": False, "body": ["unexpected"]}
        )
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("none"))
        )

        with pytest.raises(MetadataUnavailable, match="not found"):
            await resolver.resolve("123")

    @pytest.mark.asyncio
    async def test_page_fetch_failure_falls_back_to_api(self, api_client):
        loader = AsyncMock(side_effect=RemoteRequestFailed("Pixiv request failed (503)."))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        meta = await resolver.resolve("123")

        assert meta.author == "Bob"

    @pytest.mark.asyncio
    async def test_empty_api_body_is_unavailable(self, api_client):
        api_client.fetch_illust_detail = AsyncMock(return_value={"error": False, "body": {}})
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("x"))
        )

        with pytest.raises(MetadataUnavailable, match="not found"):
            await resolver.resolve("123")

    @pytest.mark.asyncio
    async def test_api_failure_propagates(self, api_client):
        api_client.fetch_illust_detail = AsyncMock(
            side_effect=RemoteRequestFailed("Pixiv request failed (404).")
        )
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("x"))
        )

        with pytest.raises(RemoteRequestFailed, match="404"):
            await resolver.resolve("123")


class TestUgoira:
    @pytest.mark.asyncio
    async def test_ugoira_meta_fetched_for_animated_works(self, api_client):
        zip_url = "https://i.pximg.net/img-zip-ugoira/123_ugoira1920x1080.zip"
        api_client.fetch_illust_detail = AsyncMock(return_value=api_response(illustType=2))
        api_client.fetch_ugoira_meta = AsyncMock(
            return_value={"error": False, "body": {"originalSrc": zip_url}}
        )
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("x"))
        )

        meta = await resolver.resolve("123")

        api_client.fetch_ugoira_meta.assert_awaited_once_with("123")
        assert meta.assets[-1].variant == AssetVariant.UGOIRA
        assert meta.assets[-1].url == zip_url

    @pytest.mark.asyncio
    async def test_ugoira_meta_failure_is_not_fatal(self, api_client):
        api_client.fetch_illust_detail = AsyncMock(return_value=api_response(illustType=2))
        api_client.fetch_ugoira_meta = AsyncMock(side_effect=RemoteRequestFailed("nope"))
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("x"))
        )

        meta = await resolver.resolve("123")

        assert [a.variant for a in meta.assets] == [AssetVariant.ORIGINAL]

    @pytest.mark.asyncio
    async def test_ugoira_meta_skipped_for_still_images(self, api_client):
        resolver = MetadataResolver(
            api_client, embedded_loader=AsyncMock(side_effect=MetadataUnavailable("x"))
        )
        await resolver.resolve("123")
        api_client.fetch_ugoira_meta.assert_not_called()


class TestSingleFlightAndCache:
    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_resolution(
        self, api_client, preload_factory
    ):
        release = asyncio.Event()

        async def slow_loader(illust_id):
            await release.wait()
            return preload_factory(illust_id=illust_id)

        loader = AsyncMock(side_effect=slow_loader)
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        pending = asyncio.gather(*(resolver.resolve("123") for _ in range(3)))
        await asyncio.sleep(0)
        release.set()
        results = await pending

        assert loader.await_count == 1
        assert results[0] is results[1] is results[2]

    @pytest.mark.asyncio
    async def test_repeat_request_served_from_cache(self, api_client, preload_factory):
        loader = AsyncMock(return_value=preload_factory())
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        first = await resolver.resolve("123")
        second = await resolver.resolve("123")

        assert first is second
        assert loader.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_holds_only_the_latest_id(self, api_client, preload_factory):
        loader = AsyncMock(side_effect=lambda i: preload_factory(illust_id=i))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        await resolver.resolve("1")
        await resolver.resolve("2")
        await resolver.resolve("1")

        assert loader.await_count == 3
        assert resolver.state.last_id == "1"

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, api_client, preload_factory):
        loader = AsyncMock(
            side_effect=[MetadataUnavailable("x"), preload_factory()]
        )
        api_client.fetch_illust_detail = AsyncMock(side_effect=RemoteRequestFailed("down"))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        with pytest.raises(RemoteRequestFailed):
            await resolver.resolve("123")
        assert resolver.state.last_result is None
        assert resolver.state.inflight == {}

        meta = await resolver.resolve("123")
        assert meta.title == "Sunset"

    @pytest.mark.asyncio
    async def test_failure_does_not_evict_previous_result(
        self, api_client, preload_factory
    ):
        loader = AsyncMock(
            side_effect=[preload_factory(illust_id="1"), MetadataUnavailable("x")]
        )
        api_client.fetch_illust_detail = AsyncMock(side_effect=RemoteRequestFailed("down"))
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        first = await resolver.resolve("1")
        with pytest.raises(RemoteRequestFailed):
            await resolver.resolve("2")

        assert resolver.state.last_id == "1"
        assert await resolver.resolve("1") is first

    @pytest.mark.asyncio
    async def test_reset_clears_cache(self, api_client, preload_factory):
        loader = AsyncMock(return_value=preload_factory())
        resolver = MetadataResolver(api_client, embedded_loader=loader)

        await resolver.resolve("123")
        resolver.reset()
        await resolver.resolve("123")

        assert loader.await_count == 2
