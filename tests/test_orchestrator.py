"""
Tests for the per-asset download loop and the sequential batch orchestrator.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pixiv_cli.core.asset_processor import DEFAULT_FAILURE_MESSAGE, AssetProcessor
from pixiv_cli.core.orchestrator import DownloadOrchestrator
from pixiv_cli.exceptions import AssetFetchFailed, DownloadCommitFailed, PathRejected
from pixiv_cli.media.downloader import FetchedAsset
from pixiv_cli.media.sink import ConflictPolicy, FileSystemSink
from pixiv_cli.models.metadata import (
    AssetVariant,
    BatchStatus,
    IllustrationMetadata,
    ImageAsset,
    summarize_outcomes,
)
from pixiv_cli.utils.formatting import describe_summary

CDN = "https://i.pximg.net/img-original/img/2024/05/01/12/00/00"


def make_asset(page: int, fallbacks=()) -> ImageAsset:
    return ImageAsset(f"{CDN}/123_p{page}.png", page, AssetVariant.PAGE, tuple(fallbacks))


def make_meta(assets) -> IllustrationMetadata:
    return IllustrationMetadata("123", "Sunset", "Alice", tuple(assets))


class FakeDownloader:
    """Serves bytes for known URLs; everything else fails."""

    def __init__(self, responses: dict[str, bytes] | None = None):
        self.responses = responses or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedAsset:
        self.calls.append(url)
        if url not in self.responses:
            raise AssetFetchFailed("Failed to fetch image (404)")
        return FetchedAsset(self.responses[url], "image/png", url)


def make_processor(downloader, sink, **kwargs) -> AssetProcessor:
    kwargs.setdefault("retry_delay", 0)
    return AssetProcessor(downloader, sink, root_folder="Pixiv", **kwargs)


class TestAssetProcessor:
    @pytest.mark.asyncio
    async def test_success_saves_under_descriptive_path(self, tmp_path):
        asset = make_asset(0)
        processor = make_processor(FakeDownloader({asset.url: b"png"}), FileSystemSink(tmp_path))

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        expected = tmp_path / "Pixiv" / "Alice" / "123-Sunset" / "p00_123_by_Alice__pixiv-only.png"
        assert outcome.saved_path == str(expected)
        assert expected.read_bytes() == b"png"

    @pytest.mark.asyncio
    async def test_fallback_url_used_when_primary_fails(self, tmp_path):
        fallback = "https://i.pximg.net/img-master/img/123_p0_master1200.jpg"
        asset = make_asset(0, [fallback])
        downloader = FakeDownloader({fallback: b"jpg"})
        processor = make_processor(downloader, FileSystemSink(tmp_path))

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        assert outcome.asset_url == asset.url
        assert outcome.saved_path.endswith(".jpg")
        assert downloader.calls == [asset.url] * 4 + [fallback]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("retry_enabled, attempts", [(True, 4), (False, 1)])
    async def test_attempts_per_url(self, tmp_path, retry_enabled, attempts):
        asset = make_asset(0, ["https://i.pximg.net/other.jpg"])
        downloader = FakeDownloader()
        processor = make_processor(
            downloader, FileSystemSink(tmp_path), retry_enabled=retry_enabled
        )

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert not outcome.success
        assert outcome.error == "Failed to fetch image (404)"
        assert len(downloader.calls) == attempts * 2

    @pytest.mark.asyncio
    async def test_retry_succeeds_on_later_attempt(self, tmp_path):
        asset = make_asset(0)
        downloader = MagicMock()
        downloader.fetch = AsyncMock(
            side_effect=[
                AssetFetchFailed("Failed to fetch image (503)"),
                FetchedAsset(b"ok", "image/png", asset.url),
            ]
        )
        processor = make_processor(downloader, FileSystemSink(tmp_path))

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        assert downloader.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_rejected_path_moves_to_next_candidate(self):
        asset = make_asset(0)
        sink = MagicMock()
        sink.commit = AsyncMock(
            side_effect=[PathRejected("Invalid filename"), "/out/second.png"]
        )
        processor = make_processor(FakeDownloader({asset.url: b"x"}), sink)

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        assert outcome.saved_path == "/out/second.png"
        first_path = sink.commit.await_args_list[0].args[1]
        second_path = sink.commit.await_args_list[1].args[1]
        assert first_path != second_path

    @pytest.mark.asyncio
    async def test_path_too_long_message_counts_as_rejection(self):
        asset = make_asset(0)
        sink = MagicMock()
        sink.commit = AsyncMock(side_effect=[OSError("Path too long"), "/out/ok.png"])
        processor = make_processor(FakeDownloader({asset.url: b"x"}), sink)

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        assert sink.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_other_commit_errors_abandon_the_url(self):
        fallback = "https://i.pximg.net/img-master/123_p0_master1200.jpg"
        asset = make_asset(0, [fallback])
        sink = MagicMock()
        sink.commit = AsyncMock(
            side_effect=[DownloadCommitFailed("disk full"), "/out/fallback.jpg"]
        )
        downloader = FakeDownloader({asset.url: b"x", fallback: b"y"})
        processor = make_processor(downloader, sink)

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert outcome.success
        assert outcome.saved_path == "/out/fallback.jpg"
        assert downloader.calls == [asset.url, fallback]
        assert sink.commit.await_args_list[1].args[0] == b"y"

    @pytest.mark.asyncio
    async def test_conflict_policy_passed_to_sink(self):
        asset = make_asset(0)
        sink = MagicMock()
        sink.commit = AsyncMock(return_value="/out/a.png")
        processor = make_processor(
            FakeDownloader({asset.url: b"x"}), sink, conflict_policy=ConflictPolicy.OVERWRITE
        )

        await processor.process_asset(make_meta([asset]), asset)

        assert sink.commit.await_args.args[2] == ConflictPolicy.OVERWRITE

    @pytest.mark.asyncio
    async def test_asset_without_urls_reports_default_error(self, tmp_path):
        asset = ImageAsset("", 0, AssetVariant.PAGE)
        processor = make_processor(FakeDownloader(), FileSystemSink(tmp_path))

        outcome = await processor.process_asset(make_meta([asset]), asset)

        assert not outcome.success
        assert outcome.error == DEFAULT_FAILURE_MESSAGE


class TestDownloadOrchestrator:
    @pytest.mark.asyncio
    async def test_partial_batch_keeps_going(self, tmp_path):
        assets = [make_asset(i) for i in range(3)]
        downloader = FakeDownloader({assets[0].url: b"1", assets[2].url: b"3"})
        orchestrator = DownloadOrchestrator(
            make_processor(downloader, FileSystemSink(tmp_path), retry_enabled=False)
        )
        progress = []

        outcomes = await orchestrator.run(
            make_meta(assets), assets, lambda i, t, o: progress.append((i, t, o.success))
        )

        assert [o.success for o in outcomes] == [True, False, True]
        assert [o.asset_url for o in outcomes] == [a.url for a in assets]
        assert progress == [(1, 3, True), (2, 3, False), (3, 3, True)]

        summary = summarize_outcomes(outcomes)
        assert summary.status == BatchStatus.PARTIAL
        assert summary.failures[0].asset_url == assets[1].url
        assert describe_summary(summary) == "2 of 3 downloaded"

    @pytest.mark.asyncio
    async def test_assets_processed_in_order(self, tmp_path):
        assets = [make_asset(i) for i in range(3)]
        downloader = FakeDownloader({a.url: b"x" for a in assets})
        orchestrator = DownloadOrchestrator(make_processor(downloader, FileSystemSink(tmp_path)))

        outcomes = await orchestrator.run(make_meta(assets), assets)

        assert downloader.calls == [a.url for a in assets]
        assert summarize_outcomes(outcomes).status == BatchStatus.ALL_SUCCEEDED
        assert len({o.saved_path for o in outcomes}) == 3

    @pytest.mark.asyncio
    async def test_all_failed(self, tmp_path):
        assets = [make_asset(i) for i in range(2)]
        orchestrator = DownloadOrchestrator(
            make_processor(FakeDownloader(), FileSystemSink(tmp_path), retry_enabled=False)
        )

        outcomes = await orchestrator.run(make_meta(assets), assets)

        summary = summarize_outcomes(outcomes)
        assert summary.status == BatchStatus.ALL_FAILED
        assert describe_summary(summary) == "All 2 downloads failed"
