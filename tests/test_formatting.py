from pixiv_cli.models.metadata import BatchSummary, DownloadOutcome
from pixiv_cli.utils.formatting import (
    describe_summary,
    format_duration,
    format_error_message,
    format_size,
)


def test_format_size():
    assert format_size(0) == "0 B"
    assert format_size(1536) == "1.5 KB"


def test_format_duration():
    assert format_duration(0) == "0s"
    assert format_duration(72) == "1m 12s"
    assert format_duration(3600) == "1h"


def test_long_error_messages_are_shortened():
    message = format_error_message("x" * 300)
    assert len(message) == 120
    assert message.endswith("...")
    assert format_error_message(None) == "Unknown error."


def test_describe_summary_states():
    failed = DownloadOutcome("u", False, "boom")
    assert describe_summary(BatchSummary(1, 1)) == "All 1 image downloaded"
    assert describe_summary(BatchSummary(4, 4)) == "All 4 images downloaded"
    assert describe_summary(BatchSummary(3, 1, [failed, failed])) == "1 of 3 downloaded"
    assert describe_summary(BatchSummary(2, 0, [failed, failed])) == "All 2 downloads failed"
