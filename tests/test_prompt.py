"""
Tests for the interactive range prompt.
"""

from unittest.mock import patch

import pytest
from rich.console import Console

from pixiv_cli.cli.prompt import InvalidRangeAnswer, RichRangePrompt, parse_range_answer
from pixiv_cli.models.metadata import Selection

DEFAULTS = Selection.range(2, 3)


class TestParseRangeAnswer:
    @pytest.mark.parametrize(
        "answer, expected",
        [
            ("", DEFAULTS),
            ("all", Selection.all()),
            ("ALL", Selection.all()),
            ("4", Selection.range(4, 4)),
            ("2-5", Selection.range(2, 5)),
            (" 2 - 5 ", Selection.range(2, 5)),
            ("3-", Selection.range(3, None)),
            ("-2", Selection.range(None, 2)),
            ("q", None),
            ("cancel", None),
        ],
    )
    def test_answers(self, answer, expected):
        assert parse_range_answer(answer, DEFAULTS) == expected

    @pytest.mark.parametrize("answer", ["two", "1,3", "1-2-3"])
    def test_invalid_answers(self, answer):
        with pytest.raises(InvalidRangeAnswer):
            parse_range_answer(answer, DEFAULTS)


class TestRichRangePrompt:
    def test_reasks_until_valid(self):
        prompt = RichRangePrompt(Console(quiet=True))
        with patch("pixiv_cli.cli.prompt.Prompt.ask", side_effect=["nope", "1-2"]) as ask:
            assert prompt(5, DEFAULTS) == Selection.range(1, 2)
        assert ask.call_count == 2
        assert ask.call_args.kwargs["default"] == "2-3"

    def test_interrupt_cancels(self):
        prompt = RichRangePrompt(Console(quiet=True))
        with patch("pixiv_cli.cli.prompt.Prompt.ask", side_effect=KeyboardInterrupt):
            assert prompt(5, Selection.all()) is None
