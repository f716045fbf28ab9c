"""
Interactive range selection for multi-image artworks.
"""

import re
from typing import Optional

from rich.console import Console
from rich.prompt import Prompt

from pixiv_cli.models.metadata import Selection, SelectionMode

CANCEL_ANSWERS = {"q", "quit", "cancel", "n", "no"}
RANGE_PATTERN = re.compile(r"^(\d*)\s*-\s*(\d*)$")


class InvalidRangeAnswer(ValueError):
    pass


def parse_range_answer(
    answer: str, defaults: Optional[Selection]
) -> Optional[Selection]:
    """
    Turns a prompt answer into a Selection.

    Accepts 'all', a single page number, or 'A-B' (either side may be omitted).
    An empty answer keeps the defaults; a cancel word returns None.

    Raises:
        InvalidRangeAnswer: The answer is not a recognised form.
    """
    answer = answer.strip().lower()
    if not answer:
        return defaults
    if answer in CANCEL_ANSWERS:
        return None
    if answer in ("all", "a", "*"):
        return Selection.all()
    if answer.isdigit():
        return Selection.range(int(answer), int(answer))
    match = RANGE_PATTERN.match(answer)
    if not match:
        raise InvalidRangeAnswer(answer)
    start, end = match.groups()
    return Selection.range(int(start) if start else None, int(end) if end else None)


class RichRangePrompt:
    """Asks on the terminal which images of an artwork to download."""

    def __init__(self, console: Console):
        self.console = console

    def __call__(self, total: int, defaults: Selection) -> Optional[Selection]:
        default_text = (
            "all" if defaults.mode == SelectionMode.ALL else defaults.describe()
        )
        self.console.print(
            f"This artwork has [bold]{total}[/bold] images. "
            "[dim]Enter 'all', a page, 'A-B', or 'q' to skip.[/dim]"
        )
        while True:
            try:
                answer = Prompt.ask(
                    "Images to download", console=self.console, default=default_text
                )
            except (EOFError, KeyboardInterrupt):
                return None
            try:
                return parse_range_answer(answer, defaults)
            except InvalidRangeAnswer:
                self.console.print(f"[red]Not a valid range: {answer}[/red]")
