"""
Range selection over an artwork's ordered asset list.

Bounds are 1-indexed and inclusive. Out-of-range bounds are clamped rather
than rejected: the start is clamped into [1, total] and the end into
[start, total], so a reversed range such as 3-2 selects asset 3 alone.
"""

from typing import Callable, Optional, Sequence, TypeVar

from pixiv_cli.models.metadata import Selection, SelectionMode

T = TypeVar("T")

RangePrompt = Callable[[int, Selection], Optional[Selection]]


def _to_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


def clamp_range(
    total: int, start: object = None, end: object = None
) -> tuple[int, int]:
    """Clamps raw bounds to a valid 1-indexed inclusive range over total items."""
    start_value = min(total, max(1, _to_int(start) or 1))
    end_value = min(total, max(start_value, _to_int(end) or total))
    return start_value, end_value


def apply_selection(items: Sequence[T], selection: Optional[Selection]) -> list[T]:
    """Returns the selected items as a new list; never raises."""
    if not items:
        return []
    if selection is None or selection.mode != SelectionMode.RANGE:
        return list(items)

    start, end = clamp_range(len(items), selection.start, selection.end)
    return list(items[start - 1 : end])


def stored_range_bounds(total: int, start: object, end: object) -> Selection:
    """The configured custom range, clamped to the current asset count."""
    return Selection.range(*clamp_range(total, start, end))


def resolve_selection(
    total: int,
    range_mode: str,
    custom_start: object = None,
    custom_end: object = None,
    prompt: Optional[RangePrompt] = None,
) -> Optional[Selection]:
    """
    Decides which assets to download according to the configured range mode.

    Returns None when the user cancelled the prompt.
    """
    if total <= 1:
        return Selection.all()

    if range_mode == "prompt" and prompt is not None:
        defaults = stored_range_bounds(total, custom_start, custom_end)
        if defaults.start == 1 and defaults.end == total:
            defaults = Selection(SelectionMode.ALL, defaults.start, defaults.end)
        selection = prompt(total, defaults)
        if selection is None:
            return None
        if selection.mode == SelectionMode.RANGE:
            start = _to_int(selection.start) or defaults.start
            end = _to_int(selection.end) or defaults.end
            return Selection.range(*clamp_range(total, start, end))
        return Selection.all()

    if range_mode == "custom":
        return stored_range_bounds(total, custom_start, custom_end)

    return Selection.all()
