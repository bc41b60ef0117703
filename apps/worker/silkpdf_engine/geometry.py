"""Page-range parsing and coordinate helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from .errors import ValidationError

_RANGE_SEPARATORS = re.compile(r"[,;]")


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_page_range(value: str, total_pages: int) -> List[int]:
    """
    Expand a page selection string into sorted, unique 0-based page indices.

    Parameters:
        value (str): Comma or semicolon separated tokens, each a 1-based page
            number ("8") or a range in either order ("10-12", "5-2").
        total_pages (int): Number of pages in the document.

    Returns:
        list[int]: Ascending indices without duplicates. Range bounds are clamped
            into 1..total_pages, single pages outside that span and unparseable
            tokens are skipped, so an empty list means nothing was selected.
    """
    pages: set[int] = set()
    for part in _RANGE_SEPARATORS.split(value or ""):
        cleaned = part.strip()
        if not cleaned:
            continue
        if "-" in cleaned:
            bounds = cleaned.split("-")
            start = _parse_int(bounds[0])
            end = _parse_int(bounds[1])
            if start is None or end is None:
                continue
            first = max(1, min(start, end))
            last = min(total_pages, max(start, end))
            pages.update(range(first - 1, last))
        else:
            page = _parse_int(cleaned)
            if page is not None and 1 <= page <= total_pages:
                pages.add(page - 1)
    return sorted(pages)


def scale_to_fit(
    content_width: float,
    content_height: float,
    box_width: float,
    box_height: float,
) -> float:
    """Return the aspect-preserving scale that fits the content inside the box."""
    if content_width <= 0 or content_height <= 0:
        raise ValidationError("Content dimensions must be positive")
    if box_width <= 0 or box_height <= 0:
        raise ValidationError("Target area must be positive")
    return min(box_width / content_width, box_height / content_height)


@dataclass(frozen=True)
class Placement:
    """Where and how large to draw scaled content, bottom-left origin."""

    x: float
    y: float
    width: float
    height: float
    scale: float


def fit_box(
    content_width: float,
    content_height: float,
    box_width: float,
    box_height: float,
    origin: Tuple[float, float] = (0.0, 0.0),
) -> Placement:
    """Scale content into a box and center it; ``origin`` is the box's lower-left corner."""
    scale = scale_to_fit(content_width, content_height, box_width, box_height)
    width = content_width * scale
    height = content_height * scale
    offset_x = (box_width - width) / 2
    offset_y = (box_height - height) / 2
    return Placement(
        x=origin[0] + offset_x,
        y=origin[1] + offset_y,
        width=width,
        height=height,
        scale=scale,
    )


def flip_vertical(y: float, page_height: float, content_height: float = 0.0) -> float:
    """Move a top edge between top-left and bottom-left origins (the mapping is its own inverse)."""
    return page_height - y - content_height


def to_absolute(
    x_ratio: float,
    y_ratio: float,
    page_width: float,
    page_height: float,
    content_height: float,
) -> Tuple[float, float]:
    """
    Map a normalized top-left position to absolute PDF coordinates.

    The returned point is the lower-left corner of content ``content_height``
    tall whose visual top-left corner sits at the normalized position.
    """
    x = x_ratio * page_width
    y = flip_vertical(y_ratio * page_height, page_height, content_height)
    return x, y
