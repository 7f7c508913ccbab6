"""
Paging, kind parsing and candidate merge helpers shared by the assemblers.
"""
from typing import Iterable, Optional, Sequence

from feedrank.config import settings
from feedrank.domain import ContentItem, ScoredItem
from feedrank.errors import InvalidInputError
from feedrank.models import POST_KINDS


def _as_positive_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid {field}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {field}") from None
    if number != value and str(number) != str(value).strip():
        raise InvalidInputError(f"Invalid {field}")
    if number < 1:
        raise InvalidInputError(f"{field} must be >= 1")
    return number


def resolve_page(page, page_size) -> tuple[int, int]:
    """Validate paging input; values above the configured maximum are clamped."""
    page = min(_as_positive_int(page, "page"), settings.feed_max_page)
    page_size = min(_as_positive_int(page_size, "page_size"), settings.feed_max_page_size)
    return page, page_size


def page_window(page: int, page_size: int) -> tuple[int, int]:
    start = (page - 1) * page_size
    return start, start + page_size


def slice_page(items: Sequence, page: int, page_size: int) -> list:
    start, stop = page_window(page, page_size)
    return list(items[start:stop])


def parse_kinds(raw: Optional[Iterable[str] | str]) -> tuple[str, ...]:
    """Parse a kinds filter ("post,reel" or a list). Unknown kinds are ignored."""
    if raw is None:
        return POST_KINDS
    parts = raw.split(",") if isinstance(raw, str) else raw
    wanted = {str(p).strip().lower() for p in parts if p is not None}
    kinds = tuple(k for k in POST_KINDS if k in wanted)
    return kinds or POST_KINDS


def merge_candidates(
    *pools: tuple[str, Iterable[ContentItem]],
    exclude: Optional[set[str]] = None,
) -> list[tuple[str, ContentItem]]:
    """
    Merge (source, items) pools keeping the first occurrence of every id.

    Returns (source, item) pairs so callers can report where an item came from.
    """
    exclude = exclude or set()
    seen: set[str] = set()
    merged: list[tuple[str, ContentItem]] = []
    for source, items in pools:
        for item in items:
            if item.post_id in seen or item.post_id in exclude:
                continue
            seen.add(item.post_id)
            merged.append((source, item))
    return merged


def partition_viewed(ranked: Sequence[ScoredItem]) -> list[ScoredItem]:
    """Unviewed items first, then viewed; relative order is preserved in each."""
    fresh = [s for s in ranked if not s.viewed]
    seen = [s for s in ranked if s.viewed]
    return fresh + seen
