"""Per-author diversity cap for ranked sequences."""
from collections import defaultdict
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

MAX_AUTHOR_POSTS = 2


def cap_per_author(
    items: Iterable[T],
    author_of: Callable[[T], str],
    max_per_author: int = MAX_AUTHOR_POSTS,
    limit: Optional[int] = None,
) -> list[T]:
    """
    Walk `items` in order, admitting an item only while its author has fewer
    than `max_per_author` admitted items. Stops once `limit` items are in.
    """
    admitted: list[T] = []
    author_post_count: dict[str, int] = defaultdict(int)
    for item in items:
        if limit is not None and len(admitted) >= limit:
            break
        author = author_of(item)
        if author_post_count[author] >= max_per_author:
            continue
        author_post_count[author] += 1
        admitted.append(item)
    return admitted
