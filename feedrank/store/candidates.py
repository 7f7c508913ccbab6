"""
Candidate sources.

Three independent retrieval queries feed the assemblers:

  own       — the viewer's own items, any visibility, newest first
  followed  — followees' non-private items, newest first
  explore   — public items from strangers inside a freshness window,
              coarse popularity order (hearts, comments, recency)

Every source shares the same base filter: not soft-deleted, published,
published_at ≤ now, kind in the requested set, not hidden/reported by the
viewer. The storage order only bounds the pool size; the scorer decides the
final order. An empty pool is a normal result.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.domain import ContentItem
from feedrank.models import Post

logger = logging.getLogger(__name__)


def _base_query(
    kinds: Iterable[str],
    now: datetime,
    hidden_ids: Optional[set[str]] = None,
) -> Select:
    query = select(Post).where(
        Post.deleted_at.is_(None),
        Post.status == "published",
        Post.published_at.is_not(None),
        Post.published_at <= now,
        Post.kind.in_(list(kinds)),
    )
    if hidden_ids:
        query = query.where(Post.post_id.not_in(list(hidden_ids)))
    return query


async def _fetch(db: AsyncSession, query: Select) -> list[ContentItem]:
    # Counters move through UPDATE statements; always read the stored values
    rows = await db.execute(query.execution_options(populate_existing=True))
    return [ContentItem.from_row(p) for p in rows.scalars().all()]


async def fetch_own_candidates(
    db: AsyncSession,
    viewer_id: str,
    kinds: Iterable[str],
    limit: int,
    now: datetime,
    hidden_ids: Optional[set[str]] = None,
) -> list[ContentItem]:
    query = (
        _base_query(kinds, now, hidden_ids)
        .where(Post.author_id == viewer_id)
        .order_by(Post.created_at.desc(), Post.post_id.desc())
        .limit(limit)
    )
    return await _fetch(db, query)


async def fetch_followed_candidates(
    db: AsyncSession,
    followee_ids: set[str],
    kinds: Iterable[str],
    limit: int,
    now: datetime,
    hidden_ids: Optional[set[str]] = None,
    excluded_author_ids: Optional[set[str]] = None,
) -> list[ContentItem]:
    authors = set(followee_ids) - set(excluded_author_ids or ())
    if not authors:
        return []
    query = (
        _base_query(kinds, now, hidden_ids)
        .where(
            Post.author_id.in_(list(authors)),
            Post.visibility != "private",
        )
        .order_by(Post.created_at.desc(), Post.post_id.desc())
        .limit(limit)
    )
    return await _fetch(db, query)


async def fetch_explore_candidates(
    db: AsyncSession,
    viewer_id: str,
    kinds: Iterable[str],
    limit: int,
    now: datetime,
    window_days: int,
    hidden_ids: Optional[set[str]] = None,
    followee_ids: Optional[set[str]] = None,
    excluded_author_ids: Optional[set[str]] = None,
) -> list[ContentItem]:
    excluded = {viewer_id} | set(followee_ids or ()) | set(excluded_author_ids or ())
    since = now - timedelta(days=window_days)
    query = (
        _base_query(kinds, now, hidden_ids)
        .where(
            Post.author_id.not_in(list(excluded)),
            Post.visibility == "public",
            Post.published_at >= since,
        )
        .order_by(
            Post.hearts.desc(),
            Post.comments.desc(),
            Post.created_at.desc(),
            Post.post_id.desc(),
        )
        .limit(limit)
    )
    items = await _fetch(db, query)
    logger.debug("Explore pool for %s: %d items (window=%dd)", viewer_id, len(items), window_days)
    return items
