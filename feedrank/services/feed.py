"""
Feed assembly for the home, following and explore surfaces.

Home feed pipeline:

  Stage 1 │ Exclusions
  ────────┼──────────────────────────────────────────────────────────────
          │  hidden/reported ids, followees, block lists (both directions)

  Stage 2 │ Candidate Generation
  ────────┼──────────────────────────────────────────────────────────────
          │  Own + Followed + Explore(14d) pools, merged first-seen,
          │  de-duplicated by id

  Stage 3 │ Scoring
  ────────┼──────────────────────────────────────────────────────────────
          │  freshness × engagement × quality × relationship
          │  unviewed items ahead of viewed ones

  Stage 4 │ Interleave, Paginate & Hydrate
  ────────┼──────────────────────────────────────────────────────────────
          │  3 non-reels : 1 reel with a reel quota, page slice,
          │  batch author + flag hydration

Explore swaps Stage 2 for a single 30-day Explore pool, adds the taste
profile interest boost to Stage 3, and replaces interleaving with a
per-author diversity cap.
"""
import logging
import time
from datetime import datetime
from typing import Iterable, Optional

import redis.asyncio as aioredis
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.config import settings
from feedrank.domain import ContentItem, ScoredItem, ViewerContext
from feedrank.ranking.diversity import cap_per_author
from feedrank.ranking.interleave import InterleavePolicy
from feedrank.ranking.paging import (
    merge_candidates,
    parse_kinds,
    partition_viewed,
    resolve_page,
    slice_page,
)
from feedrank.ranking.scoring import score_item, sort_scored
from feedrank.schemas import FeedResponse
from feedrank.services.hydration import hydrate_page
from feedrank.services.taste import load_or_rebuild_taste_profile
from feedrank.store.candidates import (
    fetch_explore_candidates,
    fetch_followed_candidates,
    fetch_own_candidates,
)
from feedrank.store.graph import get_excluded_author_ids, get_followee_ids
from feedrank.store.ledger import get_hidden_post_ids, get_viewed_post_ids
from feedrank.telemetry import FEED_CANDIDATES_TOTAL, FEED_LATENCY
from feedrank.utils import parse_id, utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _pool_limit(page: int, page_size: int) -> int:
    return min(settings.feed_candidate_pool_cap, page * page_size * 2)


def _interleave_policy() -> InterleavePolicy:
    return InterleavePolicy(
        run_length=settings.reel_run_length,
        secondary_share=settings.reel_share,
    )


def _is_reel(scored: ScoredItem) -> bool:
    return scored.item.kind == "reel"


async def _rank(
    db: AsyncSession,
    context: ViewerContext,
    merged: Iterable[tuple[str, ContentItem]],
    now: datetime,
    with_interest: bool = False,
) -> list[ScoredItem]:
    """Score merged candidates and order them: unviewed first, then by rank key."""
    merged = list(merged)
    viewed_ids = await get_viewed_post_ids(
        db, context.viewer_id, (item.post_id for _, item in merged)
    )
    scored = [
        ScoredItem(
            item=item,
            score=score_item(item, context, now, with_interest=with_interest),
            source=source,
            viewed=item.post_id in viewed_ids,
        )
        for source, item in merged
    ]
    return partition_viewed(sort_scored(scored))


async def _finish(
    db: AsyncSession,
    surface: str,
    context: ViewerContext,
    ordered: list[ScoredItem],
    page: int,
    page_size: int,
    candidates_total: int,
    start_time: float,
    with_following_flag: bool = True,
) -> FeedResponse:
    page_items = slice_page(ordered, page, page_size)
    items = await hydrate_page(
        db,
        context.viewer_id,
        page_items,
        followee_ids=set(context.followee_ids) if with_following_flag else None,
    )

    latency = time.time() - start_time
    FEED_LATENCY.labels(surface=surface).observe(latency)

    return FeedResponse(
        viewer_id=context.viewer_id,
        surface=surface,
        page=page,
        page_size=page_size,
        has_more=len(ordered) > page * page_size,
        items=items,
        candidates_total=candidates_total,
        latency_ms=round(latency * 1000, 2),
    )


async def get_home_feed(
    db: AsyncSession,
    viewer_id: str,
    page_size: int = 20,
    page: int = 1,
    kinds=None,
    now: Optional[datetime] = None,
) -> FeedResponse:
    start_time = time.time()
    viewer_id = parse_id(viewer_id, "viewer_id")
    page, page_size = resolve_page(page, page_size)
    kinds = parse_kinds(kinds)
    now = now or utcnow()

    with tracer.start_as_current_span("get_home_feed") as span:
        span.set_attribute("viewer.id", viewer_id)

        # ── Stage 1: exclusions ─────────────────────────────────────────
        hidden_ids = await get_hidden_post_ids(db, viewer_id)
        followee_ids = await get_followee_ids(db, viewer_id)
        excluded_authors = await get_excluded_author_ids(db, viewer_id)
        context = ViewerContext(viewer_id=viewer_id, followee_ids=frozenset(followee_ids))

        # ── Stage 2: candidate generation ───────────────────────────────
        with tracer.start_as_current_span("home_retrieval"):
            limit = _pool_limit(page, page_size)
            own = await fetch_own_candidates(
                db, viewer_id, kinds, limit, now, hidden_ids=hidden_ids
            )
            followed = await fetch_followed_candidates(
                db, followee_ids, kinds, limit, now,
                hidden_ids=hidden_ids,
                excluded_author_ids=excluded_authors,
            )
            explore = await fetch_explore_candidates(
                db, viewer_id, kinds, limit, now,
                window_days=settings.home_explore_window_days,
                hidden_ids=hidden_ids,
                followee_ids=followee_ids,
                excluded_author_ids=excluded_authors,
            )

        FEED_CANDIDATES_TOTAL.labels(source="own").inc(len(own))
        FEED_CANDIDATES_TOTAL.labels(source="followed").inc(len(followed))
        FEED_CANDIDATES_TOTAL.labels(source="explore").inc(len(explore))
        span.set_attribute("candidates.own", len(own))
        span.set_attribute("candidates.followed", len(followed))
        span.set_attribute("candidates.explore", len(explore))

        merged = merge_candidates(
            ("own", own), ("followed", followed), ("explore", explore),
            exclude=hidden_ids,
        )

        # ── Stage 3: scoring ────────────────────────────────────────────
        with tracer.start_as_current_span("home_scoring"):
            ordered = await _rank(db, context, merged, now)

        # ── Stage 4: interleave, paginate, hydrate ──────────────────────
        if "post" in kinds and "reel" in kinds:
            ordered = _interleave_policy().apply(ordered, page_size, _is_reel)

        logger.debug(
            "Home feed for %s: %d merged candidates, page %d", viewer_id, len(merged), page
        )
        return await _finish(
            db, "home", context, ordered, page, page_size, len(merged), start_time
        )


async def get_following_feed(
    db: AsyncSession,
    viewer_id: str,
    page_size: int = 20,
    page: int = 1,
    kinds=None,
    interleave: bool = False,
    now: Optional[datetime] = None,
) -> FeedResponse:
    """Followed-only variant of the home feed; interleaves only when asked to."""
    start_time = time.time()
    viewer_id = parse_id(viewer_id, "viewer_id")
    page, page_size = resolve_page(page, page_size)
    kinds = parse_kinds(kinds)
    now = now or utcnow()

    with tracer.start_as_current_span("get_following_feed") as span:
        span.set_attribute("viewer.id", viewer_id)

        hidden_ids = await get_hidden_post_ids(db, viewer_id)
        followee_ids = await get_followee_ids(db, viewer_id)
        excluded_authors = await get_excluded_author_ids(db, viewer_id)
        context = ViewerContext(viewer_id=viewer_id, followee_ids=frozenset(followee_ids))

        followed = await fetch_followed_candidates(
            db, followee_ids, kinds, _pool_limit(page, page_size), now,
            hidden_ids=hidden_ids,
            excluded_author_ids=excluded_authors,
        )
        FEED_CANDIDATES_TOTAL.labels(source="followed").inc(len(followed))
        span.set_attribute("candidates.followed", len(followed))

        merged = merge_candidates(("followed", followed), exclude=hidden_ids)
        ordered = await _rank(db, context, merged, now)

        if interleave and "post" in kinds and "reel" in kinds:
            ordered = _interleave_policy().apply(ordered, page_size, _is_reel)

        return await _finish(
            db, "following", context, ordered, page, page_size, len(merged), start_time
        )


async def get_explore_feed(
    db: AsyncSession,
    r: aioredis.Redis,
    viewer_id: str,
    page_size: int = 30,
    page: int = 1,
    kinds=None,
    now: Optional[datetime] = None,
) -> FeedResponse:
    start_time = time.time()
    viewer_id = parse_id(viewer_id, "viewer_id")
    page, page_size = resolve_page(page, page_size)
    kinds = parse_kinds(kinds)
    now = now or utcnow()

    with tracer.start_as_current_span("get_explore_feed") as span:
        span.set_attribute("viewer.id", viewer_id)

        # ── Stage 1: exclusions (own items excluded by the explore source) ──
        hidden_ids = await get_hidden_post_ids(db, viewer_id)
        followee_ids = await get_followee_ids(db, viewer_id)
        excluded_authors = await get_excluded_author_ids(db, viewer_id)

        # ── Stage 2: single explore pool ────────────────────────────────
        with tracer.start_as_current_span("explore_retrieval"):
            pool = await fetch_explore_candidates(
                db, viewer_id, kinds, settings.explore_pool_size, now,
                window_days=settings.explore_window_days,
                hidden_ids=hidden_ids,
                followee_ids=followee_ids,
                excluded_author_ids=excluded_authors,
            )
        FEED_CANDIDATES_TOTAL.labels(source="explore").inc(len(pool))
        span.set_attribute("candidates.explore", len(pool))

        # ── Stage 3: taste profile + boosted scoring ────────────────────
        with tracer.start_as_current_span("explore_taste"):
            taste = await load_or_rebuild_taste_profile(db, r, viewer_id, now)
        span.set_attribute("taste.present", taste is not None)

        context = ViewerContext(
            viewer_id=viewer_id,
            followee_ids=frozenset(followee_ids),
            taste=taste,
        )
        merged = merge_candidates(("explore", pool), exclude=hidden_ids)
        with tracer.start_as_current_span("explore_scoring"):
            ordered = await _rank(db, context, merged, now, with_interest=True)

        # ── Stage 4: diversity cap, paginate, hydrate ───────────────────
        # One extra admission tells us whether another page exists
        ordered = cap_per_author(
            ordered,
            author_of=lambda s: s.item.author_id,
            max_per_author=settings.explore_max_per_author,
            limit=page * page_size + 1,
        )

        return await _finish(
            db, "explore", context, ordered, page, page_size, len(merged), start_time,
            with_following_flag=False,
        )
