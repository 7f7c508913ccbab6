"""
Taste profile store: a TTL cache with a compute-on-miss-or-stale contract.

  hit & fresh   → cached profile
  miss or stale → rebuild synchronously from the interaction ledger,
                  write back wholesale (last write wins)
  any failure   → log, count, and return None so Explore ranks without
                  the interest boost
"""
import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as aioredis
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.clients.redis_client import get_taste_profile, set_taste_profile
from feedrank.config import settings
from feedrank.domain import ContentItem, TasteProfile
from feedrank.models import Post
from feedrank.ranking.taste import TASTE_INTERACTION_TYPES, build_taste_profile, is_stale
from feedrank.store.ledger import get_taste_history
from feedrank.telemetry import TASTE_PROFILE_REBUILDS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def rebuild_taste_profile(
    db: AsyncSession,
    r: aioredis.Redis,
    user_id: str,
    now: datetime,
    previous: Optional[TasteProfile] = None,
) -> TasteProfile:
    with tracer.start_as_current_span("rebuild_taste_profile") as span:
        history = await get_taste_history(
            db,
            user_id,
            TASTE_INTERACTION_TYPES,
            now,
            lookback_days=settings.taste_lookback_days,
            limit=settings.taste_history_limit,
        )

        item_ids = list({rec.post_id for rec in history})
        items: dict[str, ContentItem] = {}
        if item_ids:
            rows = await db.execute(
                select(Post)
                .where(Post.post_id.in_(item_ids), Post.deleted_at.is_(None))
                .execution_options(populate_existing=True)
            )
            items = {p.post_id: ContentItem.from_row(p) for p in rows.scalars().all()}

        profile = build_taste_profile(
            user_id,
            [(rec, items.get(rec.post_id)) for rec in history],
            now,
            previous=previous,
        )
        await set_taste_profile(r, profile)

        span.set_attribute("taste.history_size", len(history))
        span.set_attribute("taste.version", profile.version)

    TASTE_PROFILE_REBUILDS_TOTAL.labels(outcome="rebuilt").inc()
    logger.info(
        "Taste profile rebuilt for %s (v%d, %d interactions)",
        user_id, profile.version, len(history),
    )
    return profile


async def load_or_rebuild_taste_profile(
    db: AsyncSession,
    r: aioredis.Redis,
    user_id: str,
    now: datetime,
) -> Optional[TasteProfile]:
    cached: Optional[TasteProfile] = None
    try:
        cached = await get_taste_profile(r, user_id)
    except Exception as exc:
        logger.warning("Taste profile read failed for %s: %s; treating as miss", user_id, exc)

    if cached is not None and not is_stale(cached, now):
        return cached

    try:
        return await rebuild_taste_profile(db, r, user_id, now, previous=cached)
    except Exception as exc:
        TASTE_PROFILE_REBUILDS_TOTAL.labels(outcome="failed").inc()
        logger.warning(
            "Taste profile rebuild failed for %s: %s; ranking without interest boost",
            user_id,
            exc,
        )
        return None
