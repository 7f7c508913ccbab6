"""
Interaction ledger queries.

The ledger is append-only from the ranking core's point of view: it is read
to build hidden/viewed sets, taste history and hydration flags. Writes are
owned by services/interactions.py and services/impressions.py.
"""
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.domain import InteractionRecord
from feedrank.models import ImpressionEvent, PostInteraction

SUPPRESSING_TYPES = ("hide", "report")
FLAG_TYPES = ("like", "save", "repost")


async def get_hidden_post_ids(db: AsyncSession, user_id: str) -> set[str]:
    """Posts the user hid or reported; these never reach any candidate pool."""
    rows = await db.execute(
        select(PostInteraction.post_id).where(
            PostInteraction.user_id == user_id,
            PostInteraction.type.in_(SUPPRESSING_TYPES),
        )
    )
    return {r[0] for r in rows.all()}


async def get_viewed_post_ids(
    db: AsyncSession,
    user_id: str,
    post_ids: Iterable[str],
) -> set[str]:
    """Subset of `post_ids` the user has viewed or been shown (impression)."""
    ids = list(set(post_ids))
    if not ids:
        return set()
    views = await db.execute(
        select(PostInteraction.post_id).where(
            PostInteraction.user_id == user_id,
            PostInteraction.type == "view",
            PostInteraction.post_id.in_(ids),
        )
    )
    impressions = await db.execute(
        select(ImpressionEvent.post_id).where(
            ImpressionEvent.user_id == user_id,
            ImpressionEvent.post_id.in_(ids),
        )
    )
    return {r[0] for r in views.all()} | {r[0] for r in impressions.all()}


async def get_taste_history(
    db: AsyncSession,
    user_id: str,
    types: Iterable[str],
    now: datetime,
    lookback_days: int,
    limit: int,
) -> list[InteractionRecord]:
    """Recent interactions of the given types, newest first."""
    since = now - timedelta(days=lookback_days)
    rows = await db.execute(
        select(PostInteraction)
        .where(
            PostInteraction.user_id == user_id,
            PostInteraction.type.in_(list(types)),
            PostInteraction.created_at >= since,
            PostInteraction.created_at <= now,
        )
        .order_by(PostInteraction.created_at.desc(), PostInteraction.interaction_id.desc())
        .limit(limit)
    )
    return [InteractionRecord.from_row(r) for r in rows.scalars().all()]


async def get_interaction_flags(
    db: AsyncSession,
    user_id: str,
    post_ids: Iterable[str],
) -> dict[str, set[str]]:
    """post_id → set of flag interaction types (like/save/repost) for hydration."""
    ids = list(set(post_ids))
    if not ids:
        return {}
    rows = await db.execute(
        select(PostInteraction.post_id, PostInteraction.type).where(
            PostInteraction.user_id == user_id,
            PostInteraction.post_id.in_(ids),
            PostInteraction.type.in_(FLAG_TYPES),
        )
    )
    flags: dict[str, set[str]] = {}
    for post_id, kind in rows.all():
        flags.setdefault(post_id, set()).add(kind)
    return flags
