"""
Interaction handlers and the single owner of engagement-counter mutation.

Every counter change on `posts` goes through `apply_interaction_effect`;
the scorer only ever reads a snapshot of those counters.
"""
import logging
from datetime import datetime
from typing import Optional

from opentelemetry import trace
from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.errors import ForbiddenError, InvalidInputError, NotFoundError
from feedrank.models import (
    INTERACTION_TYPES,
    UNIQUE_INTERACTION_TYPES,
    Post,
    PostInteraction,
)
from feedrank.store.graph import is_blocked_either_way
from feedrank.telemetry import INTERACTIONS_RECORDED_TOTAL
from feedrank.utils import parse_id, utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# interaction type → counters it moves
INTERACTION_COUNTERS: dict[str, tuple[str, ...]] = {
    "like": ("hearts",),
    "save": ("saves",),
    "share": ("shares",),
    "repost": ("reposts",),
    "hide": ("hides",),
    "report": ("reports",),
    "view": ("views", "impressions"),
    "impression": ("impressions",),
}

REMOVABLE_TYPES = ("like", "save", "repost")


async def apply_interaction_effect(
    db: AsyncSession,
    post_id: str,
    interaction_type: str,
    delta: int = 1,
) -> None:
    """Move the counters tied to `interaction_type` by `delta`, never below zero."""
    counters = INTERACTION_COUNTERS.get(interaction_type)
    if not counters:
        raise InvalidInputError(f"Unknown interaction type '{interaction_type}'")

    values = {}
    for name in counters:
        column = getattr(Post, name)
        values[name] = case((column + delta < 0, 0), else_=column + delta)

    await db.execute(
        update(Post)
        .where(Post.post_id == post_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


async def load_accessible_post(db: AsyncSession, viewer_id: str, post_id: str) -> Post:
    """Fetch a live post the viewer may interact with, or raise 404/403."""
    post = await db.get(Post, post_id)
    if post is None or post.deleted_at is not None:
        raise NotFoundError("Post not found")
    if await is_blocked_either_way(db, viewer_id, post.author_id):
        raise ForbiddenError("You cannot interact with this post")
    return post


async def _already_recorded(
    db: AsyncSession, viewer_id: str, post_id: str, interaction_type: str
) -> bool:
    existing = await db.execute(
        select(PostInteraction.interaction_id).where(
            PostInteraction.user_id == viewer_id,
            PostInteraction.post_id == post_id,
            PostInteraction.type == interaction_type,
        )
    )
    return existing.first() is not None


async def record_interaction(
    db: AsyncSession,
    viewer_id: str,
    post_id: str,
    interaction_type: str,
    duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Append an interaction to the ledger.

    Unique types (like/save/share/repost/hide/report) are idempotent: a
    repeat call returns created=False and leaves counters untouched. The
    uq_interaction_once_per_user constraint settles concurrent repeats.
    Views are repeatable and carry an optional watch duration.
    """
    viewer_id = parse_id(viewer_id, "viewer_id")
    post_id = parse_id(post_id, "post_id")
    if interaction_type not in INTERACTION_TYPES:
        raise InvalidInputError(f"Unknown interaction type '{interaction_type}'")
    if duration_ms is not None and duration_ms < 0:
        raise InvalidInputError("duration_ms must be >= 0")
    now = now or utcnow()

    with tracer.start_as_current_span("record_interaction") as span:
        span.set_attribute("interaction.type", interaction_type)
        await load_accessible_post(db, viewer_id, post_id)

        if interaction_type in UNIQUE_INTERACTION_TYPES:
            if await _already_recorded(db, viewer_id, post_id, interaction_type):
                return {"type": interaction_type, "created": False}

        db.add(
            PostInteraction(
                user_id=viewer_id,
                post_id=post_id,
                type=interaction_type,
                duration_ms=duration_ms if interaction_type == "view" else None,
                created_at=now,
            )
        )
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent request stored the same (user, post, type) first
            await db.rollback()
            logger.info(
                "Concurrent duplicate %s: user=%s post=%s", interaction_type, viewer_id, post_id
            )
            return {"type": interaction_type, "created": False}
        await apply_interaction_effect(db, post_id, interaction_type, 1)

    INTERACTIONS_RECORDED_TOTAL.labels(type=interaction_type).inc()
    logger.info("Interaction %s: user=%s post=%s", interaction_type, viewer_id, post_id)
    return {"type": interaction_type, "created": True}


async def remove_interaction(
    db: AsyncSession,
    viewer_id: str,
    post_id: str,
    interaction_type: str,
) -> dict:
    """Undo a like/save/repost. The counter only moves when a row was removed."""
    viewer_id = parse_id(viewer_id, "viewer_id")
    post_id = parse_id(post_id, "post_id")
    if interaction_type not in REMOVABLE_TYPES:
        raise InvalidInputError(f"Interaction type '{interaction_type}' cannot be removed")

    await load_accessible_post(db, viewer_id, post_id)

    result = await db.execute(
        delete(PostInteraction)
        .where(
            PostInteraction.user_id == viewer_id,
            PostInteraction.post_id == post_id,
            PostInteraction.type == interaction_type,
        )
        .execution_options(synchronize_session=False)
    )
    # Only the request that actually deleted the row moves the counter
    if not result.rowcount:
        return {"type": interaction_type, "removed": False}

    await apply_interaction_effect(db, post_id, interaction_type, -1)
    logger.info("Interaction %s removed: user=%s post=%s", interaction_type, viewer_id, post_id)
    return {"type": interaction_type, "removed": True}
