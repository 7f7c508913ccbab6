"""
Impression recording, idempotent per (viewer, item, session).

The first submission of a triple writes an impression_events row and bumps
the item's impression counter; repeats report `duplicate` and change nothing.
"""
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.errors import InvalidInputError
from feedrank.models import ImpressionEvent
from feedrank.services.interactions import apply_interaction_effect, load_accessible_post
from feedrank.telemetry import IMPRESSIONS_RECORDED_TOTAL
from feedrank.utils import parse_id, utcnow

logger = logging.getLogger(__name__)

MAX_SESSION_ID_LENGTH = 128
MAX_SOURCE_LENGTH = 32


class ImpressionResult(BaseModel):
    """Outcome plus the normalised values the impression row holds."""
    viewer_id: str
    post_id: str
    session_id: str
    position: Optional[int] = None
    source: str
    accepted: bool
    duplicate: bool


async def _exists(db: AsyncSession, viewer_id: str, post_id: str, session_id: str) -> bool:
    row = await db.execute(
        select(ImpressionEvent.impression_id).where(
            ImpressionEvent.user_id == viewer_id,
            ImpressionEvent.post_id == post_id,
            ImpressionEvent.session_id == session_id,
        )
    )
    return row.first() is not None


async def record_impression(
    db: AsyncSession,
    viewer_id: str,
    post_id: str,
    session_id: str,
    position: Optional[int] = None,
    source: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ImpressionResult:
    viewer_id = parse_id(viewer_id, "viewer_id")
    post_id = parse_id(post_id, "post_id")
    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidInputError("Missing session_id")
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise InvalidInputError("session_id is too long")
    if position is not None and position < 0:
        raise InvalidInputError("position must be >= 0")
    source = ((source or "").strip() or "explore")[:MAX_SOURCE_LENGTH]
    now = now or utcnow()
    fields = dict(
        viewer_id=viewer_id,
        post_id=post_id,
        session_id=session_id,
        position=position,
        source=source,
    )

    await load_accessible_post(db, viewer_id, post_id)

    if await _exists(db, viewer_id, post_id, session_id):
        IMPRESSIONS_RECORDED_TOTAL.labels(result="duplicate").inc()
        return ImpressionResult(**fields, accepted=False, duplicate=True)

    db.add(
        ImpressionEvent(
            user_id=viewer_id,
            post_id=post_id,
            session_id=session_id,
            position=position,
            source=source,
            created_at=now,
        )
    )
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race against the same triple; nothing else was written yet
        await db.rollback()
        logger.info(
            "Concurrent duplicate impression: user=%s post=%s session=%s",
            viewer_id, post_id, session_id,
        )
        IMPRESSIONS_RECORDED_TOTAL.labels(result="duplicate").inc()
        return ImpressionResult(**fields, accepted=False, duplicate=True)

    await apply_interaction_effect(db, post_id, "impression", 1)
    IMPRESSIONS_RECORDED_TOTAL.labels(result="accepted").inc()
    return ImpressionResult(**fields, accepted=True, duplicate=False)
