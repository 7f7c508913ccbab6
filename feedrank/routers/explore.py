"""
Explore endpoints:
  GET  /explore             — taste-boosted discovery feed
  POST /explore/impression  — record that an item was shown (idempotent)
"""
import asyncio
import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.clients.kafka_producer import publish_impression
from feedrank.clients.redis_client import get_redis
from feedrank.database import get_db
from feedrank.schemas import FeedResponse, ImpressionRequest, ImpressionResponse
from feedrank.services.feed import get_explore_feed
from feedrank.services.impressions import record_impression

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=FeedResponse)
async def explore_feed(
    viewer_id: str = Query(..., description="ID of the requesting user"),
    page_size: int = Query(30),
    page: int = Query(1),
    kinds: Optional[str] = Query(None, description="Comma list of post,reel"),
    db: AsyncSession = Depends(get_db),
    r: aioredis.Redis = Depends(get_redis),
):
    return await get_explore_feed(db, r, viewer_id, page_size=page_size, page=page, kinds=kinds)


@router.post("/impression", response_model=ImpressionResponse)
async def impression(body: ImpressionRequest, db: AsyncSession = Depends(get_db)):
    result = await record_impression(
        db,
        body.viewer_id,
        body.post_id,
        body.session_id,
        position=body.position,
        source=body.source,
    )
    if result.accepted:
        # Fire-and-forget; the impression row is the source of truth
        asyncio.create_task(
            publish_impression(
                result.viewer_id,
                result.post_id,
                result.session_id,
                result.position,
                result.source,
                int(time.time() * 1000),
            )
        )
    return ImpressionResponse(
        post_id=result.post_id, accepted=result.accepted, duplicate=result.duplicate
    )
