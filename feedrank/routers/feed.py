"""
Feed retrieval endpoints:
  GET /feed            — ranked home feed (own + followed + explore mix)
  GET /feed/following  — followed authors only
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.database import get_db
from feedrank.schemas import FeedResponse
from feedrank.services.feed import get_following_feed, get_home_feed

router = APIRouter()


@router.get("/", response_model=FeedResponse)
async def home_feed(
    viewer_id: str = Query(..., description="ID of the requesting user"),
    page_size: int = Query(20, description="Items per page (clamped to 50)"),
    page: int = Query(1, description="1-based page number (clamped to 50)"),
    kinds: Optional[str] = Query(None, description="Comma list of post,reel"),
    db: AsyncSession = Depends(get_db),
):
    return await get_home_feed(db, viewer_id, page_size=page_size, page=page, kinds=kinds)


@router.get("/following", response_model=FeedResponse)
async def following_feed(
    viewer_id: str = Query(..., description="ID of the requesting user"),
    page_size: int = Query(20),
    page: int = Query(1),
    kinds: Optional[str] = Query(None),
    interleave: bool = Query(False, description="Mix reels 1:3 with posts"),
    db: AsyncSession = Depends(get_db),
):
    return await get_following_feed(
        db, viewer_id, page_size=page_size, page=page, kinds=kinds, interleave=interleave
    )
