"""
Interaction endpoints:
  POST   /posts/{id}/interactions         — like/save/share/repost/hide/report/view
  DELETE /posts/{id}/interactions/{type}  — undo like/save/repost
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.database import get_db
from feedrank.schemas import InteractionRequest, InteractionResponse
from feedrank.services.interactions import record_interaction, remove_interaction

router = APIRouter()


@router.post("/{post_id}/interactions", response_model=InteractionResponse)
async def add_interaction(
    post_id: str,
    body: InteractionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Idempotent for everything except views, which are repeatable."""
    result = await record_interaction(
        db, body.viewer_id, post_id, body.type, duration_ms=body.duration_ms
    )
    return InteractionResponse(**result)


@router.delete("/{post_id}/interactions/{interaction_type}", response_model=InteractionResponse)
async def delete_interaction(
    post_id: str,
    interaction_type: str,
    viewer_id: str = Query(..., description="ID of the requesting user"),
    db: AsyncSession = Depends(get_db),
):
    result = await remove_interaction(db, viewer_id, post_id, interaction_type)
    return InteractionResponse(**result)
