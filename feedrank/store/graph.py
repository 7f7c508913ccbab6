"""
Social graph queries: followees and block relations.

Blocks are honoured in both directions, so feed assembly needs the union
of "viewer blocked X" and "X blocked viewer".
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.models import Block, Follow


async def get_followee_ids(db: AsyncSession, user_id: str) -> set[str]:
    rows = await db.execute(select(Follow.followee_id).where(Follow.follower_id == user_id))
    return {r[0] for r in rows.all()}


async def get_block_lists(db: AsyncSession, user_id: str) -> tuple[set[str], set[str]]:
    """Return (ids the user blocked, ids that blocked the user)."""
    blocked = await db.execute(select(Block.blocked_id).where(Block.blocker_id == user_id))
    blocked_by = await db.execute(select(Block.blocker_id).where(Block.blocked_id == user_id))
    return {r[0] for r in blocked.all()}, {r[0] for r in blocked_by.all()}


async def get_excluded_author_ids(db: AsyncSession, user_id: str) -> set[str]:
    blocked, blocked_by = await get_block_lists(db, user_id)
    return blocked | blocked_by


async def is_blocked_either_way(db: AsyncSession, user_id: str, other_id: str) -> bool:
    if user_id == other_id:
        return False
    row = await db.execute(
        select(Block.blocker_id).where(
            ((Block.blocker_id == user_id) & (Block.blocked_id == other_id))
            | ((Block.blocker_id == other_id) & (Block.blocked_id == user_id))
        ).limit(1)
    )
    return row.first() is not None
