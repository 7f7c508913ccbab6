"""Author display metadata, fetched in one batch per page."""
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.models import User


async def get_author_profiles(db: AsyncSession, author_ids: Iterable[str]) -> dict[str, User]:
    ids = list(set(author_ids))
    if not ids:
        return {}
    rows = await db.execute(select(User).where(User.user_id.in_(ids)))
    return {u.user_id: u for u in rows.scalars().all()}
