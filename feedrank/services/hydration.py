"""
Hydrate a ranked page with author display data and the viewer's own flags.

Two batch lookups per page (authors, interactions), never one per item.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from feedrank.domain import ScoredItem
from feedrank.schemas import AuthorSummary, FeedItem, PostStats
from feedrank.store.ledger import get_interaction_flags
from feedrank.store.profiles import get_author_profiles


async def hydrate_page(
    db: AsyncSession,
    viewer_id: str,
    page: list[ScoredItem],
    followee_ids: Optional[set[str]] = None,
) -> list[FeedItem]:
    """
    Build FeedItems for `page`. When `followee_ids` is None the `following`
    flag is left unset (explore only shows non-followed authors).
    """
    if not page:
        return []

    profiles = await get_author_profiles(db, (s.item.author_id for s in page))
    flags = await get_interaction_flags(db, viewer_id, (s.item.post_id for s in page))

    hydrated: list[FeedItem] = []
    for scored in page:
        item = scored.item
        profile = profiles.get(item.author_id)
        item_flags = flags.get(item.post_id, set())
        hydrated.append(
            FeedItem(
                post_id=item.post_id,
                kind=item.kind,
                author_id=item.author_id,
                author=AuthorSummary(
                    user_id=profile.user_id,
                    username=profile.username,
                    display_name=profile.display_name,
                    avatar_url=profile.avatar_url,
                ) if profile else None,
                content=item.content,
                hashtags=list(item.hashtags),
                topics=list(item.topics),
                mentions=list(item.mentions),
                visibility=item.visibility,
                primary_video_duration_ms=item.primary_video_duration_ms,
                stats=PostStats(**item.stats.model_dump(
                    include={"hearts", "comments", "saves", "shares", "reposts", "views", "impressions"}
                )),
                created_at=item.created_at,
                published_at=item.published_at,
                liked="like" in item_flags,
                saved="save" in item_flags,
                reposted="repost" in item_flags,
                following=(item.author_id in followee_ids) if followee_ids is not None else None,
                viewed=scored.viewed,
                rank_score=round(scored.score, 6),
                source=scored.source,
            )
        )
    return hydrated
