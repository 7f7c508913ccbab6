"""
Immutable value types used inside the ranking core.

Storage rows (feedrank.models) are converted into these at the store
boundary so scoring and taste building never touch the ORM.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from feedrank.models import Post, PostInteraction


class EngagementStats(BaseModel):
    hearts: int = 0
    comments: int = 0
    saves: int = 0
    shares: int = 0
    reposts: int = 0
    views: int = 0
    impressions: int = 0
    hides: int = 0
    reports: int = 0

    model_config = ConfigDict(frozen=True)


class ContentItem(BaseModel):
    post_id: str
    author_id: str
    kind: str = "post"
    visibility: str = "public"
    status: str = "published"
    content: Optional[str] = None
    primary_video_duration_ms: Optional[int] = None
    hashtags: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    stats: EngagementStats = Field(default_factory=EngagementStats)
    quality_score: float = 0.0
    spam_score: float = 0.0
    created_at: datetime
    published_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_row(cls, post: Post) -> "ContentItem":
        return cls(
            post_id=post.post_id,
            author_id=post.author_id,
            kind=post.kind,
            visibility=post.visibility,
            status=post.status,
            content=post.content,
            primary_video_duration_ms=post.primary_video_duration_ms,
            hashtags=tuple(post.hashtags or ()),
            topics=tuple(post.topics or ()),
            mentions=tuple(post.mentions or ()),
            stats=EngagementStats(
                hearts=post.hearts or 0,
                comments=post.comments or 0,
                saves=post.saves or 0,
                shares=post.shares or 0,
                reposts=post.reposts or 0,
                views=post.views or 0,
                impressions=post.impressions or 0,
                hides=post.hides or 0,
                reports=post.reports or 0,
            ),
            quality_score=post.quality_score or 0.0,
            spam_score=post.spam_score or 0.0,
            created_at=post.created_at,
            published_at=post.published_at,
            deleted_at=post.deleted_at,
        )


class InteractionRecord(BaseModel):
    user_id: str
    post_id: str
    type: str
    duration_ms: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_row(cls, row: PostInteraction) -> "InteractionRecord":
        return cls(
            user_id=row.user_id,
            post_id=row.post_id,
            type=row.type,
            duration_ms=row.duration_ms,
            created_at=row.created_at,
        )


class TasteProfile(BaseModel):
    """Per-viewer weighted affinities, always replaced wholesale on rebuild."""

    user_id: str
    hashtag_weights: dict[str, float] = Field(default_factory=dict)
    topic_weights: dict[str, float] = Field(default_factory=dict)
    author_weights: dict[str, float] = Field(default_factory=dict)
    kind_weights: dict[str, float] = Field(default_factory=dict)
    version: int = 0
    rebuilt_at: datetime


class ViewerContext(BaseModel):
    viewer_id: str
    followee_ids: frozenset[str] = frozenset()
    taste: Optional[TasteProfile] = None

    model_config = ConfigDict(frozen=True)


class ScoredItem(BaseModel):
    item: ContentItem
    score: float
    source: str = "explore"     # 'own' | 'followed' | 'explore'
    viewed: bool = False

    model_config = ConfigDict(frozen=True)
