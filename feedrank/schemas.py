"""
Pydantic request / response schemas for the API layer.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ──────────────────────────── Feed ────────────────────────────────────────

class AuthorSummary(BaseModel):
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class PostStats(BaseModel):
    hearts: int = 0
    comments: int = 0
    saves: int = 0
    shares: int = 0
    reposts: int = 0
    views: int = 0
    impressions: int = 0


class FeedItem(BaseModel):
    """A hydrated, ranked item returned in a feed page."""
    post_id: str
    kind: str
    author_id: str
    author: Optional[AuthorSummary] = None
    content: Optional[str] = None
    hashtags: list[str] = []
    topics: list[str] = []
    mentions: list[str] = []
    visibility: str
    primary_video_duration_ms: Optional[int] = None
    stats: PostStats
    created_at: datetime
    published_at: Optional[datetime] = None
    # Viewer-specific flags
    liked: bool = False
    saved: bool = False
    reposted: bool = False
    following: Optional[bool] = None    # omitted on explore
    viewed: bool = False
    # Ranking signals exposed for debugging
    rank_score: float
    source: str   # 'own' | 'followed' | 'explore'


class FeedResponse(BaseModel):
    viewer_id: str
    surface: str  # 'home' | 'following' | 'explore'
    page: int
    page_size: int
    has_more: bool
    items: list[FeedItem]
    # Metadata useful for understanding the pipeline
    candidates_total: int
    latency_ms: float


# ──────────────────────────── Impressions ─────────────────────────────────

class ImpressionRequest(BaseModel):
    viewer_id: str
    post_id: str
    session_id: str = Field(..., min_length=1, max_length=128)
    position: Optional[int] = Field(None, ge=0)
    source: Optional[str] = None


class ImpressionResponse(BaseModel):
    post_id: str
    accepted: bool
    duplicate: bool


# ──────────────────────────── Interactions ────────────────────────────────

class InteractionRequest(BaseModel):
    viewer_id: str
    type: str = Field(..., pattern="^(like|save|share|repost|hide|report|view)$")
    duration_ms: Optional[int] = Field(None, ge=0)


class InteractionResponse(BaseModel):
    type: str
    created: Optional[bool] = None
    removed: Optional[bool] = None
