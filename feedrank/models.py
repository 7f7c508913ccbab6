"""
SQLAlchemy ORM models for TiDB.

Tables:
  users             — author display metadata (hydration only)
  follows           — social graph edges (follower → followee)
  blocks            — block relations (blocker → blocked)
  posts             — content items: posts and reels, with engagement counters
  post_interactions — append-only interaction ledger (like/save/…/view)
  impression_events — one row per (user, post, session) impression

Counters on `posts` are written only by services/interactions.py.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from feedrank.database import Base
from feedrank.utils import (
    new_id,
    normalize_hashtags,
    normalize_mentions,
    normalize_topics,
)

POST_KINDS = ("post", "reel")
VISIBILITIES = ("public", "followers", "private")
POST_STATUSES = ("published", "scheduled")
INTERACTION_TYPES = ("like", "save", "share", "repost", "hide", "report", "view")
# Every type except `view` is at most one row per (user, post, type)
UNIQUE_INTERACTION_TYPES = ("like", "save", "share", "repost", "hide", "report")


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_followee", "followee_id"),)


class Block(Base):
    __tablename__ = "blocks"

    blocker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    blocked_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_blocked", "blocked_id"),)


class Post(Base):
    __tablename__ = "posts"

    post_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(10), default="post", nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), default="public", nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="published", nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text)
    # Reels only; used as the reference length for view completion
    primary_video_duration_ms: Mapped[Optional[int]] = mapped_column(Integer)

    hashtags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    topics: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    mentions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # ── Engagement counters ────────────────────────────────────────────────
    hearts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    saves: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reposts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    impressions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hides: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reports: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Computed by moderation, consumed as-is
    quality_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    spam_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_posts_author_created", "author_id", "created_at"),
        Index("idx_posts_kind_created", "kind", "created_at"),
        Index("idx_posts_visibility_published", "visibility", "published_at"),
    )

    @validates("hashtags")
    def _normalize_hashtags(self, key, value):
        return normalize_hashtags(value)

    @validates("mentions")
    def _normalize_mentions(self, key, value):
        return normalize_mentions(value)

    @validates("topics")
    def _normalize_topics(self, key, value):
        return normalize_topics(value)


class PostInteraction(Base):
    __tablename__ = "post_interactions"

    interaction_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)
    # Equals `type` for one-per-user types, NULL for views; NULLs never collide
    dedup_key: Mapped[Optional[str]] = mapped_column(String(16))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_interactions_user_created", "user_id", "created_at"),
        UniqueConstraint(
            "user_id", "post_id", "dedup_key", name="uq_interaction_once_per_user"
        ),
        Index("idx_interactions_user_post_type", "user_id", "post_id", "type"),
        Index("idx_interactions_post", "post_id"),
    )

    @validates("type")
    def _set_dedup_key(self, key, value):
        self.dedup_key = value if value in UNIQUE_INTERACTION_TYPES else None
        return value


class ImpressionEvent(Base):
    __tablename__ = "impression_events"

    impression_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id"), nullable=False
    )
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    position: Mapped[Optional[int]] = mapped_column(Integer)
    source: Mapped[str] = mapped_column(String(32), default="explore", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", "session_id", name="uq_impression_session"),
        Index("idx_impressions_user_created", "user_id", "created_at"),
    )
