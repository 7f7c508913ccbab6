"""Shared fixtures: in-memory database, fake Redis and row factories."""

import os
from datetime import timedelta

import fakeredis.aioredis
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("FEEDRANK_OTEL_EXPORTER_OTLP_ENDPOINT", "")
os.environ.setdefault("FEEDRANK_DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")

from feedrank.database import Base  # noqa: E402
from feedrank.models import Block, Follow, ImpressionEvent, Post, PostInteraction, User  # noqa: E402
from feedrank.utils import utcnow  # noqa: E402

# HTTP tests rank at the wall clock; seeded rows must fall inside the
# freshness windows
NOW = utcnow().replace(microsecond=0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
async def engine():
    """Create a temporary in-memory database for testing."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis():
    r = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield r
    await r.aclose()


class Factory:
    """Small helpers to seed rows relative to NOW."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._n = 0

    async def user(self, username: str | None = None) -> User:
        self._n += 1
        name = username or f"user{self._n}"
        user = User(username=name, display_name=name.title(), avatar_url=f"https://cdn/{name}.png")
        self.db.add(user)
        await self.db.flush()
        return user

    async def post(
        self,
        author: User,
        kind: str = "post",
        visibility: str = "public",
        age_hours: float = 1.0,
        status: str = "published",
        **fields,
    ) -> Post:
        published = NOW - timedelta(hours=age_hours)
        post = Post(
            author_id=author.user_id,
            kind=kind,
            visibility=visibility,
            status=status,
            created_at=published,
            published_at=published if status == "published" else None,
            **fields,
        )
        self.db.add(post)
        await self.db.flush()
        return post

    async def follow(self, follower: User, followee: User) -> None:
        self.db.add(Follow(follower_id=follower.user_id, followee_id=followee.user_id))
        await self.db.flush()

    async def block(self, blocker: User, blocked: User) -> None:
        self.db.add(Block(blocker_id=blocker.user_id, blocked_id=blocked.user_id))
        await self.db.flush()

    async def interaction(
        self,
        user: User,
        post: Post,
        type: str,
        age_days: float = 0.0,
        duration_ms: int | None = None,
    ) -> PostInteraction:
        row = PostInteraction(
            user_id=user.user_id,
            post_id=post.post_id,
            type=type,
            duration_ms=duration_ms,
            created_at=NOW - timedelta(days=age_days),
        )
        self.db.add(row)
        await self.db.flush()
        return row

    async def impression(self, user: User, post: Post, session_id: str = "s1") -> None:
        self.db.add(
            ImpressionEvent(
                user_id=user.user_id, post_id=post.post_id, session_id=session_id, created_at=NOW
            )
        )
        await self.db.flush()


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def make_factory():
    """Factory class, for tests that manage their own sessions."""
    return Factory
