"""
Redis client wrapper.

Responsibilities:
  • Taste profiles — STRING (JSON) keyed by taste:{user_id}
                     written wholesale on every rebuild (last write wins)

Freshness is decided by the profile's own `rebuilt_at`, not by the key TTL;
the TTL only bounds memory for viewers who stopped visiting Explore.
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from feedrank.config import settings
from feedrank.domain import TasteProfile

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialised; call init_redis() at startup")
    return _redis


# ─────────────────────── Taste Profile ────────────────────────────────────

def taste_key(user_id: str) -> str:
    return f"taste:{user_id}"


async def get_taste_profile(r: aioredis.Redis, user_id: str) -> Optional[TasteProfile]:
    raw = await r.get(taste_key(user_id))
    if not raw:
        return None
    return TasteProfile.model_validate_json(raw)


async def set_taste_profile(r: aioredis.Redis, profile: TasteProfile) -> None:
    await r.set(
        taste_key(profile.user_id),
        profile.model_dump_json(),
        ex=settings.taste_profile_retention_seconds,
    )
