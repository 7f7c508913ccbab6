"""
Small shared helpers: UTC clock, identifier validation, tag normalisation.

All timestamps are naive UTC, matching how the DateTime columns are stored.
"""
import uuid
from datetime import datetime, timezone
from typing import Iterable

from feedrank.errors import InvalidInputError

MAX_HASHTAGS = 30
MAX_MENTIONS = 30
MAX_TOPICS = 20


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def parse_id(value, field: str) -> str:
    """Return the canonical string form of a UUID id or raise InvalidInputError."""
    if value is None or not str(value).strip():
        raise InvalidInputError(f"Missing {field}")
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError:
        raise InvalidInputError(f"Invalid {field}") from None


def _normalise(values: Iterable[str] | None, strip_prefix: str, cap: int) -> list[str]:
    seen: dict[str, None] = {}
    for raw in values or []:
        if raw is None:
            continue
        tag = str(raw).strip()
        if strip_prefix and tag.startswith(strip_prefix):
            tag = tag[1:]
        tag = tag.lower()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)[:cap]


def normalize_hashtags(tags: Iterable[str] | None) -> list[str]:
    return _normalise(tags, "#", MAX_HASHTAGS)


def normalize_mentions(handles: Iterable[str] | None) -> list[str]:
    return _normalise(handles, "@", MAX_MENTIONS)


def normalize_topics(topics: Iterable[str] | None) -> list[str]:
    return _normalise(topics, "", MAX_TOPICS)
