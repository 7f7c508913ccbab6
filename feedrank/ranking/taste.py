"""
Taste profile builder.

A viewer's taste is rebuilt from scratch out of their recent interactions:

  weight = base(type) × e^(−age_days / 14)

  base: save=5, repost=4, like=3, share=3,
        view=min(2.5, 2 × watched_ms / reference_ms)

Each weight is credited to the item's author, its kind, its first 8
hashtags and its first 6 topics. Every map is then cut to its top-N.

The builder is pure: the caller supplies the interaction snapshot and `now`,
so the same inputs always produce the same weight maps.
"""
import math
from collections import defaultdict
from datetime import datetime
from typing import Optional

from feedrank.config import settings
from feedrank.domain import ContentItem, InteractionRecord, TasteProfile

TASTE_INTERACTION_TYPES = ("like", "save", "repost", "share", "view")

ACTION_BASE_WEIGHTS = {
    "save": 5.0,
    "repost": 4.0,
    "like": 3.0,
    "share": 3.0,
}
MAX_VIEW_BASE = 2.5
VIEW_COMPLETION_MULTIPLIER = 2.0
MAX_HASHTAGS_PER_ITEM = 8
MAX_TOPICS_PER_ITEM = 6


def view_base(duration_ms: Optional[int], item: ContentItem, default_reference_ms: int) -> float:
    reference_ms = item.primary_video_duration_ms
    if not reference_ms or reference_ms <= 0:
        reference_ms = default_reference_ms
    completion = (duration_ms or 0) / reference_ms
    return min(MAX_VIEW_BASE, max(0.0, VIEW_COMPLETION_MULTIPLIER * completion))


def interaction_base(
    record: InteractionRecord,
    item: ContentItem,
    default_reference_ms: Optional[int] = None,
) -> float:
    if record.type == "view":
        return view_base(
            record.duration_ms,
            item,
            default_reference_ms or settings.taste_default_reference_ms,
        )
    return ACTION_BASE_WEIGHTS.get(record.type, 0.0)


def decay(age_days: float, decay_days: Optional[float] = None) -> float:
    decay_days = decay_days or settings.taste_decay_days
    return math.exp(-max(0.0, age_days) / decay_days)


def top_n(weights: dict[str, float], limit: int) -> dict[str, float]:
    """Keep the `limit` heaviest entries; ties broken by key for stable output."""
    ranked = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))
    return dict(ranked[:limit])


def build_taste_weights(
    history: list[tuple[InteractionRecord, Optional[ContentItem]]],
    now: datetime,
) -> dict[str, dict[str, float]]:
    """
    Fold an interaction snapshot into the four affinity maps.

    `history` pairs every interaction with its resolved item, or None when the
    item is gone; those are skipped.
    """
    authors: dict[str, float] = defaultdict(float)
    kinds: dict[str, float] = defaultdict(float)
    hashtags: dict[str, float] = defaultdict(float)
    topics: dict[str, float] = defaultdict(float)

    for record, item in history:
        if item is None or item.deleted_at is not None:
            continue
        if record.type not in TASTE_INTERACTION_TYPES:
            continue

        age_days = (now - record.created_at).total_seconds() / 86400.0
        weight = interaction_base(record, item) * decay(age_days)
        if weight <= 0:
            continue

        authors[item.author_id] += weight
        kinds[item.kind] += weight
        for tag in item.hashtags[:MAX_HASHTAGS_PER_ITEM]:
            hashtags[tag] += weight
        for topic in item.topics[:MAX_TOPICS_PER_ITEM]:
            topics[topic] += weight

    return {
        "hashtag_weights": top_n(hashtags, settings.taste_max_hashtags),
        "topic_weights": top_n(topics, settings.taste_max_topics),
        "author_weights": top_n(authors, settings.taste_max_authors),
        "kind_weights": top_n(kinds, settings.taste_max_kinds),
    }


def build_taste_profile(
    user_id: str,
    history: list[tuple[InteractionRecord, Optional[ContentItem]]],
    now: datetime,
    previous: Optional[TasteProfile] = None,
) -> TasteProfile:
    version = (previous.version if previous else 0) + 1
    return TasteProfile(
        user_id=user_id,
        version=version,
        rebuilt_at=now,
        **build_taste_weights(history, now),
    )


def is_stale(profile: TasteProfile, now: datetime, ttl_hours: Optional[float] = None) -> bool:
    ttl_hours = settings.taste_ttl_hours if ttl_hours is None else ttl_hours
    return (now - profile.rebuilt_at).total_seconds() >= ttl_hours * 3600.0
