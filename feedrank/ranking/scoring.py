"""
Hand-tuned scoring for feed and explore candidates.

  score = (engagement + 1) × freshness × quality × relationship [× interest]

  freshness    = 1 / (1 + age_hours / 12), age floored at 0.1h
  engagement   = weighted sum of the item's counters
  quality      = 1 + (quality_score − spam_score) × 0.01
  relationship = 1.3 when the viewer follows the author
  interest     = 1 + min(cap, max(0, taste_affinity / divisor))   (explore only)

Every function here is pure: same item, context and `now` give the same float.
"""
from datetime import datetime
from typing import Optional

from feedrank.config import settings
from feedrank.domain import ContentItem, ScoredItem, TasteProfile, ViewerContext

FRESHNESS_SCALE_HOURS = 12.0
MIN_AGE_HOURS = 0.1
QUALITY_TILT = 0.01
FOLLOWED_AUTHOR_BOOST = 1.3

ENGAGEMENT_WEIGHTS = {
    "hearts": 2.0,
    "comments": 3.0,
    "saves": 4.0,
    "shares": 3.0,
    "reposts": 3.0,
    "views": 0.3,
    "impressions": 0.1,
}

# Taste affinity weights and how many tags of an item are considered
AUTHOR_AFFINITY_WEIGHT = 1.2
KIND_AFFINITY_WEIGHT = 0.4
MAX_HASHTAGS_SCORED = 8
MAX_TOPICS_SCORED = 6


def freshness(age_hours: float) -> float:
    return 1.0 / (1.0 + max(0.0, age_hours) / FRESHNESS_SCALE_HOURS)


def age_hours(item: ContentItem, now: datetime) -> float:
    published = item.published_at or item.created_at
    if published is None:
        return MIN_AGE_HOURS
    return max(MIN_AGE_HOURS, (now - published).total_seconds() / 3600.0)


def engagement(item: ContentItem) -> float:
    stats = item.stats
    return sum(
        (getattr(stats, name, 0) or 0) * weight
        for name, weight in ENGAGEMENT_WEIGHTS.items()
    )


def quality_adjustment(item: ContentItem) -> float:
    return 1.0 + ((item.quality_score or 0.0) - (item.spam_score or 0.0)) * QUALITY_TILT


def relationship_boost(item: ContentItem, context: ViewerContext) -> float:
    return FOLLOWED_AUTHOR_BOOST if item.author_id in context.followee_ids else 1.0


def interest_affinity(item: ContentItem, taste: Optional[TasteProfile]) -> float:
    """Raw taste affinity of the viewer for this item (0 with no profile)."""
    if taste is None:
        return 0.0
    total = taste.author_weights.get(item.author_id, 0.0) * AUTHOR_AFFINITY_WEIGHT
    total += taste.kind_weights.get(item.kind, 0.0) * KIND_AFFINITY_WEIGHT
    for tag in item.hashtags[:MAX_HASHTAGS_SCORED]:
        total += taste.hashtag_weights.get(tag, 0.0)
    for topic in item.topics[:MAX_TOPICS_SCORED]:
        total += taste.topic_weights.get(topic, 0.0)
    return total


def interest_boost(
    affinity: float,
    divisor: Optional[float] = None,
    cap: Optional[float] = None,
) -> float:
    divisor = divisor if divisor is not None else settings.interest_divisor
    cap = cap if cap is not None else settings.interest_boost_cap
    if divisor <= 0:
        return 1.0
    return 1.0 + min(cap, max(0.0, affinity / divisor))


def base_score(item: ContentItem, context: ViewerContext, now: datetime) -> float:
    return (
        (engagement(item) + 1.0)
        * freshness(age_hours(item, now))
        * quality_adjustment(item)
        * relationship_boost(item, context)
    )


def score_item(
    item: ContentItem,
    context: ViewerContext,
    now: datetime,
    with_interest: bool = False,
) -> float:
    score = base_score(item, context, now)
    if with_interest:
        score *= interest_boost(interest_affinity(item, context.taste))
    return score


def rank_key(scored: ScoredItem) -> tuple:
    """Sort key (use with reverse=True): score, then newer, then id descending."""
    return (scored.score, scored.item.created_at, scored.item.post_id)


def sort_scored(items: list[ScoredItem]) -> list[ScoredItem]:
    return sorted(items, key=rank_key, reverse=True)
