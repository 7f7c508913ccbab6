"""Tests for the feed scorer."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from feedrank.domain import ContentItem, EngagementStats, ScoredItem, TasteProfile, ViewerContext
from feedrank.ranking.scoring import (
    age_hours,
    base_score,
    engagement,
    freshness,
    interest_affinity,
    interest_boost,
    quality_adjustment,
    rank_key,
    score_item,
    sort_scored,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def make_item(post_id="p1", author_id="a1", hours_old=1.0, **fields) -> ContentItem:
    published = NOW - timedelta(hours=hours_old)
    fields.setdefault("created_at", published)
    fields.setdefault("published_at", published)
    return ContentItem(post_id=post_id, author_id=author_id, **fields)


class TestFreshness:

    def test_zero_age_is_one(self):
        assert freshness(0) == 1.0

    def test_twelve_hours_halves(self):
        assert freshness(12) == pytest.approx(0.5)

    def test_strictly_decreasing(self):
        ages = [0, 0.1, 0.5, 1, 6, 12, 24, 72, 500]
        values = [freshness(a) for a in ages]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_age_is_floored_for_just_published_items(self):
        item = make_item(hours_old=0)
        assert age_hours(item, NOW) == pytest.approx(0.1)

    def test_age_falls_back_to_created_at(self):
        item = make_item(published_at=None, created_at=NOW - timedelta(hours=5))
        assert age_hours(item, NOW) == pytest.approx(5.0)


class TestEngagement:

    def test_weighted_sum(self):
        stats = EngagementStats(
            hearts=1, comments=1, saves=1, shares=1, reposts=1, views=10, impressions=10
        )
        # 2 + 3 + 4 + 3 + 3 + 3 + 1
        assert engagement(make_item(stats=stats)) == pytest.approx(19.0)

    def test_hides_and_reports_do_not_count(self):
        stats = EngagementStats(hides=50, reports=50)
        assert engagement(make_item(stats=stats)) == 0.0

    def test_missing_stats_are_zero(self):
        assert engagement(make_item()) == 0.0


class TestAdjustments:

    def test_quality_tilt(self):
        assert quality_adjustment(make_item(quality_score=10, spam_score=0)) == pytest.approx(1.1)
        assert quality_adjustment(make_item(quality_score=0, spam_score=10)) == pytest.approx(0.9)

    def test_followed_author_boost(self):
        item = make_item(author_id="friend")
        followed = ViewerContext(viewer_id="v", followee_ids=frozenset({"friend"}))
        stranger = ViewerContext(viewer_id="v")
        assert base_score(item, followed, NOW) == pytest.approx(1.3 * base_score(item, stranger, NOW))

    def test_base_score_formula(self):
        item = make_item(hours_old=12, stats=EngagementStats(hearts=2))
        ctx = ViewerContext(viewer_id="v")
        # (4 + 1) * 0.5 * 1 * 1
        assert base_score(item, ctx, NOW) == pytest.approx(2.5)


class TestInterestBoost:

    def make_taste(self, **weights) -> TasteProfile:
        return TasteProfile(user_id="v", rebuilt_at=NOW, **weights)

    def test_no_profile_means_no_boost(self):
        item = make_item()
        assert interest_affinity(item, None) == 0.0
        ctx = ViewerContext(viewer_id="v")
        assert score_item(item, ctx, NOW, with_interest=True) == score_item(item, ctx, NOW)

    def test_affinity_combines_all_maps(self):
        taste = self.make_taste(
            author_weights={"a1": 10.0},
            kind_weights={"reel": 5.0},
            hashtag_weights={"cats": 1.0, "dogs": 2.0},
            topic_weights={"pets": 3.0},
        )
        item = make_item(kind="reel", hashtags=("cats", "dogs", "birds"), topics=("pets",))
        # 10*1.2 + 5*0.4 + 1 + 2 + 3
        assert interest_affinity(item, taste) == pytest.approx(20.0)

    def test_only_first_eight_hashtags_and_six_topics_count(self):
        tags = tuple(f"t{i}" for i in range(10))
        topics = tuple(f"c{i}" for i in range(8))
        taste = self.make_taste(
            hashtag_weights={t: 1.0 for t in tags},
            topic_weights={t: 1.0 for t in topics},
        )
        item = make_item(hashtags=tags, topics=topics)
        assert interest_affinity(item, taste) == pytest.approx(8 + 6)

    def test_boost_is_bounded(self):
        assert interest_boost(0) == 1.0
        assert interest_boost(-5) == 1.0
        assert interest_boost(4) == pytest.approx(1.2)
        assert interest_boost(1000) == pytest.approx(1.6)

    def test_divisor_and_cap_are_tunable(self):
        assert interest_boost(10, divisor=10, cap=2.0) == pytest.approx(2.0)
        assert interest_boost(10, divisor=10, cap=0.5) == pytest.approx(1.5)


class TestOrdering:

    def scored(self, post_id, score, hours_old=1.0):
        return ScoredItem(item=make_item(post_id=post_id, hours_old=hours_old), score=score)

    def test_higher_score_first(self):
        ranked = sort_scored([self.scored("a", 1.0), self.scored("b", 3.0), self.scored("c", 2.0)])
        assert [s.item.post_id for s in ranked] == ["b", "c", "a"]

    def test_tie_broken_by_newer_created_at(self):
        older = self.scored("a", 1.0, hours_old=5)
        newer = self.scored("b", 1.0, hours_old=1)
        assert sort_scored([older, newer])[0].item.post_id == "b"

    def test_tie_broken_by_id_descending(self):
        ranked = sort_scored([self.scored("a", 1.0), self.scored("c", 1.0), self.scored("b", 1.0)])
        assert [s.item.post_id for s in ranked] == ["c", "b", "a"]

    def test_sort_is_idempotent(self):
        ctx = ViewerContext(viewer_id="v", followee_ids=frozenset({"a2"}))
        items = [
            make_item(post_id=f"p{i}", author_id=f"a{i % 3}", hours_old=i % 4 + 1,
                      stats=EngagementStats(hearts=i % 5))
            for i in range(20)
        ]
        first = sort_scored([ScoredItem(item=i, score=score_item(i, ctx, NOW)) for i in items])
        second = sort_scored([ScoredItem(item=i, score=score_item(i, ctx, NOW)) for i in reversed(items)])
        assert [rank_key(s) for s in first] == [rank_key(s) for s in second]


class TestValueTypes:

    def test_items_are_immutable(self):
        item = make_item()
        with pytest.raises(ValidationError):
            item.kind = "reel"
        with pytest.raises(ValidationError):
            item.stats.hearts = 5

    def test_frozen_types_use_config_dict(self):
        for model in (ContentItem, EngagementStats, ScoredItem, ViewerContext):
            assert model.model_config.get("frozen") is True
