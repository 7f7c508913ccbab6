"""Tests for interleaving, diversity capping, merging and paging helpers."""

from datetime import datetime

import pytest

from feedrank.domain import ContentItem, ScoredItem
from feedrank.errors import InvalidInputError
from feedrank.ranking.diversity import cap_per_author
from feedrank.ranking.interleave import InterleavePolicy
from feedrank.ranking.paging import (
    merge_candidates,
    page_window,
    parse_kinds,
    partition_viewed,
    resolve_page,
    slice_page,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def item(post_id, author_id="a1", kind="post") -> ContentItem:
    return ContentItem(post_id=post_id, author_id=author_id, kind=kind, created_at=NOW)


class TestInterleavePolicy:

    def test_three_posts_then_a_reel(self):
        posts = [f"p{i}" for i in range(7)]
        reels = ["r0", "r1"]
        merged = InterleavePolicy().merge(posts, reels, page_size=10)
        assert merged == ["p0", "p1", "p2", "r0", "p3", "p4", "p5", "r1", "p6"]

    def test_quota_limits_interleaved_reels(self):
        posts = [f"p{i}" for i in range(9)]
        reels = ["r0", "r1", "r2"]
        # quota = max(1, floor(5 * 0.3)) = 1
        merged = InterleavePolicy().merge(posts, reels, page_size=5)
        assert merged[:4] == ["p0", "p1", "p2", "r0"]
        assert merged[4:12] == [f"p{i}" for i in range(3, 9)] + ["r1", "r2"]

    def test_minimum_quota_is_one(self):
        assert InterleavePolicy().quota(1) == 1
        assert InterleavePolicy().quota(10) == 3

    def test_only_reels(self):
        assert InterleavePolicy().merge([], ["r0", "r1"], page_size=10) == ["r0", "r1"]

    def test_only_posts(self):
        assert InterleavePolicy().merge(["p0", "p1"], [], page_size=10) == ["p0", "p1"]

    def test_nothing_dropped(self):
        posts = [f"p{i}" for i in range(20)]
        reels = [f"r{i}" for i in range(15)]
        merged = InterleavePolicy().merge(posts, reels, page_size=10)
        assert sorted(merged) == sorted(posts + reels)

    def test_apply_splits_by_predicate(self):
        items = ["r0", "p0", "p1", "p2", "p3"]
        merged = InterleavePolicy().apply(items, 10, lambda x: x.startswith("r"))
        assert merged == ["p0", "p1", "p2", "r0", "p3"]

    def test_rejects_bad_run_length(self):
        with pytest.raises(ValueError):
            InterleavePolicy(run_length=0)


class TestDiversityCap:

    def test_at_most_two_per_author(self):
        items = [item(f"p{i}", author_id="prolific") for i in range(10)] + [item("x", "other")]
        capped = cap_per_author(items, author_of=lambda i: i.author_id)
        assert [i.post_id for i in capped] == ["p0", "p1", "x"]

    def test_stops_at_limit(self):
        items = [item(f"p{i}", author_id=f"a{i}") for i in range(10)]
        assert len(cap_per_author(items, author_of=lambda i: i.author_id, limit=4)) == 4

    def test_cap_holds_for_every_author(self):
        items = [item(f"p{i}", author_id=f"a{i % 3}") for i in range(30)]
        capped = cap_per_author(items, author_of=lambda i: i.author_id)
        counts = {}
        for i in capped:
            counts[i.author_id] = counts.get(i.author_id, 0) + 1
        assert max(counts.values()) <= 2
        assert len(capped) == 6


class TestMerge:

    def test_duplicate_ids_kept_once_first_source_wins(self):
        shared = item("same")
        merged = merge_candidates(
            ("own", [shared, item("a")]), ("followed", [item("same"), item("b")])
        )
        assert [(src, i.post_id) for src, i in merged] == [("own", "same"), ("own", "a"), ("followed", "b")]

    def test_excluded_ids_dropped(self):
        merged = merge_candidates(("explore", [item("a"), item("b")]), exclude={"a"})
        assert [i.post_id for _, i in merged] == ["b"]

    def test_partition_viewed_keeps_relative_order(self):
        ranked = [
            ScoredItem(item=item("a"), score=3, viewed=True),
            ScoredItem(item=item("b"), score=2),
            ScoredItem(item=item("c"), score=1, viewed=True),
            ScoredItem(item=item("d"), score=0),
        ]
        assert [s.item.post_id for s in partition_viewed(ranked)] == ["b", "d", "a", "c"]


class TestPaging:

    def test_window(self):
        assert page_window(1, 10) == (0, 10)
        assert page_window(3, 10) == (20, 30)

    def test_clamps_upper_bounds(self):
        assert resolve_page(99, 500) == (50, 50)

    def test_accepts_numeric_strings(self):
        assert resolve_page("2", "10") == (2, 10)

    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (-1, 5), ("x", 5), (1, 2.5)])
    def test_rejects_invalid_values(self, page, page_size):
        with pytest.raises(InvalidInputError):
            resolve_page(page, page_size)

    def test_pages_concatenate_to_full_sequence(self):
        sequence = list(range(47))
        pages = [slice_page(sequence, p, 10) for p in range(1, 6)]
        flat = [x for page in pages for x in page]
        assert flat == sequence
        assert len(set(flat)) == len(flat)

    def test_parse_kinds(self):
        assert parse_kinds(None) == ("post", "reel")
        assert parse_kinds("reel") == ("reel",)
        assert parse_kinds("reel, post") == ("post", "reel")
        assert parse_kinds(["post", "story"]) == ("post",)
        assert parse_kinds("story") == ("post", "reel")
