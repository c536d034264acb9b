"""
Layout component unit tests.

Full recompute with bulk write, per-row fallback and distribution report.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from src.components.layout import ReassignLayoutsInput, reassign_all_layouts, run_reassign_all
from src.domain.entities import Identity, Post
from src.domain.layout import assign_layout
from src.domain.policy import PolicyEngine
from src.rules.loader import load_rules
from tests.fakes import InMemoryPostRepo, MockClock

RULES = load_rules(Path(__file__).resolve().parents[4] / "rules.yaml")


@pytest.fixture
def posts() -> InMemoryPostRepo:
    repo = InMemoryPostRepo()
    now = MockClock().now_utc()
    for i in range(8):
        repo.add(
            Post(
                title=f"Post {i}",
                author_id="author-1",
                created_at=now - timedelta(hours=i),
                # Stale layouts a recompute must overwrite
                layout_variant="hover",
                grid_class="stale",
            )
        )
    return repo


def _assert_matches_plan(posts: InMemoryPostRepo, skip: set[int] = frozenset()) -> None:
    ordered = list(posts.posts.values())
    ordered.sort(key=lambda p: (p.created_at, p.id), reverse=True)
    for index, post in enumerate(ordered):
        if post.id in skip:
            continue
        expected = assign_layout(index, len(ordered))
        assert (post.layout_variant, post.grid_class) == (expected.variant, expected.grid_class)


class TestReassignAllLayouts:
    async def test_bulk_write(self, posts):
        result = await reassign_all_layouts(posts)

        assert result.success
        assert result.bulk is True
        assert result.total == result.updated == 8
        assert posts.bulk_calls == 1
        _assert_matches_plan(posts)

    async def test_distribution_reported(self, posts):
        result = await reassign_all_layouts(posts)

        assert result.distribution is not None
        assert result.distribution.total == 8
        assert sum(result.distribution.counts.values()) == 8
        # Index 1 and 7 are both wide anchors
        assert result.distribution.counts["split-horizontal"] == 2

    async def test_per_row_fallback(self, posts):
        posts.bulk_supported = False

        result = await reassign_all_layouts(posts)

        assert result.bulk is False
        assert result.updated == 8
        assert result.failures == []
        _assert_matches_plan(posts)

    async def test_partial_failure_keeps_successful_rows(self, posts, caplog):
        posts.bulk_supported = False
        posts.layout_fail_ids = {2, 5}

        with caplog.at_level("WARNING"):
            result = await reassign_all_layouts(posts)

        assert result.success
        assert result.updated == 6
        assert sorted(f.target for f in result.failures) == ["2", "5"]
        assert posts.posts[2].grid_class == "stale"
        _assert_matches_plan(posts, skip={2, 5})
        assert "Layout update failed" in caplog.text

    async def test_dry_run_writes_nothing(self, posts):
        result = await reassign_all_layouts(posts, dry_run=True)

        assert result.updated == 0
        assert len(result.plan) == 8
        assert posts.bulk_calls == 0
        assert all(p.grid_class == "stale" for p in posts.posts.values())

    async def test_empty_collection(self):
        result = await reassign_all_layouts(InMemoryPostRepo())
        assert result.total == 0
        assert result.distribution is not None
        assert result.distribution.total == 0


class TestRunReassignAll:
    async def test_admin_only(self, posts):
        policy = PolicyEngine(RULES.rbac)
        author = Identity(user_id="author-1", role="author")

        denied = await run_reassign_all(
            ReassignLayoutsInput(), actor=author, policy=policy, posts=posts
        )
        assert denied.errors[0].code == "forbidden"
        assert posts.bulk_calls == 0

        admin = Identity(user_id="admin-1", role="admin")
        allowed = await run_reassign_all(
            ReassignLayoutsInput(), actor=admin, policy=policy, posts=posts
        )
        assert allowed.success
        assert allowed.updated == 8
