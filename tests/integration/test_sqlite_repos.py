from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.sqlite.repos import (
    SQLiteCommentRepo,
    SQLiteImageRepo,
    SQLitePostRepo,
    SQLiteProfileRepo,
    SQLiteTagRepo,
)
from src.core.ports import LayoutUpdate, PostQuery
from src.domain.entities import Comment, CommentLike, Post, PostImage, Profile, Tag
from src.domain.errors import UpstreamStoreError

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def posts(db_path):
    return SQLitePostRepo(db_path)


@pytest.fixture
def images(db_path):
    return SQLiteImageRepo(db_path)


@pytest.fixture
def tags(db_path):
    return SQLiteTagRepo(db_path)


@pytest.fixture
def comments(db_path):
    return SQLiteCommentRepo(db_path)


@pytest.fixture
def profiles(db_path):
    return SQLiteProfileRepo(db_path)


def _post(title: str = "Post", minutes_ago: int = 0, **fields) -> Post:
    fields.setdefault("author_id", "author-1")
    return Post(title=title, created_at=NOW - timedelta(minutes=minutes_ago), **fields)


class TestPostRepo:
    async def test_insert_assigns_id_and_roundtrips(self, posts):
        saved = await posts.insert(
            _post("Hello", description="d", status="scheduled", scheduled_for=NOW)
        )

        assert saved.id > 0
        loaded = await posts.get_by_id(saved.id)
        assert loaded == saved
        assert loaded.scheduled_for == NOW

    async def test_get_missing(self, posts):
        assert await posts.get_by_id(999) is None

    async def test_update(self, posts):
        saved = await posts.insert(_post("Old"))
        await posts.update(saved.model_copy(update={"title": "New", "category": "travel"}))

        loaded = await posts.get_by_id(saved.id)
        assert loaded.title == "New"
        assert loaded.category == "travel"

    async def test_list_newest_first_with_total(self, posts):
        for i in range(5):
            await posts.insert(_post(f"P{i}", minutes_ago=i))

        page, total = await posts.list(PostQuery(limit=2, offset=1))

        assert total == 5
        assert [p.title for p in page] == ["P1", "P2"]

    async def test_list_filters(self, posts):
        await posts.insert(_post("Draft", status="draft", category="food"))
        await posts.insert(_post("Pub", status="published", category="food", author_id="x"))
        await posts.insert(_post("Other", status="published", category="travel"))

        page, total = await posts.list(PostQuery(statuses=("published",), category="food"))
        assert [p.title for p in page] == ["Pub"]
        assert total == 1

        page, _ = await posts.list(PostQuery(author_id="x"))
        assert [p.title for p in page] == ["Pub"]

    async def test_empty_status_set_matches_nothing(self, posts):
        await posts.insert(_post())
        assert await posts.list(PostQuery(statuses=())) == ([], 0)

    async def test_search_escapes_like_wildcards(self, posts):
        await posts.insert(_post("100% cotton"))
        await posts.insert(_post("1000 days"))
        await posts.insert(_post("a_b"))
        await posts.insert(_post("axb"))

        page, _ = await posts.list(PostQuery(search="100%"))
        assert [p.title for p in page] == ["100% cotton"]

        page, _ = await posts.list(PostQuery(search="a_b"))
        assert [p.title for p in page] == ["a_b"]

    async def test_search_matches_description_and_category(self, posts):
        await posts.insert(_post("One", description="Mountain walk"))
        await posts.insert(_post("Two", category="mountains", minutes_ago=1))
        await posts.insert(_post("Three"))

        page, _ = await posts.list(PostQuery(search="MOUNTAIN"))
        assert [p.title for p in page] == ["One", "Two"]

    async def test_list_by_tag(self, posts, tags):
        a = await posts.insert(_post("A"))
        await posts.insert(_post("B"))
        tag = await tags.insert(Tag(name="Travel", slug="travel"))
        await tags.insert_post_tags(a.id, [tag.id])

        page, total = await posts.list(PostQuery(tag_slug="travel"))
        assert [p.title for p in page] == ["A"]
        assert total == 1

    async def test_list_due(self, posts):
        due = await posts.insert(
            _post("Due", status="scheduled", scheduled_for=NOW - timedelta(minutes=1))
        )
        exact = await posts.insert(_post("Exact", status="scheduled", scheduled_for=NOW))
        await posts.insert(
            _post("Later", status="scheduled", scheduled_for=NOW + timedelta(minutes=1))
        )
        await posts.insert(_post("Pub", status="published", scheduled_for=NOW))

        result = await posts.list_due(NOW, limit=10)
        assert [p.id for p in result] == [due.id, exact.id]
        assert len(await posts.list_due(NOW, limit=1)) == 1

    async def test_promote_if_scheduled_is_conditional(self, posts):
        saved = await posts.insert(_post(status="scheduled", scheduled_for=NOW))

        promoted = await posts.promote_if_scheduled(saved.id, NOW)
        assert promoted.status == "published"
        assert promoted.published_at == NOW
        assert promoted.scheduled_for is None

        assert await posts.promote_if_scheduled(saved.id, NOW + timedelta(hours=1)) is None
        assert (await posts.get_by_id(saved.id)).published_at == NOW

    async def test_promote_skips_post_rescheduled_to_the_future(self, posts):
        saved = await posts.insert(
            _post(status="scheduled", scheduled_for=NOW - timedelta(minutes=1))
        )
        later = NOW + timedelta(days=1)
        await posts.update(saved.model_copy(update={"scheduled_for": later}))

        assert await posts.promote_if_scheduled(saved.id, NOW) is None
        stored = await posts.get_by_id(saved.id)
        assert stored.status == "scheduled"
        assert stored.scheduled_for == later
        assert stored.published_at is None

    async def test_set_cover_leaves_the_rest_of_the_row(self, posts):
        saved = await posts.insert(
            _post(status="scheduled", scheduled_for=NOW - timedelta(minutes=1))
        )
        await posts.promote_if_scheduled(saved.id, NOW)

        await posts.set_cover(saved.id, "https://cdn/cover.webp")

        stored = await posts.get_by_id(saved.id)
        assert stored.image_url == "https://cdn/cover.webp"
        assert stored.status == "published"
        assert stored.published_at == NOW

        await posts.set_cover(saved.id, None)
        assert (await posts.get_by_id(saved.id)).image_url is None

    async def test_promote_missing_post(self, posts):
        assert await posts.promote_if_scheduled(42, NOW) is None

    async def test_bulk_and_single_layout_updates(self, posts):
        a = await posts.insert(_post("A"))
        b = await posts.insert(_post("B"))

        await posts.bulk_upsert_layouts(
            [
                LayoutUpdate(a.id, "split-horizontal", "md:col-span-2 row-span-1"),
                LayoutUpdate(b.id, "split-vertical", "md:col-span-1 row-span-2"),
            ]
        )
        await posts.update_layout(LayoutUpdate(a.id, "hover", "md:col-span-1 row-span-1"))

        assert (await posts.get_by_id(a.id)).layout_variant == "hover"
        assert (await posts.get_by_id(b.id)).grid_class == "md:col-span-1 row-span-2"

    async def test_list_all_and_count(self, posts):
        await posts.insert(_post("Old", minutes_ago=10))
        await posts.insert(_post("New"))

        assert [p.title for p in await posts.list_all_newest_first()] == ["New", "Old"]
        assert await posts.count() == 2

    async def test_list_cover_urls(self, posts):
        await posts.insert(_post(image_url="https://cdn/a.webp"))
        await posts.insert(_post())

        assert await posts.list_cover_urls() == ["https://cdn/a.webp"]

    async def test_delete_cascades(self, posts, images, tags, comments):
        saved = await posts.insert(_post())
        await images.insert(PostImage(post_id=saved.id, image_url="u1"))
        tag = await tags.insert(Tag(name="T", slug="t"))
        await tags.insert_post_tags(saved.id, [tag.id])
        comment = await comments.insert(Comment(post_id=saved.id, user_id="u", content="hi"))
        await comments.insert_like(CommentLike(comment_id=comment.id, user_id="u"))

        await posts.delete(saved.id)

        assert await posts.get_by_id(saved.id) is None
        assert await images.list_for_post(saved.id) == []
        assert await tags.list_for_post(saved.id) == []
        assert await comments.get(comment.id) is None
        assert await comments.get_like(comment.id, "u") is None
        # The tag itself survives
        assert await tags.get_by_slug("t") is not None

    async def test_missing_database_table_raises_upstream_error(self, tmp_path):
        repo = SQLitePostRepo(str(tmp_path / "empty.db"))

        with pytest.raises(UpstreamStoreError) as exc:
            await repo.get_by_id(1)
        assert exc.value.operation == "get_post"


class TestImageRepo:
    async def test_ordered_by_sort_order(self, posts, images):
        post = await posts.insert(_post())
        second = await images.insert(PostImage(post_id=post.id, image_url="b", sort_order=1))
        first = await images.insert(PostImage(post_id=post.id, image_url="a", sort_order=0))

        assert [i.id for i in await images.list_for_post(post.id)] == [first.id, second.id]

    async def test_set_sort_orders(self, posts, images):
        post = await posts.insert(_post())
        a = await images.insert(PostImage(post_id=post.id, image_url="a", sort_order=0))
        b = await images.insert(PostImage(post_id=post.id, image_url="b", sort_order=1))

        await images.set_sort_orders([(a.id, 1), (b.id, 0)])

        assert [i.image_url for i in await images.list_for_post(post.id)] == ["b", "a"]

    async def test_update_and_delete(self, posts, images):
        post = await posts.insert(_post())
        image = await images.insert(PostImage(post_id=post.id, image_url="a"))

        await images.update(image.model_copy(update={"focal_point": "50% 30%", "alt_text": "x"}))
        loaded = await images.get(image.id)
        assert loaded.focal_point == "50% 30%"
        assert loaded.alt_text == "x"

        await images.delete(image.id)
        assert await images.get(image.id) is None

    async def test_insert_for_missing_post_fails(self, images):
        with pytest.raises(UpstreamStoreError):
            await images.insert(PostImage(post_id=404, image_url="a"))

    async def test_list_all_urls(self, posts, images):
        post = await posts.insert(_post())
        await images.insert(PostImage(post_id=post.id, image_url="a"))
        await images.insert(PostImage(post_id=post.id, image_url="b"))

        assert sorted(await images.list_all_urls()) == ["a", "b"]


class TestTagRepo:
    async def test_slug_is_unique(self, tags):
        await tags.insert(Tag(name="Travel", slug="travel"))

        with pytest.raises(UpstreamStoreError):
            await tags.insert(Tag(name="TRAVEL", slug="travel"))

    async def test_list_all_sorted_by_name(self, tags):
        await tags.insert(Tag(name="beta", slug="beta"))
        await tags.insert(Tag(name="Alpha", slug="alpha"))

        assert [t.name for t in await tags.list_all()] == ["Alpha", "beta"]

    async def test_get_many(self, tags):
        a = await tags.insert(Tag(name="A", slug="a"))
        await tags.insert(Tag(name="B", slug="b"))

        assert [t.slug for t in await tags.get_many([a.id, 999])] == ["a"]
        assert await tags.get_many([]) == []

    async def test_replace_post_tags(self, posts, tags):
        post = await posts.insert(_post())
        a = await tags.insert(Tag(name="A", slug="a"))
        b = await tags.insert(Tag(name="B", slug="b"))
        await tags.insert_post_tags(post.id, [a.id, a.id])

        await tags.delete_post_tags(post.id)
        await tags.insert_post_tags(post.id, [b.id])

        assert [t.slug for t in await tags.list_for_post(post.id)] == ["b"]


class TestCommentRepo:
    async def test_like_counts_and_liked_by(self, posts, comments):
        post = await posts.insert(_post())
        c1 = await comments.insert(Comment(post_id=post.id, user_id="u1", content="one"))
        c2 = await comments.insert(Comment(post_id=post.id, user_id="u2", content="two"))
        await comments.insert_like(CommentLike(comment_id=c1.id, user_id="u1"))
        await comments.insert_like(CommentLike(comment_id=c1.id, user_id="u2"))

        assert await comments.like_counts([c1.id, c2.id]) == {c1.id: 2}
        assert await comments.liked_by("u2", [c1.id, c2.id]) == {c1.id}
        assert await comments.like_counts([]) == {}

    async def test_one_like_per_user(self, posts, comments):
        post = await posts.insert(_post())
        comment = await comments.insert(Comment(post_id=post.id, user_id="u", content="c"))
        await comments.insert_like(CommentLike(comment_id=comment.id, user_id="u"))

        with pytest.raises(UpstreamStoreError):
            await comments.insert_like(CommentLike(comment_id=comment.id, user_id="u"))

    async def test_unlike(self, posts, comments):
        post = await posts.insert(_post())
        comment = await comments.insert(Comment(post_id=post.id, user_id="u", content="c"))
        like = await comments.insert_like(CommentLike(comment_id=comment.id, user_id="u"))

        await comments.delete_like(like.id)

        assert await comments.get_like(comment.id, "u") is None

    async def test_delete_comment_removes_likes(self, posts, comments):
        post = await posts.insert(_post())
        comment = await comments.insert(Comment(post_id=post.id, user_id="u", content="c"))
        await comments.insert_like(CommentLike(comment_id=comment.id, user_id="u"))

        await comments.delete(comment.id)

        assert await comments.list_for_post(post.id) == []
        assert await comments.like_counts([comment.id]) == {}


class TestProfileRepo:
    async def test_save_and_get(self, profiles):
        await profiles.save(Profile(id="u1", username="ann", role="author"))
        await profiles.save(Profile(id="u1", username="ann", role="admin", avatar_url="a.webp"))

        loaded = await profiles.get("u1")
        assert loaded.role == "admin"
        assert await profiles.list_avatar_urls() == ["a.webp"]
        assert await profiles.get("nobody") is None
