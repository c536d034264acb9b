"""
Assets component unit tests.

Gallery uploads, reorder, delete, cover derivation and orphan cleanup.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

from src.components.assets import (
    AddImageRecordInput,
    AddImagesInput,
    AssetsConfig,
    DeleteImageInput,
    ImagePayload,
    ListImagesInput,
    OrphanSweepInput,
    ReorderImagesInput,
    SetAltTextInput,
    SetFocalPointInput,
    UploadImageInput,
    run_add_image_record,
    run_add_images,
    run_delete_image,
    run_list_images,
    run_orphan_sweep,
    run_reorder,
    run_set_alt_text,
    run_set_focal_point,
    run_upload,
)
from src.components.scheduler import SweepInput, run_sweep
from src.domain.entities import Identity, Post, PostImage, Profile
from src.domain.errors import UpstreamStoreError
from src.domain.policy import PolicyEngine
from src.rules.loader import load_rules
from tests.fakes import (
    FakeCodec,
    FakeObjectStore,
    InMemoryImageRepo,
    InMemoryPostRepo,
    InMemoryProfileRepo,
    MockClock,
)

RULES = load_rules(Path(__file__).resolve().parents[4] / "rules.yaml")

ADMIN = Identity(user_id="admin-1", role="admin")
AUTHOR = Identity(user_id="author-1", role="author")
OTHER = Identity(user_id="author-2", role="author")


# --- Fixtures ---


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def posts() -> InMemoryPostRepo:
    return InMemoryPostRepo()


@pytest.fixture
def images(posts: InMemoryPostRepo) -> InMemoryImageRepo:
    return InMemoryImageRepo(posts)


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore(bucket=RULES.uploads.bucket)


@pytest.fixture
def codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def config() -> AssetsConfig:
    return AssetsConfig.from_rules(RULES.uploads)


@pytest.fixture
def policy() -> PolicyEngine:
    return PolicyEngine(RULES.rbac)


@pytest.fixture
def post(posts: InMemoryPostRepo) -> Post:
    return posts.add(Post(title="Gallery", author_id=AUTHOR.user_id, status="published"))


@pytest.fixture
def gallery_ports(policy, posts, images) -> dict[str, Any]:
    return {"policy": policy, "posts": posts, "images": images}


def _file(name: str = "a.jpg", content_type: str = "image/jpeg", size: int = 32) -> ImagePayload:
    return ImagePayload(data=b"\x01" * size, filename=name, content_type=content_type)


def _seed_gallery(
    images: InMemoryImageRepo, store: FakeObjectStore, post: Post, count: int
) -> list[PostImage]:
    return [
        images.add(
            PostImage(post_id=post.id, image_url=store.put(f"img{i}.webp"), sort_order=i)
        )
        for i in range(count)
    ]


async def _orders(images: InMemoryImageRepo, post_id: int) -> list[int]:
    return [i.sort_order for i in await images.list_for_post(post_id)]


# --- Upload ---


class TestUpload:
    async def test_returns_public_url(self, store, codec, clock, config):
        result = await run_upload(
            UploadImageInput(payload=_file()), store=store, codec=codec, clock=clock, config=config
        )
        assert result.success
        assert result.converted is True
        assert result.object_key is not None
        assert result.object_key.endswith(".webp")
        assert result.url == store.url_for(result.object_key)

    async def test_too_large_rejected_before_write(self, store, codec, clock, config):
        big = _file(size=config.max_upload_bytes + 1)
        result = await run_upload(
            UploadImageInput(payload=big), store=store, codec=codec, clock=clock, config=config
        )
        assert result.errors[0].code == "payload_too_large"
        assert str(config.max_upload_bytes + 1) in result.errors[0].message
        assert store.objects == {}

    async def test_non_image_rejected(self, store, codec, clock, config):
        result = await run_upload(
            UploadImageInput(payload=_file("a.pdf", "application/pdf")),
            store=store,
            codec=codec,
            clock=clock,
            config=config,
        )
        assert result.errors[0].code == "validation_error"
        assert store.objects == {}

    async def test_conversion_failure_stores_original(self, store, clock, config):
        result = await run_upload(
            UploadImageInput(payload=_file("a.png", "image/png")),
            store=store,
            codec=FakeCodec(fail=True),
            clock=clock,
            config=config,
        )
        assert result.success
        assert result.converted is False
        assert result.object_key is not None
        assert result.object_key.endswith(".png")
        assert store.objects[result.object_key][1] == "image/png"

    async def test_store_failure_propagates(self, store, codec, clock, config):
        store.upload_error = UpstreamStoreError("upload", "denied")
        with pytest.raises(UpstreamStoreError):
            await run_upload(
                UploadImageInput(payload=_file()),
                store=store,
                codec=codec,
                clock=clock,
                config=config,
            )


# --- Gallery add ---


class TestAddImages:
    async def test_first_image_becomes_cover(
        self, gallery_ports, store, codec, clock, config, post, posts
    ):
        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()], alt_texts=["A lake"]),
            actor=AUTHOR,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )

        assert result.success
        assert result.uploaded == 1
        assert result.images[0].sort_order == 0
        assert result.images[0].alt_text == "A lake"
        assert result.cover_url == result.images[0].image_url
        assert posts.posts[post.id].image_url == result.cover_url

    async def test_mixed_batch_reports_each_file(
        self, gallery_ports, store, codec, clock, config, post, images
    ):
        files = [
            _file("one.jpg"),
            _file("notes.txt", "text/plain"),
            _file("huge.png", "image/png", size=config.max_upload_bytes + 1),
            _file("two.webp", "image/webp"),
        ]

        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=files),
            actor=AUTHOR,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )

        assert [o.status for o in result.outcomes] == ["uploaded", "skipped", "failed", "uploaded"]
        assert result.outcomes[2].code == "payload_too_large"
        assert (result.uploaded, result.failed, result.skipped) == (2, 1, 1)
        assert await _orders(images, post.id) == [0, 1]

    async def test_appends_after_existing(
        self, gallery_ports, store, codec, clock, config, post, images
    ):
        existing = _seed_gallery(images, store, post, 2)
        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()]),
            actor=AUTHOR,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )
        assert await _orders(images, post.id) == [0, 1, 2]
        assert result.cover_url == existing[0].image_url

    async def test_storage_failure_does_not_abort_batch(
        self, gallery_ports, codec, clock, config, post
    ):
        class FlakyStore(FakeObjectStore):
            def __init__(self) -> None:
                super().__init__(bucket=config.bucket)
                self.calls = 0

            async def upload(self, key: str, data: bytes, content_type: str) -> str:
                self.calls += 1
                if self.calls == 1:
                    raise UpstreamStoreError("upload", "timeout")
                return await super().upload(key, data, content_type)

        flaky = FlakyStore()
        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file("a.jpg"), _file("b.jpg")]),
            actor=AUTHOR,
            store=flaky,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )
        assert [o.status for o in result.outcomes] == ["failed", "uploaded"]
        assert result.outcomes[0].code == "upstream_error"

    async def test_record_failure_removes_stored_object(
        self, gallery_ports, store, codec, clock, config, post, images
    ):
        images.insert_error = UpstreamStoreError("insert_image", "locked")
        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()]),
            actor=AUTHOR,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )
        assert result.failed == 1
        assert store.objects == {}

    async def test_other_author_forbidden(self, gallery_ports, store, codec, clock, config, post):
        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()]),
            actor=OTHER,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )
        assert result.errors[0].code == "forbidden"
        assert store.objects == {}

    async def test_record_url(self, gallery_ports, clock, post, posts):
        result = await run_add_image_record(
            AddImageRecordInput(
                post_id=post.id, image_url="https://cdn.example.com/x.webp", focal_point="50% 20%"
            ),
            actor=AUTHOR,
            clock=clock,
            **gallery_ports,
        )
        assert result.image is not None
        assert result.image.focal_point == "50% 20%"
        assert posts.posts[post.id].image_url == "https://cdn.example.com/x.webp"

    async def test_legacy_cover_survives_gallery_changes(
        self, gallery_ports, store, config, clock, posts, images
    ):
        legacy = "https://legacy/cover.jpg"
        post = posts.add(Post(title="Old", author_id=AUTHOR.user_id, image_url=legacy))

        added = []
        for url in ("https://cdn/new.webp", "https://cdn/next.webp"):
            result = await run_add_image_record(
                AddImageRecordInput(post_id=post.id, image_url=url),
                actor=AUTHOR,
                clock=clock,
                **gallery_ports,
            )
            assert result.cover_url == legacy
            added.append(result.image)
        first, second = added

        reordered = await run_reorder(
            ReorderImagesInput(post_id=post.id, image_ids=[second.id, first.id]),
            actor=AUTHOR,
            **gallery_ports,
        )
        assert reordered.cover_url == legacy

        for image in (second, first):
            deleted = await run_delete_image(
                DeleteImageInput(post_id=post.id, image_id=image.id),
                actor=AUTHOR,
                store=store,
                config=config,
                **gallery_ports,
            )
            assert deleted.cover_url == legacy
        assert posts.posts[post.id].image_url == legacy

    async def test_uploaded_cover_kept_when_gallery_starts(
        self, gallery_ports, store, codec, clock, config, posts
    ):
        cover = store.put("cover.webp")
        post = posts.add(Post(title="Cover", author_id=AUTHOR.user_id, image_url=cover))

        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()]),
            actor=AUTHOR,
            store=store,
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )

        assert result.cover_url == cover
        assert posts.posts[post.id].image_url == cover
        assert "cover.webp" in store.objects

    async def test_promotion_during_upload_is_not_undone(
        self, gallery_ports, codec, clock, config, posts
    ):
        start = clock.now_utc()
        post = posts.add(
            Post(
                title="Soon",
                author_id=AUTHOR.user_id,
                status="scheduled",
                scheduled_for=start + timedelta(seconds=1),
            )
        )

        class SlowStore(FakeObjectStore):
            async def upload(self, key: str, data: bytes, content_type: str) -> str:
                clock.advance(timedelta(seconds=5))
                await run_sweep(SweepInput(), posts=posts, clock=clock)
                return await super().upload(key, data, content_type)

        result = await run_add_images(
            AddImagesInput(post_id=post.id, files=[_file()]),
            actor=AUTHOR,
            store=SlowStore(bucket=config.bucket),
            codec=codec,
            clock=clock,
            config=config,
            **gallery_ports,
        )

        stored = posts.posts[post.id]
        assert stored.status == "published"
        assert stored.published_at == start + timedelta(seconds=5)
        assert stored.scheduled_for is None
        assert stored.image_url == result.cover_url
        assert posts.update_calls == 0


# --- Reorder ---


class TestReorder:
    async def test_dense_orders_and_new_cover(self, gallery_ports, store, post, posts, images):
        a, b, c = _seed_gallery(images, store, post, 3)

        result = await run_reorder(
            ReorderImagesInput(post_id=post.id, image_ids=[c.id, a.id, b.id]),
            actor=AUTHOR,
            **gallery_ports,
        )

        assert result.success
        listed = await images.list_for_post(post.id)
        assert [i.id for i in listed] == [c.id, a.id, b.id]
        assert [i.sort_order for i in listed] == [0, 1, 2]
        assert posts.posts[post.id].image_url == c.image_url
        assert result.cover_url == c.image_url

    @pytest.mark.parametrize("pick", [[0, 1], [0, 1, 1], [0, 1, 2, 99]])
    async def test_must_be_exact_permutation(self, gallery_ports, store, post, images, pick):
        seeded = _seed_gallery(images, store, post, 3)
        ids = [seeded[i].id if i < 3 else i for i in pick]

        result = await run_reorder(
            ReorderImagesInput(post_id=post.id, image_ids=ids), actor=AUTHOR, **gallery_ports
        )

        assert result.errors[0].field == "image_ids"
        assert await _orders(images, post.id) == [0, 1, 2]


# --- Delete ---


class TestDeleteImage:
    async def test_deleting_sole_image_clears_cover(
        self, gallery_ports, store, config, post, posts, images
    ):
        (only,) = _seed_gallery(images, store, post, 1)
        posts.posts[post.id] = post.model_copy(update={"image_url": only.image_url})

        result = await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=only.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )

        assert result.success
        assert result.cover_url is None
        assert posts.posts[post.id].image_url is None
        assert store.objects == {}

    async def test_deleting_cover_promotes_next(
        self, gallery_ports, store, config, post, posts, images
    ):
        first, second, third = _seed_gallery(images, store, post, 3)
        posts.posts[post.id] = post.model_copy(update={"image_url": first.image_url})

        result = await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=first.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )

        assert result.cover_url == second.image_url
        assert posts.posts[post.id].image_url == second.image_url
        assert await _orders(images, post.id) == [0, 1]
        assert [i.id for i in result.images] == [second.id, third.id]

    async def test_middle_delete_renumbers(self, gallery_ports, store, config, post, images):
        seeded = _seed_gallery(images, store, post, 4)
        await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=seeded[1].id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )
        listed = await images.list_for_post(post.id)
        assert [i.id for i in listed] == [seeded[0].id, seeded[2].id, seeded[3].id]
        assert [i.sort_order for i in listed] == [0, 1, 2]

    async def test_storage_failure_reported_not_raised(
        self, gallery_ports, store, config, post, images
    ):
        (only,) = _seed_gallery(images, store, post, 1)
        store.delete_error = UpstreamStoreError("delete", "bucket unavailable")

        result = await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=only.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )

        assert result.success
        assert await images.list_for_post(post.id) == []
        assert result.cleanup_failures[0].target == "img0.webp"

    async def test_object_still_referenced_elsewhere_kept(
        self, gallery_ports, store, config, clock, post, posts, images
    ):
        (shared,) = _seed_gallery(images, store, post, 1)
        other = posts.add(Post(title="Other", author_id=AUTHOR.user_id))
        await run_add_image_record(
            AddImageRecordInput(post_id=other.id, image_url=shared.image_url),
            actor=AUTHOR,
            clock=clock,
            **gallery_ports,
        )

        result = await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=shared.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )

        assert result.success
        assert "img0.webp" in store.objects
        assert store.deleted == []

    async def test_object_used_as_another_cover_kept(
        self, gallery_ports, store, config, post, posts, images
    ):
        (only,) = _seed_gallery(images, store, post, 1)
        posts.add(Post(title="Other", author_id=OTHER.user_id, image_url=only.image_url))

        await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=only.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )

        assert "img0.webp" in store.objects

    async def test_image_of_other_post_not_found(
        self, gallery_ports, store, config, post, posts, images
    ):
        other = posts.add(Post(title="Other", author_id=AUTHOR.user_id))
        (foreign,) = _seed_gallery(images, store, other, 1)

        result = await run_delete_image(
            DeleteImageInput(post_id=post.id, image_id=foreign.id),
            actor=AUTHOR,
            store=store,
            config=config,
            **gallery_ports,
        )
        assert result.errors[0].code == "not_found"


# --- Metadata ---


class TestImageMetadata:
    async def test_focal_point(self, gallery_ports, store, post, images):
        (image,) = _seed_gallery(images, store, post, 1)
        result = await run_set_focal_point(
            SetFocalPointInput(post_id=post.id, image_id=image.id, focal_point="10% 90%"),
            actor=AUTHOR,
            **gallery_ports,
        )
        assert result.image is not None
        assert result.image.focal_point == "10% 90%"

    async def test_invalid_focal_point(self, gallery_ports, store, post, images):
        (image,) = _seed_gallery(images, store, post, 1)
        result = await run_set_focal_point(
            SetFocalPointInput(post_id=post.id, image_id=image.id, focal_point="left"),
            actor=AUTHOR,
            **gallery_ports,
        )
        assert result.errors[0].field == "focal_point"

    async def test_alt_text(self, gallery_ports, store, post, images):
        (image,) = _seed_gallery(images, store, post, 1)
        result = await run_set_alt_text(
            SetAltTextInput(post_id=post.id, image_id=image.id, alt_text=" Sunset "),
            actor=AUTHOR,
            **gallery_ports,
        )
        assert result.image is not None
        assert (await images.get(image.id)).alt_text == "Sunset"  # type: ignore[union-attr]

    async def test_list(self, gallery_ports, images, store, clock, post):
        _seed_gallery(images, store, post, 2)
        result = await run_list_images(
            ListImagesInput(post_id=post.id), viewer=None, clock=clock, **gallery_ports
        )
        assert [i.sort_order for i in result.images] == [0, 1]

        missing = await run_list_images(
            ListImagesInput(post_id=404), viewer=None, clock=clock, **gallery_ports
        )
        assert missing.errors[0].code == "not_found"

    async def test_list_of_draft_limited_to_author_and_admin(
        self, gallery_ports, images, store, clock, posts
    ):
        draft = posts.add(Post(title="Draft", author_id=AUTHOR.user_id, status="draft"))
        _seed_gallery(images, store, draft, 1)

        for viewer, visible in ((None, False), (OTHER, False), (AUTHOR, True), (ADMIN, True)):
            result = await run_list_images(
                ListImagesInput(post_id=draft.id), viewer=viewer, clock=clock, **gallery_ports
            )
            assert result.success is visible
            if not visible:
                assert result.errors[0].code == "not_found"
                assert result.images == []

    async def test_list_of_due_scheduled_post_promotes_it(self, gallery_ports, clock, posts):
        post = posts.add(
            Post(
                title="Due",
                author_id=AUTHOR.user_id,
                status="scheduled",
                scheduled_for=clock.now_utc() - timedelta(minutes=1),
            )
        )

        result = await run_list_images(
            ListImagesInput(post_id=post.id), viewer=None, clock=clock, **gallery_ports
        )

        assert result.success
        assert posts.posts[post.id].status == "published"


# --- Orphan sweep ---


class TestOrphanSweep:
    @pytest.fixture
    def profiles(self) -> InMemoryProfileRepo:
        return InMemoryProfileRepo()

    @pytest.fixture
    def populated(self, store, posts, images, profiles, post):
        cover = store.put("cover.webp")
        posts.posts[post.id] = post.model_copy(update={"image_url": cover})
        images.add(PostImage(post_id=post.id, image_url=store.put("gallery.webp")))
        profiles.add(Profile(id="u1", avatar_url=store.put("avatars/me.png")))
        store.put("orphan.webp")
        store.put("avatars/old.png")

    async def test_dry_run_lists_without_deleting(
        self, policy, posts, images, profiles, store, config, populated
    ):
        result = await run_orphan_sweep(
            OrphanSweepInput(dry_run=True),
            actor=ADMIN,
            policy=policy,
            posts=posts,
            images=images,
            profiles=profiles,
            store=store,
            config=config,
        )

        assert result.success
        assert sorted(result.orphaned) == ["avatars/old.png", "orphan.webp"]
        assert result.deleted == []
        assert result.stored == 5
        assert "orphan.webp" in store.objects

    async def test_deletes_only_unreferenced(
        self, policy, posts, images, profiles, store, config, populated
    ):
        result = await run_orphan_sweep(
            OrphanSweepInput(),
            actor=ADMIN,
            policy=policy,
            posts=posts,
            images=images,
            profiles=profiles,
            store=store,
            config=config,
        )

        assert sorted(result.deleted) == ["avatars/old.png", "orphan.webp"]
        assert sorted(store.objects) == ["avatars/me.png", "cover.webp", "gallery.webp"]

    async def test_requires_admin(self, policy, posts, images, profiles, store, config):
        result = await run_orphan_sweep(
            OrphanSweepInput(),
            actor=AUTHOR,
            policy=policy,
            posts=posts,
            images=images,
            profiles=profiles,
            store=store,
            config=config,
        )
        assert result.errors[0].code == "forbidden"

    async def test_operator_run_skips_policy(self, posts, images, profiles, store, config):
        store.put("stray.webp")
        result = await run_orphan_sweep(
            OrphanSweepInput(),
            actor=None,
            policy=None,
            posts=posts,
            images=images,
            profiles=profiles,
            store=store,
            config=config,
        )
        assert result.deleted == ["stray.webp"]
