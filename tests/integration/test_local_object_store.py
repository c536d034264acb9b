"""LocalObjectStore against a real temporary directory."""

import pytest

from src.adapters.local_storage import LocalObjectStore, create_local_store
from src.domain.errors import UpstreamStoreError

BASE_URL = "http://localhost:8000"


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path, bucket="post-images", public_base_url=BASE_URL + "/")


class TestUpload:
    async def test_writes_file_and_returns_public_url(self, store, tmp_path):
        url = await store.upload("posts/1-cat-abcd1234.webp", b"data", "image/webp")

        assert url == (
            "http://localhost:8000/storage/v1/object/public/post-images/posts/1-cat-abcd1234.webp"
        )
        assert (tmp_path / "post-images" / "posts" / "1-cat-abcd1234.webp").read_bytes() == b"data"

    async def test_existing_key_is_not_overwritten(self, store, tmp_path):
        await store.upload("posts/a.webp", b"first", "image/webp")

        with pytest.raises(UpstreamStoreError) as exc:
            await store.upload("posts/a.webp", b"second", "image/webp")

        assert exc.value.operation == "upload"
        assert (tmp_path / "post-images" / "posts" / "a.webp").read_bytes() == b"first"

    async def test_traversal_stays_inside_bucket(self, store, tmp_path):
        await store.upload("../../escape.webp", b"x", "image/webp")

        assert not (tmp_path.parent / "escape.webp").exists()
        assert (tmp_path / "post-images" / "escape.webp").exists()

    def test_public_url_quotes_key(self, store):
        assert store.public_url("posts/a b.webp").endswith("/post-images/posts/a%20b.webp")


class TestDeleteAndList:
    async def test_delete_missing_is_ok(self, store):
        await store.upload("posts/a.webp", b"x", "image/webp")

        await store.delete(["posts/a.webp", "posts/missing.webp"])

        assert await store.list("posts") == []

    async def test_delete_nothing(self, store):
        await store.delete([])

    async def test_list_returns_file_names_in_folder(self, store):
        await store.upload("posts/b.webp", b"x", "image/webp")
        await store.upload("posts/a.webp", b"x", "image/webp")
        await store.upload("posts/nested/c.webp", b"x", "image/webp")
        await store.upload("avatars/d.webp", b"x", "image/webp")

        assert await store.list("posts/") == ["a.webp", "b.webp"]
        assert await store.list("missing") == []


def test_factory_reads_env(tmp_path, monkeypatch):
    monkeypatch.setenv("BLOG_STORAGE_PATH", str(tmp_path / "objects"))

    store = create_local_store(bucket="post-images", public_base_url=BASE_URL)

    assert store.bucket_path == tmp_path / "objects" / "post-images"
    assert store.bucket_path.is_dir()
