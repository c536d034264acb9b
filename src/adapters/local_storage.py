"""
Local Filesystem Object Store Adapter.

Implements ObjectStorePort on the local filesystem for development and
single-server deployments. Objects live at {base_path}/{bucket}/{key} and are
served publicly by the API under the same path shape a hosted bucket uses:

    {public_base_url}/storage/v1/object/public/{bucket}/{key}

Keys are write-once: uploading over an existing key fails.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import quote

from src.domain.errors import UpstreamStoreError

logger = logging.getLogger(__name__)

PUBLIC_PATH_PREFIX = "/storage/v1/object/public"


class LocalObjectStore:
    """Public-bucket object storage backed by a directory tree."""

    def __init__(
        self,
        base_path: str | Path,
        *,
        bucket: str,
        public_base_url: str,
        create_dirs: bool = True,
    ) -> None:
        self.base_path = Path(base_path)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

        if create_dirs:
            self.bucket_path.mkdir(parents=True, exist_ok=True)

    @property
    def bucket_path(self) -> Path:
        return self.base_path / self.bucket

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}{PUBLIC_PATH_PREFIX}/{self.bucket}/{quote(key)}"

    def _key_to_path(self, key: str) -> Path:
        # Sanitize key to prevent directory traversal
        safe_key = key.replace("..", "").lstrip("/")
        return self.bucket_path / safe_key

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "xb") as f:
            f.write(data)

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self._key_to_path(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except FileExistsError as e:
            raise UpstreamStoreError("upload", f"object {key} already exists") from e
        except OSError as e:
            raise UpstreamStoreError("upload", str(e)) from e

        logger.info("Stored %s (%d bytes, %s)", key, len(data), content_type)
        return self.public_url(key)

    def _delete(self, keys: Sequence[str]) -> None:
        for key in keys:
            self._key_to_path(key).unlink(missing_ok=True)

    async def delete(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            await asyncio.to_thread(self._delete, list(keys))
        except OSError as e:
            raise UpstreamStoreError("delete", str(e)) from e
        logger.info("Deleted %d object(s)", len(keys))

    def _list(self, prefix: str) -> list[str]:
        folder = self._key_to_path(prefix) if prefix else self.bucket_path
        if not folder.is_dir():
            return []
        return sorted(entry.name for entry in os.scandir(folder) if entry.is_file())

    async def list(self, prefix: str = "") -> list[str]:
        try:
            return await asyncio.to_thread(self._list, prefix.strip("/"))
        except OSError as e:
            raise UpstreamStoreError("list", str(e)) from e


def create_local_store(
    base_path: str | Path | None = None,
    *,
    bucket: str,
    public_base_url: str,
    env_var: str = "BLOG_STORAGE_PATH",
    default_path: str = "./storage",
) -> LocalObjectStore:
    """
    Factory function to create LocalObjectStore from config.

    Args:
        base_path: Explicit base path (overrides env var)
        bucket: Public bucket name
        public_base_url: Origin the API is reachable at
        env_var: Environment variable name for storage path
        default_path: Default path if not configured
    """
    if base_path is None:
        base_path = os.environ.get(env_var, default_path)

    return LocalObjectStore(base_path, bucket=bucket, public_base_url=public_base_url)
