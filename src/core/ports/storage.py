"""
Object storage interface.

Public-bucket blob storage addressed by key. Implementations: local
filesystem (src.adapters.local_storage), hosted bucket storage (external).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class ObjectStorePort(Protocol):
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under key and return the public URL.

        Raises UpstreamStoreError if the key exists or the write fails.
        """
        ...

    async def delete(self, keys: Sequence[str]) -> None:
        """Remove objects. Missing keys are ignored."""
        ...

    async def list(self, prefix: str = "") -> list[str]:
        """Object names directly under prefix (no nested folders)."""
        ...
