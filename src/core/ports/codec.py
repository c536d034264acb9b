"""
Image codec interface.

Decoding and encoding are CPU-bound and synchronous. Both raise on failure;
callers decide whether a failure is fatal.
"""

from __future__ import annotations

from typing import Any, Protocol


class ImageCodecPort(Protocol):
    def decode(self, data: bytes, source_format: str) -> Any:
        """Decode bytes of the given format ("jpeg", "png", ...) into a raw image."""
        ...

    def encode(self, image: Any, target_format: str, quality: int) -> bytes:
        """Encode a raw image into target_format ("webp", ...)."""
        ...
