"""
Posts component port definitions.
"""

from __future__ import annotations

from src.core.ports.codec import ImageCodecPort
from src.core.ports.db import ImageRepoPort, PostQuery, PostRepoPort, TagRepoPort
from src.core.ports.storage import ObjectStorePort
from src.core.ports.time import ClockPort

__all__ = [
    "ClockPort",
    "ImageCodecPort",
    "ImageRepoPort",
    "ObjectStorePort",
    "PostQuery",
    "PostRepoPort",
    "TagRepoPort",
]
