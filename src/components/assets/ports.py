"""
Assets component port definitions.

The asset manager talks to the relational store (posts, gallery images,
profiles), the public object store, the image codec and the clock.
"""

from __future__ import annotations

from src.core.ports.codec import ImageCodecPort
from src.core.ports.db import ImageRepoPort, PostRepoPort, ProfileRepoPort
from src.core.ports.storage import ObjectStorePort
from src.core.ports.time import ClockPort

__all__ = [
    "ClockPort",
    "ImageCodecPort",
    "ImageRepoPort",
    "ObjectStorePort",
    "PostRepoPort",
    "ProfileRepoPort",
]
