# Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.codec import ImageCodecPort
from src.core.ports.db import (
    CommentRepoPort,
    ImageRepoPort,
    LayoutUpdate,
    PostQuery,
    PostRepoPort,
    ProfileRepoPort,
    TagRepoPort,
)
from src.core.ports.identity import IdentityProviderPort
from src.core.ports.storage import ObjectStorePort
from src.core.ports.time import ClockPort

__all__ = [
    "ClockPort",
    "CommentRepoPort",
    "IdentityProviderPort",
    "ImageCodecPort",
    "ImageRepoPort",
    "LayoutUpdate",
    "ObjectStorePort",
    "PostQuery",
    "PostRepoPort",
    "ProfileRepoPort",
    "TagRepoPort",
]
