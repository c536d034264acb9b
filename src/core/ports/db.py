"""
Relational store interfaces.

Protocol-based, async repository operations over the tables posts,
post_images, tags, post_tags, comments, comment_likes and profiles.
Implementations: SQLite (src.adapters.sqlite), hosted Postgres (external).

Every method may raise UpstreamStoreError when the store call fails.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from src.domain.entities import (
    Comment,
    CommentLike,
    LayoutVariant,
    Post,
    PostImage,
    PostStatus,
    Profile,
    Tag,
)


@dataclass(frozen=True)
class PostQuery:
    """Filters for a paginated post listing."""

    search: str = ""
    statuses: tuple[PostStatus, ...] | None = None
    category: str | None = None
    tag_slug: str | None = None
    author_id: str | None = None
    limit: int = 20
    offset: int = 0


@dataclass(frozen=True)
class LayoutUpdate:
    post_id: int
    layout_variant: LayoutVariant
    grid_class: str


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


class PostRepoPort(Protocol):
    async def get_by_id(self, post_id: int) -> Post | None: ...

    async def insert(self, post: Post) -> Post:
        """Insert and return the post with its assigned id."""
        ...

    async def update(self, post: Post) -> Post: ...

    async def delete(self, post_id: int) -> None:
        """Delete the post; images, tag links and comments cascade."""
        ...

    async def count(self) -> int: ...

    async def list(self, query: PostQuery) -> tuple[list[Post], int]:
        """Newest first. Returns (page, total matching)."""
        ...

    async def list_all_newest_first(self) -> list[Post]: ...

    async def list_due(self, now: datetime, limit: int) -> list[Post]:
        """Scheduled posts whose scheduled_for is at or before now."""
        ...

    async def promote_if_scheduled(self, post_id: int, now: datetime) -> Post | None:
        """
        Conditionally publish a scheduled post, stamping published_at = now.

        Applies only while the row is still scheduled for a time at or before
        now. Returns None otherwise, so a promotion racing another one or a
        reschedule is a no-op.
        """
        ...

    async def bulk_upsert_layouts(self, updates: Sequence[LayoutUpdate]) -> None:
        """
        Write all layouts in one statement.

        Raises BulkUpsertUnsupported when the store cannot express it.
        """
        ...

    async def update_layout(self, update: LayoutUpdate) -> None: ...

    async def set_cover(self, post_id: int, image_url: str | None) -> None:
        """Write only the cover reference, leaving the rest of the row as stored."""
        ...

    async def list_cover_urls(self) -> list[str]: ...


# -----------------------------------------------------------------------------
# Gallery images
# -----------------------------------------------------------------------------


class ImageRepoPort(Protocol):
    async def list_for_post(self, post_id: int) -> list[PostImage]:
        """Images ordered by sort_order ascending."""
        ...

    async def get(self, image_id: int) -> PostImage | None: ...

    async def insert(self, image: PostImage) -> PostImage: ...

    async def update(self, image: PostImage) -> PostImage: ...

    async def set_sort_orders(self, orders: Sequence[tuple[int, int]]) -> None:
        """Apply (image_id, sort_order) pairs."""
        ...

    async def delete(self, image_id: int) -> None: ...

    async def list_all_urls(self) -> list[str]: ...


# -----------------------------------------------------------------------------
# Tags
# -----------------------------------------------------------------------------


class TagRepoPort(Protocol):
    async def list_all(self) -> list[Tag]: ...

    async def get_by_slug(self, slug: str) -> Tag | None: ...

    async def get_many(self, tag_ids: Sequence[int]) -> list[Tag]: ...

    async def insert(self, tag: Tag) -> Tag: ...

    async def list_for_post(self, post_id: int) -> list[Tag]: ...

    async def delete_post_tags(self, post_id: int) -> None: ...

    async def insert_post_tags(self, post_id: int, tag_ids: Sequence[int]) -> None: ...


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------


class CommentRepoPort(Protocol):
    async def list_for_post(self, post_id: int) -> list[Comment]: ...

    async def get(self, comment_id: int) -> Comment | None: ...

    async def insert(self, comment: Comment) -> Comment: ...

    async def delete(self, comment_id: int) -> None: ...

    async def like_counts(self, comment_ids: Sequence[int]) -> dict[int, int]: ...

    async def liked_by(self, user_id: str, comment_ids: Sequence[int]) -> set[int]: ...

    async def get_like(self, comment_id: int, user_id: str) -> CommentLike | None: ...

    async def insert_like(self, like: CommentLike) -> CommentLike: ...

    async def delete_like(self, like_id: int) -> None: ...


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


class ProfileRepoPort(Protocol):
    async def get(self, user_id: str) -> Profile | None: ...

    async def list_avatar_urls(self) -> list[str]: ...
