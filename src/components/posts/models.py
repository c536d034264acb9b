"""
Posts component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.components.assets import ImagePayload
from src.domain.entities import PostDetail, PostStatus
from src.domain.errors import BestEffortFailure
from src.rules.models import Rules

# --- Validation Error ---


@dataclass(frozen=True)
class PostValidationError:
    """Post validation error."""

    code: str
    message: str
    field: str | None = None


# --- Config ---


@dataclass(frozen=True)
class PostsConfig:
    placeholder_title: str = "Untitled Draft"
    title_max_length: int = 500
    description_max_length: int = 100_000
    categories: tuple[str, ...] = ()
    default_limit: int = 20
    max_limit: int = 100
    promote_batch_size: int = 100

    @classmethod
    def from_rules(cls, rules: Rules) -> PostsConfig:
        return cls(
            placeholder_title=rules.posts.placeholder_title,
            title_max_length=rules.posts.title_max_length,
            description_max_length=rules.posts.description_max_length,
            categories=tuple(rules.posts.categories),
            default_limit=rules.pagination.default_limit,
            max_limit=rules.pagination.max_limit,
            promote_batch_size=rules.scheduling.sweep_batch_size,
        )


DEFAULT_POSTS_CONFIG = PostsConfig()

# Fields run_update accepts in UpdatePostInput.updates
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "status",
        "scheduled_for",
        "image_url",
        "layout_variant",
        "grid_class",
    }
)


# --- Input Models ---


@dataclass(frozen=True)
class CreatePostInput:
    """Input for creating a post. image takes precedence over image_url."""

    title: str | None = None
    description: str | None = None
    category: str | None = None
    status: PostStatus = "draft"
    scheduled_for: datetime | str | None = None
    image: ImagePayload | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class GetPostInput:
    post_id: int


@dataclass(frozen=True)
class ListPostsInput:
    """
    Input for a paginated listing.

    mine restricts the listing to the viewer's own posts, at any status.
    """

    search: str = ""
    status: PostStatus | None = None
    category: str | None = None
    tag_slug: str | None = None
    mine: bool = False
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class UpdatePostInput:
    """
    Input for a partial update.

    Only keys present in updates change; an explicit None clears the field.
    A new image file replaces the cover.
    """

    post_id: int
    updates: dict[str, Any] = field(default_factory=dict)
    image: ImagePayload | None = None


@dataclass(frozen=True)
class DeletePostInput:
    post_id: int


# --- Output Models ---


@dataclass(frozen=True)
class PostOutput:
    """
    Output for single-post operations.

    layout_failures and cleanup_failures are side effects that failed after
    the post itself was written.
    """

    post: PostDetail | None = None
    layout_failures: list[BestEffortFailure] = field(default_factory=list)
    cleanup_failures: list[BestEffortFailure] = field(default_factory=list)
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PostListOutput:
    items: list[PostDetail] = field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0
    has_more: bool = False
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeletePostOutput:
    deleted_id: int | None = None
    cleanup_failures: list[BestEffortFailure] = field(default_factory=list)
    errors: list[PostValidationError] = field(default_factory=list)
    success: bool = True
