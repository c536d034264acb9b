"""
Comments component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.entities import CommentSort, CommentView
from src.rules.models import CommentsRules

# --- Validation Error ---


@dataclass(frozen=True)
class CommentValidationError:
    code: str
    message: str
    field: str | None = None


# --- Config ---


@dataclass(frozen=True)
class CommentsConfig:
    max_length: int = 5000
    default_sort: CommentSort = "likes"

    @classmethod
    def from_rules(cls, rules: CommentsRules) -> CommentsConfig:
        return cls(max_length=rules.max_length, default_sort=rules.default_sort)


DEFAULT_COMMENTS_CONFIG = CommentsConfig()


# --- Input Models ---


@dataclass(frozen=True)
class ListCommentsInput:
    post_id: int
    sort: CommentSort | None = None


@dataclass(frozen=True)
class AddCommentInput:
    post_id: int
    content: str


@dataclass(frozen=True)
class DeleteCommentInput:
    comment_id: int


@dataclass(frozen=True)
class ToggleLikeInput:
    comment_id: int


# --- Output Models ---


@dataclass(frozen=True)
class CommentListOutput:
    items: list[CommentView] = field(default_factory=list)
    sort: CommentSort = "likes"
    errors: list[CommentValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class CommentOutput:
    comment: CommentView | None = None
    errors: list[CommentValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeleteCommentOutput:
    deleted_id: int | None = None
    errors: list[CommentValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class LikeOutput:
    """State after a toggle: liked is the viewer's new state."""

    comment_id: int | None = None
    liked: bool = False
    like_count: int = 0
    errors: list[CommentValidationError] = field(default_factory=list)
    success: bool = True
