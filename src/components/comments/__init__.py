"""
Comments component - reader comments and likes.
"""

from .component import (
    run_add_comment,
    run_delete_comment,
    run_list_comments,
    run_toggle_like,
    sort_comments,
)
from .models import (
    DEFAULT_COMMENTS_CONFIG,
    AddCommentInput,
    CommentListOutput,
    CommentOutput,
    CommentsConfig,
    CommentValidationError,
    DeleteCommentInput,
    DeleteCommentOutput,
    LikeOutput,
    ListCommentsInput,
    ToggleLikeInput,
)
from .ports import ClockPort, CommentRepoPort, PostRepoPort

__all__ = [
    # Entry points
    "run_add_comment",
    "run_delete_comment",
    "run_list_comments",
    "run_toggle_like",
    "sort_comments",
    # Input models
    "AddCommentInput",
    "DeleteCommentInput",
    "ListCommentsInput",
    "ToggleLikeInput",
    # Output models
    "CommentListOutput",
    "CommentOutput",
    "CommentValidationError",
    "DeleteCommentOutput",
    "LikeOutput",
    # Config
    "CommentsConfig",
    "DEFAULT_COMMENTS_CONFIG",
    # Ports
    "ClockPort",
    "CommentRepoPort",
    "PostRepoPort",
]
