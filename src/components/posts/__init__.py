"""
Posts component - create, read, list, update and delete blog posts.
"""

from .component import run_create, run_delete, run_get, run_list, run_update
from .models import (
    DEFAULT_POSTS_CONFIG,
    UPDATABLE_FIELDS,
    CreatePostInput,
    DeletePostInput,
    DeletePostOutput,
    GetPostInput,
    ListPostsInput,
    PostListOutput,
    PostOutput,
    PostsConfig,
    PostValidationError,
    UpdatePostInput,
)
from .ports import (
    ClockPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostQuery,
    PostRepoPort,
    TagRepoPort,
)

__all__ = [
    # Entry points
    "run_create",
    "run_delete",
    "run_get",
    "run_list",
    "run_update",
    # Input models
    "CreatePostInput",
    "DeletePostInput",
    "GetPostInput",
    "ListPostsInput",
    "UpdatePostInput",
    # Output models
    "DeletePostOutput",
    "PostListOutput",
    "PostOutput",
    "PostValidationError",
    # Config
    "DEFAULT_POSTS_CONFIG",
    "PostsConfig",
    "UPDATABLE_FIELDS",
    # Ports
    "ClockPort",
    "ImageCodecPort",
    "ImageRepoPort",
    "ObjectStorePort",
    "PostQuery",
    "PostRepoPort",
    "TagRepoPort",
]
