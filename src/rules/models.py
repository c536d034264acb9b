from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class PostsRules(BaseModel):
    placeholder_title: str = "Untitled Draft"
    title_max_length: int = 500
    description_max_length: int = 100_000
    categories: list[str] = Field(default_factory=list)


class UploadsRules(BaseModel):
    max_upload_bytes: int
    convertible_mime_types: list[str]
    passthrough_mime_types: list[str]
    target_mime_type: str = "image/webp"
    target_extension: str = "webp"
    quality: int = Field(default=85, ge=1, le=100)
    bucket: str
    avatar_prefix: str = "avatars"


class SchedulingRules(BaseModel):
    sweep_interval_seconds: float = 60.0
    sweep_batch_size: int = 100


class PaginationRules(BaseModel):
    default_limit: int = 20
    max_limit: int = 100


class CommentsRules(BaseModel):
    max_length: int = 5000
    default_sort: Literal["likes", "newest", "oldest"] = "likes"


class RbacRules(BaseModel):
    roles: dict[str, list[str]]
    authenticated_permissions: list[str] = Field(default_factory=list)
    owner_permissions: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    posts: PostsRules
    uploads: UploadsRules
    scheduling: SchedulingRules
    pagination: PaginationRules
    comments: CommentsRules
    rbac: RbacRules
