from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from src.domain.entities import (
    CommentSort,
    CommentView,
    LayoutVariant,
    PostDetail,
    PostImage,
    PostStatus,
)
from src.domain.errors import BestEffortFailure


# --- Shared ---
class WarningModel(BaseModel):
    """A side effect that failed after the main change was saved."""

    operation: str
    target: str
    detail: str

    @classmethod
    def from_failure(cls, failure: BestEffortFailure) -> "WarningModel":
        return cls(operation=failure.operation, target=failure.target, detail=failure.detail)


def warnings_from(failures: list[BestEffortFailure]) -> list[WarningModel]:
    return [WarningModel.from_failure(f) for f in failures]


# --- Posts ---
class PostUpdateRequest(BaseModel):
    """Partial update: only fields present in the body change; null clears."""

    title: str | None = None
    description: str | None = None
    category: str | None = None
    status: PostStatus | None = None
    scheduled_for: datetime | None = None
    image_url: str | None = None
    layout_variant: LayoutVariant | None = None
    grid_class: str | None = None


class PostWriteResponse(BaseModel):
    post: PostDetail
    warnings: list[WarningModel] = []


class PostListResponse(BaseModel):
    items: list[PostDetail]
    total: int
    limit: int
    offset: int
    has_more: bool


class PostDeleteResponse(BaseModel):
    deleted_id: int
    warnings: list[WarningModel] = []


# --- Images ---
class UploadResponse(BaseModel):
    url: str
    object_key: str
    converted: bool
    size_bytes: int


class ImageRecordRequest(BaseModel):
    image_url: str = Field(..., min_length=1)
    focal_point: str | None = None
    alt_text: str | None = None


class ImageUpdateRequest(BaseModel):
    focal_point: str | None = None
    alt_text: str | None = None


class ReorderRequest(BaseModel):
    image_ids: list[int] = Field(..., description="Every image of the post, first becomes cover")


class FileOutcomeModel(BaseModel):
    filename: str
    status: Literal["uploaded", "failed", "skipped"]
    image: PostImage | None = None
    code: str | None = None
    message: str | None = None


class AddImagesResponse(BaseModel):
    outcomes: list[FileOutcomeModel]
    images: list[PostImage]
    cover_url: str | None
    uploaded: int
    failed: int
    skipped: int


class ImageResponse(BaseModel):
    image: PostImage
    cover_url: str | None


class GalleryResponse(BaseModel):
    images: list[PostImage]
    cover_url: str | None
    warnings: list[WarningModel] = []


# --- Tags ---
class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class PostTagsRequest(BaseModel):
    tag_ids: list[int]


# --- Comments ---
class CommentCreateRequest(BaseModel):
    content: str


class CommentListResponse(BaseModel):
    items: list[CommentView]
    sort: CommentSort


class LikeResponse(BaseModel):
    comment_id: int
    liked: bool
    like_count: int


# --- Admin ---
class ReassignResponse(BaseModel):
    total: int
    updated: int
    bulk: bool
    distribution: dict[str, str]
    warnings: list[WarningModel] = []


class SweepResponse(BaseModel):
    ran_at: datetime | None
    promoted: list[int]
    skipped: list[int]
    warnings: list[WarningModel] = []


class CleanupResponse(BaseModel):
    dry_run: bool
    stored: int
    referenced: int
    orphaned: list[str]
    deleted: list[str]
