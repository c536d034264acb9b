"""
Assets component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from src.domain.entities import PostImage
from src.domain.errors import BestEffortFailure
from src.rules.models import UploadsRules

# --- Validation Error ---


@dataclass(frozen=True)
class AssetValidationError:
    """Asset validation error with actionable message."""

    code: str
    message: str
    field: str | None = "file"


# --- Config ---


@dataclass(frozen=True)
class AssetsConfig:
    """Upload and conversion settings, built from the uploads rules section."""

    bucket: str = "blog_images"
    max_upload_bytes: int = 10 * 1024 * 1024
    convertible_mime_types: tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png")
    passthrough_mime_types: tuple[str, ...] = ("image/webp", "image/gif")
    target_mime_type: str = "image/webp"
    target_extension: str = "webp"
    quality: int = 85
    avatar_prefix: str = "avatars"

    @classmethod
    def from_rules(cls, uploads: UploadsRules) -> AssetsConfig:
        return cls(
            bucket=uploads.bucket,
            max_upload_bytes=uploads.max_upload_bytes,
            convertible_mime_types=tuple(m.lower() for m in uploads.convertible_mime_types),
            passthrough_mime_types=tuple(m.lower() for m in uploads.passthrough_mime_types),
            target_mime_type=uploads.target_mime_type,
            target_extension=uploads.target_extension,
            quality=uploads.quality,
            avatar_prefix=uploads.avatar_prefix,
        )


DEFAULT_ASSETS_CONFIG = AssetsConfig()


# --- Conversion ---


@dataclass(frozen=True)
class ConversionResult:
    """Bytes to store, and whether they are the converted or the original ones."""

    data: bytes
    converted: bool
    extension: str
    content_type: str


# --- Input Models ---


@dataclass(frozen=True)
class ImagePayload:
    """One uploaded file as received from the client."""

    data: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class UploadImageInput:
    """Input for storing a single image and getting its public URL."""

    payload: ImagePayload


@dataclass(frozen=True)
class AddImagesInput:
    """Input for appending uploaded files to a post's gallery."""

    post_id: int
    files: list[ImagePayload]
    alt_texts: list[str | None] = field(default_factory=list)  # by position in files


@dataclass(frozen=True)
class AddImageRecordInput:
    """Input for attaching an already-uploaded URL to a post's gallery."""

    post_id: int
    image_url: str
    focal_point: str | None = None
    alt_text: str | None = None


@dataclass(frozen=True)
class ReorderImagesInput:
    """Input for reordering a gallery. image_ids lists every image, first = cover."""

    post_id: int
    image_ids: list[int]


@dataclass(frozen=True)
class DeleteImageInput:
    post_id: int
    image_id: int


@dataclass(frozen=True)
class SetFocalPointInput:
    post_id: int
    image_id: int
    focal_point: str | None


@dataclass(frozen=True)
class SetAltTextInput:
    post_id: int
    image_id: int
    alt_text: str | None


@dataclass(frozen=True)
class ListImagesInput:
    post_id: int


@dataclass(frozen=True)
class OrphanSweepInput:
    """Input for the storage orphan sweep."""

    dry_run: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class UploadOutput:
    """Output for a single stored image."""

    url: str | None = None
    object_key: str | None = None
    converted: bool = False
    size_bytes: int = 0
    errors: list[AssetValidationError] = field(default_factory=list)
    success: bool = True


FileStatus = Literal["uploaded", "failed", "skipped"]


@dataclass(frozen=True)
class FileOutcome:
    """Per-file result of a multi-file upload."""

    filename: str
    status: FileStatus
    image: PostImage | None = None
    code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class AddImagesOutput:
    """Output for a multi-file gallery upload."""

    outcomes: list[FileOutcome] = field(default_factory=list)
    images: list[PostImage] = field(default_factory=list)
    cover_url: str | None = None
    errors: list[AssetValidationError] = field(default_factory=list)
    success: bool = True

    def count(self, status: FileStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def uploaded(self) -> int:
        return self.count("uploaded")

    @property
    def failed(self) -> int:
        return self.count("failed")

    @property
    def skipped(self) -> int:
        return self.count("skipped")


@dataclass(frozen=True)
class ImageOutput:
    """Output for a single gallery image operation."""

    image: PostImage | None = None
    cover_url: str | None = None
    errors: list[AssetValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class GalleryOutput:
    """Output for operations returning a post's whole gallery."""

    images: list[PostImage] = field(default_factory=list)
    cover_url: str | None = None
    cleanup_failures: list[BestEffortFailure] = field(default_factory=list)
    errors: list[AssetValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class OrphanSweepOutput:
    """Report of a storage orphan sweep."""

    dry_run: bool = False
    stored: int = 0
    referenced: int = 0
    orphaned: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[AssetValidationError] = field(default_factory=list)
    success: bool = True
