from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

# --- Enums / Literals ---
PostStatus = Literal["draft", "scheduled", "published"]
LayoutVariant = Literal["hover", "split-horizontal", "split-vertical"]
RoleType = Literal["admin", "author", "reader"]
CommentSort = Literal["likes", "newest", "oldest"]

POST_STATUSES: tuple[PostStatus, ...] = ("draft", "scheduled", "published")


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Identity ---

class Identity(BaseModel):
    """Caller identity, resolved once per request by the identity provider."""

    user_id: str
    email: str | None = None
    role: RoleType | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Profile(BaseModel):
    id: str
    username: str | None = None
    avatar_url: str | None = None
    role: RoleType | None = None

# --- Posts ---

class Post(BaseModel):
    id: int = 0  # Assigned by the store on insert
    title: str
    description: str | None = None
    category: str | None = None
    image_url: str | None = None  # Cover: derived from gallery or a legacy direct URL
    status: PostStatus = "draft"

    scheduled_for: datetime | None = None
    published_at: datetime | None = None

    author_id: str
    layout_variant: LayoutVariant = "hover"
    grid_class: str = "md:col-span-1 row-span-1"

    created_at: datetime = Field(default_factory=utc_now)


class PostImage(BaseModel):
    id: int = 0
    post_id: int
    image_url: str
    sort_order: int = 0
    focal_point: str | None = None  # CSS object-position, e.g. "50% 30%"
    alt_text: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

# --- Tags ---

class Tag(BaseModel):
    id: int = 0
    name: str
    slug: str
    created_at: datetime = Field(default_factory=utc_now)


class PostTag(BaseModel):
    post_id: int
    tag_id: int


class PostDetail(Post):
    """Post enriched with its owned collections for read responses."""

    images: list[PostImage] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)

# --- Comments ---

class Comment(BaseModel):
    id: int = 0
    post_id: int
    user_id: str
    content: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CommentLike(BaseModel):
    id: int = 0
    comment_id: int
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)


class CommentView(Comment):
    like_count: int = 0
    user_has_liked: bool = False
