"""
Tags component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.entities import Tag

# --- Validation Error ---


@dataclass(frozen=True)
class TagValidationError:
    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateTagInput:
    name: str


@dataclass(frozen=True)
class GetPostTagsInput:
    post_id: int


@dataclass(frozen=True)
class SetPostTagsInput:
    """Replace a post's tags wholesale with tag_ids."""

    post_id: int
    tag_ids: list[int]


# --- Output Models ---


@dataclass(frozen=True)
class TagOutput:
    """created is False when a tag with the same slug already existed."""

    tag: Tag | None = None
    created: bool = False
    errors: list[TagValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class TagListOutput:
    items: list[Tag] = field(default_factory=list)
    errors: list[TagValidationError] = field(default_factory=list)
    success: bool = True
