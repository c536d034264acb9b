"""
Tags component - tag catalogue and post tagging.
"""

from __future__ import annotations

import logging
import re

from src.components.scheduler import load_visible_post
from src.domain.entities import Identity, Tag
from src.domain.errors import BlogError, NotFoundError, ValidationError
from src.domain.policy import PolicyEngine

from .models import (
    CreateTagInput,
    GetPostTagsInput,
    SetPostTagsInput,
    TagListOutput,
    TagOutput,
    TagValidationError,
)
from .ports import ClockPort, PostRepoPort, TagRepoPort

logger = logging.getLogger(__name__)

TAG_NAME_MAX_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_DASHES = re.compile(r"-{2,}")


def _error(exc: BlogError) -> TagValidationError:
    return TagValidationError(code=exc.code, message=exc.message, field=exc.field)


def slugify(name: str) -> str:
    """Lowercase, whitespace runs to '-', anything outside [a-z0-9-] dropped."""
    slug = _WHITESPACE.sub("-", name.strip().lower())
    slug = _NON_SLUG.sub("", slug)
    return _DASHES.sub("-", slug).strip("-")


async def run_list_tags(*, tags: TagRepoPort) -> TagListOutput:
    return TagListOutput(items=await tags.list_all(), errors=[], success=True)


async def run_create_tag(
    inp: CreateTagInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    tags: TagRepoPort,
    clock: ClockPort,
) -> TagOutput:
    """
    Create a tag, or return the existing one with the same slug.

    Returns:
        TagOutput with created=True only when a row was inserted.
    """
    try:
        policy.require(actor, "tag:create")
        name = " ".join(inp.name.split())
        if not name:
            raise ValidationError("Tag name is required", field="name")
        if len(name) > TAG_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters", field="name"
            )
        slug = slugify(name)
        if not slug:
            raise ValidationError("Tag name must contain letters or digits", field="name")
    except BlogError as e:
        return TagOutput(errors=[_error(e)], success=False)

    existing = await tags.get_by_slug(slug)
    if existing is not None:
        return TagOutput(tag=existing, created=False, errors=[], success=True)

    tag = await tags.insert(Tag(name=name, slug=slug, created_at=clock.now_utc()))
    logger.info("Created tag %s (%s)", tag.slug, tag.id)
    return TagOutput(tag=tag, created=True, errors=[], success=True)


async def run_get_post_tags(
    inp: GetPostTagsInput,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    tags: TagRepoPort,
    clock: ClockPort,
) -> TagListOutput:
    try:
        post = await load_visible_post(
            inp.post_id, viewer=viewer, policy=policy, posts=posts, clock=clock
        )
    except BlogError as e:
        return TagListOutput(errors=[_error(e)], success=False)
    return TagListOutput(items=await tags.list_for_post(post.id), errors=[], success=True)


async def run_set_post_tags(
    inp: SetPostTagsInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    tags: TagRepoPort,
) -> TagListOutput:
    """
    Replace a post's tags. Author or admin only.

    Every id is checked before anything is removed, so an unknown id leaves
    the existing tags untouched.
    """
    try:
        post = await posts.get_by_id(inp.post_id)
        if post is None:
            raise NotFoundError("Post", field="post_id")
        policy.require(actor, "post:tags", post)

        wanted = list(dict.fromkeys(inp.tag_ids))
        found = await tags.get_many(wanted)
        missing = sorted(set(wanted) - {t.id for t in found})
        if missing:
            raise ValidationError(
                f"Unknown tag id(s): {', '.join(str(m) for m in missing)}", field="tag_ids"
            )
    except BlogError as e:
        return TagListOutput(errors=[_error(e)], success=False)

    await tags.delete_post_tags(post.id)
    await tags.insert_post_tags(post.id, wanted)
    return TagListOutput(items=await tags.list_for_post(post.id), errors=[], success=True)
