"""
Tag API Routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from src.api.deps import (
    get_clock,
    get_current_identity,
    get_policy,
    get_post_repo,
    get_tag_repo,
    get_viewer,
)
from src.api.errors import raise_for_errors
from src.api.schemas import PostTagsRequest, TagCreateRequest
from src.components.tags import (
    CreateTagInput,
    GetPostTagsInput,
    SetPostTagsInput,
    run_create_tag,
    run_get_post_tags,
    run_list_tags,
    run_set_post_tags,
)
from src.core.ports import ClockPort, PostRepoPort, TagRepoPort
from src.domain.entities import Identity, Tag
from src.domain.policy import PolicyEngine

router = APIRouter()


@router.get("/tags", response_model=list[Tag])
async def list_tags(tags: TagRepoPort = Depends(get_tag_repo)) -> list[Tag]:
    result = await run_list_tags(tags=tags)
    return result.items


@router.post("/tags", response_model=Tag)
async def create_tag(
    req: TagCreateRequest,
    response: Response,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    tags: TagRepoPort = Depends(get_tag_repo),
    clock: ClockPort = Depends(get_clock),
) -> Tag:
    """Create a tag; an existing tag with the same slug is returned as-is (200)."""
    result = await run_create_tag(
        CreateTagInput(name=req.name), actor=actor, policy=policy, tags=tags, clock=clock
    )
    raise_for_errors(result.errors)
    response.status_code = 201 if result.created else 200
    return result.tag  # type: ignore[return-value]


@router.get("/posts/{post_id}/tags", response_model=list[Tag])
async def get_post_tags(
    post_id: int,
    viewer: Identity | None = Depends(get_viewer),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    clock: ClockPort = Depends(get_clock),
) -> list[Tag]:
    result = await run_get_post_tags(
        GetPostTagsInput(post_id=post_id),
        viewer=viewer,
        policy=policy,
        posts=posts,
        tags=tags,
        clock=clock,
    )
    raise_for_errors(result.errors)
    return result.items


@router.put("/posts/{post_id}/tags", response_model=list[Tag])
async def set_post_tags(
    post_id: int,
    req: PostTagsRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
) -> list[Tag]:
    """Replace the post's tags with exactly the given ids."""
    result = await run_set_post_tags(
        SetPostTagsInput(post_id=post_id, tag_ids=req.tag_ids),
        actor=actor,
        policy=policy,
        posts=posts,
        tags=tags,
    )
    raise_for_errors(result.errors)
    return result.items
