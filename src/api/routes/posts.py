"""
Post API Routes.

Public reads (published posts, plus the caller's own drafts and schedules)
and author/admin writes. Creation is multipart so a cover file can ride
along; field updates are JSON, and a new cover file goes through PUT /cover.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from src.api.deps import (
    get_assets_config,
    get_clock,
    get_codec,
    get_current_identity,
    get_image_repo,
    get_object_store,
    get_policy,
    get_post_repo,
    get_posts_config,
    get_tag_repo,
    get_viewer,
)
from src.api.errors import raise_for_errors
from src.api.routes._uploads import to_payload
from src.api.schemas import (
    PostDeleteResponse,
    PostListResponse,
    PostUpdateRequest,
    PostWriteResponse,
    warnings_from,
)
from src.components.assets import AssetsConfig
from src.components.posts import (
    CreatePostInput,
    DeletePostInput,
    GetPostInput,
    ListPostsInput,
    PostsConfig,
    UpdatePostInput,
    run_create,
    run_delete,
    run_get,
    run_list,
    run_update,
)
from src.core.ports import (
    ClockPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostRepoPort,
    TagRepoPort,
)
from src.domain.entities import Identity, PostDetail, PostStatus
from src.domain.policy import PolicyEngine

router = APIRouter()


@router.get("", response_model=PostListResponse)
async def list_posts(
    search: str = Query("", max_length=200),
    status: PostStatus | None = None,
    category: str | None = None,
    tag: str | None = Query(None, description="Tag slug"),
    mine: bool = False,
    limit: int | None = None,
    offset: int = 0,
    viewer: Identity | None = Depends(get_viewer),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    clock: ClockPort = Depends(get_clock),
    config: PostsConfig = Depends(get_posts_config),
) -> PostListResponse:
    """List posts newest first. limit is clamped to the configured maximum."""
    result = await run_list(
        ListPostsInput(
            search=search,
            status=status,
            category=category,
            tag_slug=tag,
            mine=mine,
            limit=limit,
            offset=offset,
        ),
        viewer=viewer,
        policy=policy,
        posts=posts,
        images=images,
        tags=tags,
        clock=clock,
        config=config,
    )
    raise_for_errors(result.errors)
    return PostListResponse(
        items=result.items,
        total=result.total,
        limit=result.limit,
        offset=result.offset,
        has_more=result.has_more,
    )


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    viewer: Identity | None = Depends(get_viewer),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    clock: ClockPort = Depends(get_clock),
) -> PostDetail:
    result = await run_get(
        GetPostInput(post_id=post_id),
        viewer=viewer,
        policy=policy,
        posts=posts,
        images=images,
        tags=tags,
        clock=clock,
    )
    raise_for_errors(result.errors)
    if result.post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return result.post


@router.post("", response_model=PostWriteResponse, status_code=201)
async def create_post(
    title: str | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    status: PostStatus = Form("draft"),
    scheduled_for: str | None = Form(None),
    image_url: str | None = Form(None),
    image: UploadFile | None = File(None),
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    store: ObjectStorePort = Depends(get_object_store),
    codec: ImageCodecPort = Depends(get_codec),
    clock: ClockPort = Depends(get_clock),
    config: PostsConfig = Depends(get_posts_config),
    assets_config: AssetsConfig = Depends(get_assets_config),
) -> PostWriteResponse:
    """Create a post, optionally with a cover image file."""
    result = await run_create(
        CreatePostInput(
            title=title,
            description=description,
            category=category,
            status=status,
            scheduled_for=scheduled_for,
            image=await to_payload(image) if image is not None else None,
            image_url=image_url,
        ),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        tags=tags,
        store=store,
        codec=codec,
        clock=clock,
        config=config,
        assets_config=assets_config,
    )
    raise_for_errors(result.errors)
    return PostWriteResponse(
        post=result.post,  # type: ignore[arg-type]
        warnings=warnings_from(result.layout_failures),
    )


@router.patch("/{post_id}", response_model=PostWriteResponse)
async def update_post(
    post_id: int,
    req: PostUpdateRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    store: ObjectStorePort = Depends(get_object_store),
    codec: ImageCodecPort = Depends(get_codec),
    clock: ClockPort = Depends(get_clock),
    config: PostsConfig = Depends(get_posts_config),
    assets_config: AssetsConfig = Depends(get_assets_config),
) -> PostWriteResponse:
    """Update the fields present in the body."""
    result = await run_update(
        UpdatePostInput(post_id=post_id, updates=req.model_dump(include=req.model_fields_set)),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        tags=tags,
        store=store,
        codec=codec,
        clock=clock,
        config=config,
        assets_config=assets_config,
    )
    raise_for_errors(result.errors)
    return PostWriteResponse(
        post=result.post,  # type: ignore[arg-type]
        warnings=warnings_from(result.cleanup_failures),
    )


@router.put("/{post_id}/cover", response_model=PostWriteResponse)
async def replace_cover(
    post_id: int,
    image: UploadFile = File(...),
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    tags: TagRepoPort = Depends(get_tag_repo),
    store: ObjectStorePort = Depends(get_object_store),
    codec: ImageCodecPort = Depends(get_codec),
    clock: ClockPort = Depends(get_clock),
    config: PostsConfig = Depends(get_posts_config),
    assets_config: AssetsConfig = Depends(get_assets_config),
) -> PostWriteResponse:
    """Replace the cover of a post without gallery images."""
    result = await run_update(
        UpdatePostInput(post_id=post_id, image=await to_payload(image)),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        tags=tags,
        store=store,
        codec=codec,
        clock=clock,
        config=config,
        assets_config=assets_config,
    )
    raise_for_errors(result.errors)
    return PostWriteResponse(
        post=result.post,  # type: ignore[arg-type]
        warnings=warnings_from(result.cleanup_failures),
    )


@router.delete("/{post_id}", response_model=PostDeleteResponse)
async def delete_post(
    post_id: int,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    store: ObjectStorePort = Depends(get_object_store),
    assets_config: AssetsConfig = Depends(get_assets_config),
) -> PostDeleteResponse:
    result = await run_delete(
        DeletePostInput(post_id=post_id),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        store=store,
        assets_config=assets_config,
    )
    raise_for_errors(result.errors)
    return PostDeleteResponse(
        deleted_id=result.deleted_id or post_id,
        warnings=warnings_from(result.cleanup_failures),
    )
