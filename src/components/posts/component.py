"""
Posts component - the content repository facade.

Every read passes through lazy promotion: a scheduled post whose time has
come is published (and persisted, conditionally) before it is returned, so
readers never see a stale "scheduled" post whether or not the sweep has run.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from src.components.assets import (
    DEFAULT_ASSETS_CONFIG,
    AssetsConfig,
    delete_objects_best_effort,
    derive_cover,
    release_objects_best_effort,
    store_image,
)
from src.components.layout import reassign_all_layouts
from src.components.scheduler import load_visible_post, promote_on_read
from src.domain.entities import POST_STATUSES, Identity, Post, PostDetail
from src.domain.errors import (
    AuthorizationError,
    BestEffortFailure,
    BlogError,
    NotFoundError,
    UpstreamStoreError,
    ValidationError,
)
from src.domain.layout import GRID_HINTS, assign_layout
from src.domain.policy import PolicyEngine
from src.domain.state import promote, resolve_status_change

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

logger = logging.getLogger(__name__)

SEARCH_MAX_LENGTH = 200


def _error(exc: BlogError) -> PostValidationError:
    return PostValidationError(code=exc.code, message=exc.message, field=exc.field)


# --- Helpers ---


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _validate_fields(
    *,
    title: str | None,
    description: str | None,
    category: str | None,
    config: PostsConfig,
) -> None:
    if title is not None and len(title.strip()) > config.title_max_length:
        raise ValidationError(
            f"Title must be at most {config.title_max_length} characters", field="title"
        )
    if description is not None and len(description) > config.description_max_length:
        raise ValidationError(
            f"Description must be at most {config.description_max_length} characters",
            field="description",
        )
    if category and config.categories and category not in config.categories:
        raise ValidationError(f"Unknown category '{category}'", field="category")


async def _promote_all_due(now: datetime, posts: PostRepoPort, batch_size: int) -> int:
    """Persist promotion of every due post before a listing filters on status."""
    promoted = 0
    while True:
        due = await posts.list_due(now, batch_size)
        for post in due:
            if promote(post, now) is post:
                continue
            if await posts.promote_if_scheduled(post.id, now):
                promoted += 1
        if len(due) < batch_size:
            break
    if promoted:
        logger.info("Promoted %d scheduled post(s) on list", promoted)
    return promoted


async def _enrich(post: Post, images: ImageRepoPort, tags: TagRepoPort) -> PostDetail:
    return PostDetail.model_validate(
        {
            **post.model_dump(),
            "images": await images.list_for_post(post.id),
            "tags": await tags.list_for_post(post.id),
        }
    )


async def _load_for(
    post_id: int,
    action: str,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
) -> Post:
    post = await posts.get_by_id(post_id)
    if post is None:
        raise NotFoundError("Post", field="post_id")
    policy.require(actor, action, post)
    return post


# --- Entry points ---


async def run_create(
    inp: CreatePostInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    tags: TagRepoPort,
    store: ObjectStorePort,
    codec: ImageCodecPort,
    clock: ClockPort,
    config: PostsConfig = DEFAULT_POSTS_CONFIG,
    assets_config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> PostOutput:
    """
    Create a post.

    The title and timestamps come from the publication state machine. An
    image file is stored through the asset manager and becomes the cover;
    otherwise image_url is kept as a legacy cover. The new post gets an
    initial layout, then every layout is recomputed; a failed recompute is
    reported in layout_failures and does not undo the insert.

    Returns:
        PostOutput with the enriched post.
    """
    now = clock.now_utc()
    try:
        policy.require(actor, "post:create")
        author_id: str = actor.user_id  # type: ignore[union-attr]
        category = _clean(inp.category)
        _validate_fields(
            title=inp.title, description=inp.description, category=category, config=config
        )
        resolution = resolve_status_change(
            None,
            inp.status,
            now=now,
            title=inp.title,
            scheduled_for=inp.scheduled_for,
            placeholder=config.placeholder_title,
        )
        cover_url = _clean(inp.image_url)
        if inp.image is not None:
            stored = await store_image(
                inp.image, store=store, codec=codec, clock=clock, config=assets_config
            )
            cover_url = stored.url
    except BlogError as e:
        return PostOutput(errors=[_error(e)], success=False)

    count = await posts.count()
    initial = assign_layout(count, count + 1)

    try:
        created = await posts.insert(
            Post(
                title=resolution.title,
                description=inp.description,
                category=category,
                image_url=cover_url,
                status=resolution.status,
                scheduled_for=resolution.scheduled_for,
                published_at=resolution.published_at,
                author_id=author_id,
                layout_variant=initial.variant,
                grid_class=initial.grid_class,
                created_at=now,
            )
        )
    except UpstreamStoreError:
        if inp.image is not None:
            await delete_objects_best_effort([cover_url], store=store, config=assets_config)
        raise

    logger.info("Created post %s (%s) by %s", created.id, created.status, author_id)

    layout_failures: list[BestEffortFailure] = []
    try:
        reassigned = await reassign_all_layouts(posts)
        layout_failures = list(reassigned.failures)
    except UpstreamStoreError as e:
        logger.warning("Layout recompute after creating post %s failed: %s", created.id, e)
        layout_failures = [BestEffortFailure("reassign_layouts", "all", str(e))]

    current = await posts.get_by_id(created.id) or created
    return PostOutput(
        post=await _enrich(current, images, tags),
        layout_failures=layout_failures,
        errors=[],
        success=True,
    )


async def run_get(
    inp: GetPostInput,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    tags: TagRepoPort,
    clock: ClockPort,
) -> PostOutput:
    """
    Fetch one post with its gallery and tags.

    Drafts and scheduled posts exist only for their author and admins;
    anyone else gets not_found.
    """
    try:
        post = await load_visible_post(
            inp.post_id, viewer=viewer, policy=policy, posts=posts, clock=clock
        )
    except BlogError as e:
        return PostOutput(errors=[_error(e)], success=False)

    return PostOutput(post=await _enrich(post, images, tags), errors=[], success=True)


async def run_list(
    inp: ListPostsInput,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    tags: TagRepoPort,
    clock: ClockPort,
    config: PostsConfig = DEFAULT_POSTS_CONFIG,
) -> PostListOutput:
    """
    List posts newest first, with search, filters and pagination.

    limit is clamped to 1..max_limit and offset to >= 0. The public sees
    published posts only; asking for drafts or scheduled posts narrows the
    listing to the viewer's own unless the viewer is an admin.
    """
    requested = inp.limit if inp.limit is not None else config.default_limit
    limit = max(1, min(requested, config.max_limit))
    offset = max(0, inp.offset)

    author_id: str | None = None
    statuses = (inp.status,) if inp.status else None
    try:
        if len(inp.search) > SEARCH_MAX_LENGTH:
            raise ValidationError(
                f"Search must be at most {SEARCH_MAX_LENGTH} characters", field="search"
            )
        if inp.mine:
            if viewer is None:
                raise AuthorizationError("Sign in to list your own posts")
            author_id = viewer.user_id
        elif viewer is None or not viewer.is_admin:
            if inp.status in (None, "published"):
                statuses = ("published",)
            elif viewer is None:
                raise AuthorizationError("Sign in to list unpublished posts")
            else:
                author_id = viewer.user_id
    except BlogError as e:
        return PostListOutput(limit=limit, offset=offset, errors=[_error(e)], success=False)

    now = clock.now_utc()
    await _promote_all_due(now, posts, config.promote_batch_size)

    rows, total = await posts.list(
        PostQuery(
            search=inp.search,
            statuses=statuses,
            category=_clean(inp.category),
            tag_slug=_clean(inp.tag_slug),
            author_id=author_id,
            limit=limit,
            offset=offset,
        )
    )
    items = [await _enrich(promote(row, now), images, tags) for row in rows]

    return PostListOutput(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
        errors=[],
        success=True,
    )


async def run_update(
    inp: UpdatePostInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    tags: TagRepoPort,
    store: ObjectStorePort,
    codec: ImageCodecPort,
    clock: ClockPort,
    config: PostsConfig = DEFAULT_POSTS_CONFIG,
    assets_config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> PostOutput:
    """
    Apply a partial update. Author or admin only.

    Status changes go through the state machine, so republishing keeps the
    original published_at. A new cover (file or explicit image_url) is kept
    as a legacy cover even when the post has a gallery; clearing it hands the
    cover back to the gallery. The old cover's stored object is then deleted
    best-effort unless something still references it. Layouts are not
    recomputed; an explicit layout override is written as given.
    """
    now = clock.now_utc()
    updates = dict(inp.updates)
    replaces_cover = inp.image is not None or "image_url" in updates
    uploaded_url: str | None = None

    try:
        unknown = sorted(set(updates) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", field=unknown[0])

        loaded = await _load_for(inp.post_id, "post:edit", actor=actor, policy=policy, posts=posts)
        post = await promote_on_read(loaded, now, posts)
        if post is None:
            raise NotFoundError("Post", field="post_id")

        changes: dict[str, Any] = {}
        if "description" in updates:
            changes["description"] = updates["description"]
        if "category" in updates:
            changes["category"] = _clean(updates["category"])
        requested_status = updates.get("status") or post.status
        if requested_status not in POST_STATUSES:
            raise ValidationError(f"Unknown status '{requested_status}'", field="status")
        _validate_fields(
            title=updates.get("title"),
            description=changes.get("description"),
            category=changes.get("category"),
            config=config,
        )

        resolution = resolve_status_change(
            post,
            requested_status,
            now=now,
            title=updates["title"] if "title" in updates else post.title,
            scheduled_for=(
                updates["scheduled_for"] if "scheduled_for" in updates else post.scheduled_for
            ),
            placeholder=config.placeholder_title,
        )
        changes.update(
            title=resolution.title,
            status=resolution.status,
            scheduled_for=resolution.scheduled_for,
            published_at=resolution.published_at,
        )

        if "layout_variant" in updates:
            variant = updates["layout_variant"]
            if variant not in GRID_HINTS:
                raise ValidationError(f"Unknown layout variant '{variant}'", field="layout_variant")
            changes["layout_variant"] = variant
            changes["grid_class"] = GRID_HINTS[variant]
        if updates.get("grid_class"):
            changes["grid_class"] = str(updates["grid_class"])

        if inp.image is not None:
            stored = await store_image(
                inp.image, store=store, codec=codec, clock=clock, config=assets_config
            )
            uploaded_url = stored.url
            changes["image_url"] = uploaded_url
        elif "image_url" in updates:
            # Clearing a legacy cover hands the cover back to the gallery
            changes["image_url"] = _clean(updates["image_url"]) or derive_cover(
                await images.list_for_post(post.id), None
            )
    except BlogError as e:
        return PostOutput(errors=[_error(e)], success=False)

    try:
        updated = await posts.update(post.model_copy(update=changes))
    except UpstreamStoreError:
        if uploaded_url is not None:
            await delete_objects_best_effort([uploaded_url], store=store, config=assets_config)
        raise

    cleanup_failures: list[BestEffortFailure] = []
    if replaces_cover and post.image_url and post.image_url != updated.image_url:
        cleanup_failures = await release_objects_best_effort(
            [post.image_url], posts=posts, images=images, store=store, config=assets_config
        )

    logger.info("Updated post %s (%s)", updated.id, ", ".join(sorted(updates)) or "cover")
    return PostOutput(
        post=await _enrich(updated, images, tags),
        cleanup_failures=cleanup_failures,
        errors=[],
        success=True,
    )


async def run_delete(
    inp: DeletePostInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    store: ObjectStorePort,
    assets_config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> DeletePostOutput:
    """
    Delete a post and, afterwards, its stored images. Author or admin only.

    Gallery rows, tag links and comments cascade with the post. Objects
    another post still references are kept. Remaining posts keep their
    layouts until the next recompute.
    """
    try:
        post = await _load_for(
            inp.post_id, "post:delete", actor=actor, policy=policy, posts=posts
        )
    except BlogError as e:
        return DeletePostOutput(errors=[_error(e)], success=False)

    urls = [image.image_url for image in await images.list_for_post(post.id)]
    urls.append(post.image_url)

    await posts.delete(post.id)
    logger.info("Deleted post %s", post.id)

    failures = await release_objects_best_effort(
        urls, posts=posts, images=images, store=store, config=assets_config
    )
    return DeletePostOutput(
        deleted_id=post.id, cleanup_failures=failures, errors=[], success=True
    )
