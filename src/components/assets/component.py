"""
Assets component - image upload, gallery management and storage cleanup.

Stored objects and their database references are kept consistent
best-effort: the database mutation is the primary effect, storage deletion
follows and its failures are logged and reported, never rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from src.components.scheduler import load_visible_post
from src.domain.entities import Identity, Post, PostImage
from src.domain.errors import (
    BestEffortFailure,
    BlogError,
    NotFoundError,
    UpstreamStoreError,
    ValidationError,
)
from src.domain.policy import PolicyEngine

from ._impl import (
    convert_image,
    dense_orders,
    derive_cover,
    generate_object_name,
    is_image,
    normalize_alt_text,
    object_key_from_url,
    validate_focal_point,
    validate_upload_size,
)
from .models import (
    DEFAULT_ASSETS_CONFIG,
    AddImageRecordInput,
    AddImagesInput,
    AddImagesOutput,
    AssetsConfig,
    AssetValidationError,
    DeleteImageInput,
    FileOutcome,
    GalleryOutput,
    ImageOutput,
    ImagePayload,
    ListImagesInput,
    OrphanSweepInput,
    OrphanSweepOutput,
    ReorderImagesInput,
    SetAltTextInput,
    SetFocalPointInput,
    UploadImageInput,
    UploadOutput,
)
from .ports import (
    ClockPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostRepoPort,
    ProfileRepoPort,
)

logger = logging.getLogger(__name__)


def _error(exc: BlogError) -> AssetValidationError:
    return AssetValidationError(code=exc.code, message=exc.message, field=exc.field)


async def _load_post_for_edit(
    post_id: int,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
) -> Post:
    post = await posts.get_by_id(post_id)
    if post is None:
        raise NotFoundError("Post", field="post_id")
    policy.require(actor, "post:images", post)
    return post


async def _load_image(image_id: int, post_id: int, images: ImageRepoPort) -> PostImage:
    image = await images.get(image_id)
    if image is None or image.post_id != post_id:
        raise NotFoundError("Image", field="image_id")
    return image


async def _sync_cover(
    post_id: int,
    gallery: Sequence[PostImage],
    posts: PostRepoPort,
    *,
    removed_urls: Iterable[str] = (),
) -> str | None:
    """Persist the derived cover if it changed and return it."""
    current = await posts.get_by_id(post_id)
    if current is None:
        return None
    cover = derive_cover(gallery, current.image_url, removed_urls=removed_urls)
    if cover != current.image_url:
        await posts.set_cover(post_id, cover)
    return cover


# --- Storage ---


async def store_image(
    payload: ImagePayload,
    *,
    store: ObjectStorePort,
    codec: ImageCodecPort,
    clock: ClockPort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
    prefix: str = "",
) -> UploadOutput:
    """
    Validate, convert and store one file; raises on rejection.

    Raises:
        PayloadTooLargeError: before any conversion or storage write.
        ValidationError: for non-image content.
        UpstreamStoreError: when the object store write fails.
    """
    validate_upload_size(len(payload.data), config.max_upload_bytes)
    if not is_image(payload.content_type):
        raise ValidationError(
            f"Unsupported content type {payload.content_type}", field="file"
        )

    result = convert_image(
        payload.data, payload.content_type, codec, config, filename=payload.filename
    )
    name = generate_object_name(payload.filename, result.extension, clock.now_utc())
    key = f"{prefix.strip('/')}/{name}" if prefix else name

    url = await store.upload(key, result.data, result.content_type)
    return UploadOutput(
        url=url,
        object_key=key,
        converted=result.converted,
        size_bytes=len(result.data),
        errors=[],
        success=True,
    )


async def run_upload(
    inp: UploadImageInput,
    *,
    store: ObjectStorePort,
    codec: ImageCodecPort,
    clock: ClockPort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> UploadOutput:
    """
    Store one image and return its public URL.

    Args:
        inp: Input containing the file payload.
        store: Object store port.
        codec: Image codec port.
        clock: Clock port, used for the object name.
        config: Upload settings.

    Returns:
        UploadOutput with the URL, or the rejection.
    """
    try:
        return await store_image(inp.payload, store=store, codec=codec, clock=clock, config=config)
    except BlogError as e:
        return UploadOutput(errors=[_error(e)], success=False)


async def delete_objects_best_effort(
    urls: Iterable[str | None],
    *,
    store: ObjectStorePort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> list[BestEffortFailure]:
    """
    Remove the stored objects behind managed URLs after a primary mutation.

    Foreign URLs are ignored. One attempt is made; a failure is logged and
    returned, and the caller's mutation stands.
    """
    keys = sorted({k for k in (object_key_from_url(u, config.bucket) for u in urls) if k})
    if not keys:
        return []
    try:
        await store.delete(keys)
    except UpstreamStoreError as e:
        logger.warning("Storage cleanup failed for %s: %s", ", ".join(keys), e)
        return [BestEffortFailure("delete_objects", key, str(e)) for key in keys]
    return []


async def release_objects_best_effort(
    urls: Iterable[str | None],
    *,
    posts: PostRepoPort,
    images: ImageRepoPort,
    store: ObjectStorePort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> list[BestEffortFailure]:
    """
    Delete the objects behind urls that no cover or gallery image references.

    Call after the primary mutation has dropped this request's own
    references; a URL another post still uses keeps its object.
    """
    wanted = {u for u in urls if u}
    if not wanted:
        return []
    referenced = {*await posts.list_cover_urls(), *await images.list_all_urls()}
    kept = wanted & referenced
    if kept:
        logger.info("Keeping %d object(s) still referenced: %s", len(kept), ", ".join(sorted(kept)))
    return await delete_objects_best_effort(sorted(wanted - kept), store=store, config=config)


# --- Gallery ---


async def run_add_images(
    inp: AddImagesInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    store: ObjectStorePort,
    codec: ImageCodecPort,
    clock: ClockPort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> AddImagesOutput:
    """
    Append uploaded files to a post's gallery, one at a time.

    Each file succeeds or fails on its own: non-images are skipped, oversized
    files and storage failures are reported as failed, and the rest are
    stored and appended after the current last image.

    Returns:
        AddImagesOutput with a per-file breakdown and the resulting cover.
    """
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
    except BlogError as e:
        return AddImagesOutput(errors=[_error(e)], success=False)

    gallery = await images.list_for_post(post.id)
    next_order = len(gallery)
    outcomes: list[FileOutcome] = []

    for position, payload in enumerate(inp.files):
        if not payload.data or not is_image(payload.content_type):
            outcomes.append(
                FileOutcome(
                    filename=payload.filename,
                    status="skipped",
                    code="not_an_image",
                    message=f"Skipped {payload.content_type or 'unknown'} file",
                )
            )
            continue

        try:
            stored = await store_image(
                payload, store=store, codec=codec, clock=clock, config=config
            )
        except (BlogError, UpstreamStoreError) as e:
            logger.warning("Upload of %s for post %s failed: %s", payload.filename, post.id, e)
            outcomes.append(
                FileOutcome(
                    filename=payload.filename,
                    status="failed",
                    code=e.code,
                    message=str(e),
                )
            )
            continue

        alt_text = inp.alt_texts[position] if position < len(inp.alt_texts) else None
        try:
            image = await images.insert(
                PostImage(
                    post_id=post.id,
                    image_url=stored.url or "",
                    sort_order=next_order,
                    alt_text=normalize_alt_text(alt_text),
                    created_at=clock.now_utc(),
                )
            )
        except (BlogError, UpstreamStoreError) as e:
            logger.warning("Recording image %s for post %s failed: %s", stored.url, post.id, e)
            await delete_objects_best_effort([stored.url], store=store, config=config)
            outcomes.append(
                FileOutcome(filename=payload.filename, status="failed", code=e.code, message=str(e))
            )
            continue

        gallery.append(image)
        next_order += 1
        outcomes.append(FileOutcome(filename=payload.filename, status="uploaded", image=image))

    cover = await _sync_cover(post.id, gallery, posts)
    output = AddImagesOutput(outcomes=outcomes, images=gallery, cover_url=cover, success=True)
    logger.info(
        "Post %s gallery upload: %d uploaded, %d failed, %d skipped",
        post.id,
        output.uploaded,
        output.failed,
        output.skipped,
    )
    return output


async def run_add_image_record(
    inp: AddImageRecordInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    clock: ClockPort,
) -> ImageOutput:
    """Attach a URL the client already uploaded as the post's next gallery image."""
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
        url = inp.image_url.strip()
        if not url:
            raise ValidationError("image_url is required", field="image_url")
        focal_point = validate_focal_point(inp.focal_point)
        alt_text = normalize_alt_text(inp.alt_text)
    except BlogError as e:
        return ImageOutput(errors=[_error(e)], success=False)

    gallery = await images.list_for_post(post.id)
    image = await images.insert(
        PostImage(
            post_id=post.id,
            image_url=url,
            sort_order=len(gallery),
            focal_point=focal_point,
            alt_text=alt_text,
            created_at=clock.now_utc(),
        )
    )
    cover = await _sync_cover(post.id, [*gallery, image], posts)
    return ImageOutput(image=image, cover_url=cover, errors=[], success=True)


async def run_reorder(
    inp: ReorderImagesInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
) -> GalleryOutput:
    """
    Reorder a gallery to the given id sequence.

    The ids must be exactly the post's images. Sort orders become 0..n-1 and
    the cover follows the new first image unless the post has a legacy cover.
    """
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
        gallery = await images.list_for_post(post.id)
        by_id = {image.id: image for image in gallery}
        if len(inp.image_ids) != len(set(inp.image_ids)) or set(inp.image_ids) != set(by_id):
            raise ValidationError(
                "image_ids must list every image of the post exactly once", field="image_ids"
            )
    except BlogError as e:
        return GalleryOutput(errors=[_error(e)], success=False)

    ordered = [by_id[image_id] for image_id in inp.image_ids]
    await images.set_sort_orders(dense_orders(ordered))
    reordered = [
        image.model_copy(update={"sort_order": index}) for index, image in enumerate(ordered)
    ]
    cover = await _sync_cover(post.id, reordered, posts)
    return GalleryOutput(images=reordered, cover_url=cover, errors=[], success=True)


async def run_delete_image(
    inp: DeleteImageInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    store: ObjectStorePort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> GalleryOutput:
    """
    Remove one gallery image.

    Remaining images are renumbered densely; if the deleted image was the
    cover, the next image takes over (or the cover clears). A legacy cover
    stays. The stored object is then deleted best-effort unless a cover or
    another gallery image still points at it.
    """
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
        target = await _load_image(inp.image_id, post.id, images)
    except BlogError as e:
        return GalleryOutput(errors=[_error(e)], success=False)

    await images.delete(target.id)

    remaining = [i for i in await images.list_for_post(post.id) if i.id != target.id]
    changed = [
        (image_id, order)
        for (image_id, order), image in zip(dense_orders(remaining), remaining, strict=True)
        if image.sort_order != order
    ]
    await images.set_sort_orders(changed)
    remaining = [
        image.model_copy(update={"sort_order": index}) for index, image in enumerate(remaining)
    ]

    cover = await _sync_cover(post.id, remaining, posts, removed_urls=[target.image_url])
    failures = await release_objects_best_effort(
        [target.image_url], posts=posts, images=images, store=store, config=config
    )
    return GalleryOutput(
        images=remaining,
        cover_url=cover,
        cleanup_failures=failures,
        errors=[],
        success=True,
    )


async def run_set_focal_point(
    inp: SetFocalPointInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
) -> ImageOutput:
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
        image = await _load_image(inp.image_id, post.id, images)
        focal_point = validate_focal_point(inp.focal_point)
    except BlogError as e:
        return ImageOutput(errors=[_error(e)], success=False)

    updated = await images.update(image.model_copy(update={"focal_point": focal_point}))
    return ImageOutput(image=updated, cover_url=post.image_url, errors=[], success=True)


async def run_set_alt_text(
    inp: SetAltTextInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
) -> ImageOutput:
    try:
        post = await _load_post_for_edit(inp.post_id, actor=actor, policy=policy, posts=posts)
        image = await _load_image(inp.image_id, post.id, images)
        alt_text = normalize_alt_text(inp.alt_text)
    except BlogError as e:
        return ImageOutput(errors=[_error(e)], success=False)

    updated = await images.update(image.model_copy(update={"alt_text": alt_text}))
    return ImageOutput(image=updated, cover_url=post.image_url, errors=[], success=True)


async def run_list_images(
    inp: ListImagesInput,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    images: ImageRepoPort,
    clock: ClockPort,
) -> GalleryOutput:
    """A post's gallery in sort order; unpublished posts only for their author or an admin."""
    try:
        post = await load_visible_post(
            inp.post_id, viewer=viewer, policy=policy, posts=posts, clock=clock
        )
    except BlogError as e:
        return GalleryOutput(errors=[_error(e)], success=False)
    gallery = await images.list_for_post(post.id)
    return GalleryOutput(images=gallery, cover_url=post.image_url, errors=[], success=True)


# --- Maintenance ---


async def run_orphan_sweep(
    inp: OrphanSweepInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine | None,
    posts: PostRepoPort,
    images: ImageRepoPort,
    profiles: ProfileRepoPort,
    store: ObjectStorePort,
    config: AssetsConfig = DEFAULT_ASSETS_CONFIG,
) -> OrphanSweepOutput:
    """
    Delete stored objects that no post, gallery image or avatar references.

    Scans the bucket root and the avatar folder. policy=None skips the
    permission check, for operator scripts running with store credentials.

    Returns:
        OrphanSweepOutput with counts and the orphaned / deleted keys.
    """
    if policy is not None:
        try:
            policy.require(actor, "storage:cleanup")
        except BlogError as e:
            return OrphanSweepOutput(dry_run=inp.dry_run, errors=[_error(e)], success=False)

    avatar_prefix = config.avatar_prefix.strip("/")
    stored = [name for name in await store.list("") if name != avatar_prefix]
    stored += [f"{avatar_prefix}/{name}" for name in await store.list(avatar_prefix)]

    urls = [
        *await posts.list_cover_urls(),
        *await images.list_all_urls(),
        *await profiles.list_avatar_urls(),
    ]
    referenced = {k for k in (object_key_from_url(u, config.bucket) for u in urls) if k}

    orphaned = [key for key in stored if key not in referenced]
    logger.info(
        "Orphan sweep: %d stored, %d referenced, %d orphaned",
        len(stored),
        len(referenced),
        len(orphaned),
    )

    if inp.dry_run or not orphaned:
        return OrphanSweepOutput(
            dry_run=inp.dry_run,
            stored=len(stored),
            referenced=len(referenced),
            orphaned=orphaned,
            deleted=[],
            success=True,
        )

    await store.delete(orphaned)
    logger.info("Orphan sweep deleted %d object(s)", len(orphaned))
    return OrphanSweepOutput(
        dry_run=False,
        stored=len(stored),
        referenced=len(referenced),
        orphaned=orphaned,
        deleted=list(orphaned),
        success=True,
    )
