"""
Gallery and Upload API Routes.

Paths are relative to /api: /uploads stores a single file for client-driven
flows, /posts/{post_id}/images manages a post's gallery.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from src.api.deps import (
    get_assets_config,
    get_clock,
    get_codec,
    get_current_identity,
    get_image_repo,
    get_object_store,
    get_policy,
    get_post_repo,
    get_viewer,
)
from src.api.errors import raise_for_errors
from src.api.routes._uploads import to_payload
from src.api.schemas import (
    AddImagesResponse,
    FileOutcomeModel,
    GalleryResponse,
    ImageRecordRequest,
    ImageResponse,
    ImageUpdateRequest,
    ReorderRequest,
    UploadResponse,
    warnings_from,
)
from src.components.assets import (
    AddImageRecordInput,
    AddImagesInput,
    AssetsConfig,
    DeleteImageInput,
    ImageOutput,
    ListImagesInput,
    ReorderImagesInput,
    SetAltTextInput,
    SetFocalPointInput,
    UploadImageInput,
    run_add_image_record,
    run_add_images,
    run_delete_image,
    run_list_images,
    run_reorder,
    run_set_alt_text,
    run_set_focal_point,
    run_upload,
)
from src.core.ports import (
    ClockPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostRepoPort,
)
from src.domain.entities import Identity
from src.domain.policy import PolicyEngine

router = APIRouter()


@router.post("/uploads", response_model=UploadResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    actor: Identity = Depends(get_current_identity),
    store: ObjectStorePort = Depends(get_object_store),
    codec: ImageCodecPort = Depends(get_codec),
    clock: ClockPort = Depends(get_clock),
    config: AssetsConfig = Depends(get_assets_config),
) -> UploadResponse:
    """Store one image (converted when possible) and return its public URL."""
    result = await run_upload(
        UploadImageInput(payload=await to_payload(file)),
        store=store,
        codec=codec,
        clock=clock,
        config=config,
    )
    raise_for_errors(result.errors)
    return UploadResponse(
        url=result.url or "",
        object_key=result.object_key or "",
        converted=result.converted,
        size_bytes=result.size_bytes,
    )


@router.get("/posts/{post_id}/images", response_model=GalleryResponse)
async def list_images(
    post_id: int,
    viewer: Identity | None = Depends(get_viewer),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    clock: ClockPort = Depends(get_clock),
) -> GalleryResponse:
    result = await run_list_images(
        ListImagesInput(post_id=post_id),
        viewer=viewer,
        policy=policy,
        posts=posts,
        images=images,
        clock=clock,
    )
    raise_for_errors(result.errors)
    return GalleryResponse(images=result.images, cover_url=result.cover_url)


@router.post("/posts/{post_id}/images", response_model=AddImagesResponse, status_code=201)
async def add_images(
    post_id: int,
    files: list[UploadFile] = File(...),
    alt_texts: list[str] | None = Form(None),
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    store: ObjectStorePort = Depends(get_object_store),
    codec: ImageCodecPort = Depends(get_codec),
    clock: ClockPort = Depends(get_clock),
    config: AssetsConfig = Depends(get_assets_config),
) -> AddImagesResponse:
    """Upload files into the gallery; each file reports its own outcome."""
    payloads = [await to_payload(f) for f in files]
    result = await run_add_images(
        AddImagesInput(
            post_id=post_id,
            files=payloads,
            alt_texts=[a or None for a in alt_texts or []],
        ),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        store=store,
        codec=codec,
        clock=clock,
        config=config,
    )
    raise_for_errors(result.errors)
    return AddImagesResponse(
        outcomes=[
            FileOutcomeModel(
                filename=o.filename,
                status=o.status,
                image=o.image,
                code=o.code,
                message=o.message,
            )
            for o in result.outcomes
        ],
        images=result.images,
        cover_url=result.cover_url,
        uploaded=result.uploaded,
        failed=result.failed,
        skipped=result.skipped,
    )


@router.post("/posts/{post_id}/images/record", response_model=ImageResponse, status_code=201)
async def add_image_record(
    post_id: int,
    req: ImageRecordRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    clock: ClockPort = Depends(get_clock),
) -> ImageResponse:
    """Attach an image the client already uploaded."""
    result = await run_add_image_record(
        AddImageRecordInput(
            post_id=post_id,
            image_url=req.image_url,
            focal_point=req.focal_point,
            alt_text=req.alt_text,
        ),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        clock=clock,
    )
    return _image_response(result)


@router.put("/posts/{post_id}/images/order", response_model=GalleryResponse)
async def reorder_images(
    post_id: int,
    req: ReorderRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
) -> GalleryResponse:
    result = await run_reorder(
        ReorderImagesInput(post_id=post_id, image_ids=req.image_ids),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
    )
    raise_for_errors(result.errors)
    return GalleryResponse(images=result.images, cover_url=result.cover_url)


@router.patch("/posts/{post_id}/images/{image_id}", response_model=ImageResponse)
async def update_image(
    post_id: int,
    image_id: int,
    req: ImageUpdateRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
) -> ImageResponse:
    """Set the focal point and/or alt text, whichever the body carries."""
    if not req.model_fields_set:
        raise HTTPException(status_code=400, detail="Nothing to update")

    result: ImageOutput | None = None
    if "focal_point" in req.model_fields_set:
        result = await run_set_focal_point(
            SetFocalPointInput(post_id=post_id, image_id=image_id, focal_point=req.focal_point),
            actor=actor,
            policy=policy,
            posts=posts,
            images=images,
        )
        raise_for_errors(result.errors)
    if "alt_text" in req.model_fields_set:
        result = await run_set_alt_text(
            SetAltTextInput(post_id=post_id, image_id=image_id, alt_text=req.alt_text),
            actor=actor,
            policy=policy,
            posts=posts,
            images=images,
        )
    return _image_response(result)  # type: ignore[arg-type]


@router.delete("/posts/{post_id}/images/{image_id}", response_model=GalleryResponse)
async def delete_image(
    post_id: int,
    image_id: int,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    store: ObjectStorePort = Depends(get_object_store),
    config: AssetsConfig = Depends(get_assets_config),
) -> GalleryResponse:
    result = await run_delete_image(
        DeleteImageInput(post_id=post_id, image_id=image_id),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        store=store,
        config=config,
    )
    raise_for_errors(result.errors)
    return GalleryResponse(
        images=result.images,
        cover_url=result.cover_url,
        warnings=warnings_from(result.cleanup_failures),
    )


def _image_response(result: ImageOutput) -> ImageResponse:
    raise_for_errors(result.errors)
    return ImageResponse(image=result.image, cover_url=result.cover_url)  # type: ignore[arg-type]
