"""
Admin Maintenance API Routes.

Layout recompute, on-demand auto-publish sweep and storage orphan cleanup.
The sweep endpoint lets an external cron drive publishing when the
in-process scheduler is disabled.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from src.api.deps import (
    get_assets_config,
    get_clock,
    get_current_identity,
    get_image_repo,
    get_object_store,
    get_policy,
    get_post_repo,
    get_profile_repo,
    get_rules,
)
from src.api.errors import error_detail, raise_for_errors
from src.api.schemas import CleanupResponse, ReassignResponse, SweepResponse, warnings_from
from src.components.assets import AssetsConfig, OrphanSweepInput, run_orphan_sweep
from src.components.layout import ReassignLayoutsInput, run_reassign_all
from src.components.scheduler import SweepInput, run_sweep
from src.core.ports import ClockPort, ImageRepoPort, ObjectStorePort, PostRepoPort, ProfileRepoPort
from src.domain.entities import Identity
from src.domain.errors import AuthorizationError
from src.domain.policy import PolicyEngine
from src.rules.models import Rules

router = APIRouter()


@router.post("/reassign-layouts", response_model=ReassignResponse)
async def reassign_layouts(
    dry_run: bool = False,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
) -> ReassignResponse:
    """Recompute every post's layout and report the variant distribution."""
    result = await run_reassign_all(
        ReassignLayoutsInput(dry_run=dry_run), actor=actor, policy=policy, posts=posts
    )
    raise_for_errors(result.errors)
    return ReassignResponse(
        total=result.total,
        updated=result.updated,
        bulk=result.bulk,
        distribution=result.distribution.labels() if result.distribution else {},
        warnings=warnings_from(result.failures),
    )


@router.post("/sweep", response_model=SweepResponse)
async def sweep(
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> SweepResponse:
    """Publish every scheduled post whose time has come."""
    if not policy.check_permission(actor, "post:sweep"):
        raise HTTPException(
            status_code=403, detail=error_detail(AuthorizationError("Not allowed to run sweep"))
        )

    result = await run_sweep(
        SweepInput(batch_size=rules.scheduling.sweep_batch_size), posts=posts, clock=clock
    )
    raise_for_errors(result.errors)
    return SweepResponse(
        ran_at=result.ran_at,
        promoted=result.promoted,
        skipped=result.skipped,
        warnings=warnings_from(result.failed),
    )


@router.post("/cleanup-storage", response_model=CleanupResponse)
async def cleanup_storage(
    dry_run: bool = False,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    images: ImageRepoPort = Depends(get_image_repo),
    profiles: ProfileRepoPort = Depends(get_profile_repo),
    store: ObjectStorePort = Depends(get_object_store),
    config: AssetsConfig = Depends(get_assets_config),
) -> CleanupResponse:
    """Delete stored objects nothing references. dry_run only reports them."""
    result = await run_orphan_sweep(
        OrphanSweepInput(dry_run=dry_run),
        actor=actor,
        policy=policy,
        posts=posts,
        images=images,
        profiles=profiles,
        store=store,
        config=config,
    )
    raise_for_errors(result.errors)
    return CleanupResponse(
        dry_run=result.dry_run,
        stored=result.stored,
        referenced=result.referenced,
        orphaned=result.orphaned,
        deleted=result.deleted,
    )
