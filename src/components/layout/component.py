"""
Layout component - recompute every post's grid layout.

Layouts depend on a post's position in the newest-first collection and on
the collection size, so any insert shifts every layout and triggers a full
recompute. The write is one bulk upsert when the store supports it, else one
update per post, best-effort and not atomic.
"""

from __future__ import annotations

import logging

from src.domain.entities import Identity
from src.domain.errors import (
    BestEffortFailure,
    BlogError,
    BulkUpsertUnsupported,
    UpstreamStoreError,
)
from src.domain.layout import plan_layouts, summarize_distribution
from src.domain.policy import PolicyEngine

from .models import LayoutValidationError, ReassignLayoutsInput, ReassignOutput
from .ports import LayoutUpdate, PostRepoPort

logger = logging.getLogger(__name__)


async def reassign_all_layouts(
    posts: PostRepoPort,
    *,
    dry_run: bool = False,
) -> ReassignOutput:
    """
    Recompute and write layouts for every post.

    Args:
        posts: Post repository port.
        dry_run: Compute the plan and distribution without writing.

    Returns:
        ReassignOutput with counts, per-row failures and the distribution.
    """
    collection = await posts.list_all_newest_first()
    plan = plan_layouts([p.id for p in collection])
    distribution = summarize_distribution(plan)

    if dry_run or not plan:
        return ReassignOutput(
            total=len(plan),
            updated=0,
            plan=plan,
            distribution=distribution,
            success=True,
        )

    updates = [
        LayoutUpdate(
            post_id=item.post_id,
            layout_variant=item.assignment.variant,
            grid_class=item.assignment.grid_class,
        )
        for item in plan
    ]

    try:
        await posts.bulk_upsert_layouts(updates)
    except BulkUpsertUnsupported as e:
        logger.warning("Bulk layout write unavailable (%s); updating row by row", e.detail)
    else:
        logger.info("Reassigned layouts for %d posts (bulk)", len(updates))
        return ReassignOutput(
            total=len(plan),
            updated=len(updates),
            bulk=True,
            plan=plan,
            distribution=distribution,
            success=True,
        )

    updated = 0
    failures: list[BestEffortFailure] = []
    for update in updates:
        try:
            await posts.update_layout(update)
            updated += 1
        except UpstreamStoreError as e:
            logger.warning("Layout update failed for post %s: %s", update.post_id, e)
            failures.append(BestEffortFailure("update_layout", str(update.post_id), str(e)))

    logger.info(
        "Reassigned layouts for %d/%d posts (%d failed)", updated, len(updates), len(failures)
    )
    return ReassignOutput(
        total=len(plan),
        updated=updated,
        bulk=False,
        plan=plan,
        distribution=distribution,
        failures=failures,
        success=True,
    )


async def run_reassign_all(
    inp: ReassignLayoutsInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
) -> ReassignOutput:
    """Admin entry point: recompute all layouts. Requires layout:reassign."""
    try:
        policy.require(actor, "layout:reassign")
    except BlogError as e:
        return ReassignOutput(
            errors=[LayoutValidationError(code=e.code, message=e.message, field=e.field)],
            success=False,
        )
    return await reassign_all_layouts(posts, dry_run=inp.dry_run)
