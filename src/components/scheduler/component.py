"""
Scheduler component - auto-publish sweep and promotion on read.

The sweep covers scheduled posts nobody happens to read. It uses the same
due predicate and promotion as lazy reads, and persists through the
conditional promote so racing with a read is a no-op.
"""

from __future__ import annotations

import logging
from datetime import datetime

from src.domain.entities import Identity, Post
from src.domain.errors import BestEffortFailure, NotFoundError, UpstreamStoreError
from src.domain.policy import PolicyEngine
from src.domain.state import promote

from .models import SchedulerValidationError, SweepInput, SweepOutput
from .ports import ClockPort, PostRepoPort

logger = logging.getLogger(__name__)


async def promote_on_read(post: Post, now: datetime, posts: PostRepoPort) -> Post | None:
    """Lazy promotion for a single read; a lost race returns the stored row."""
    if promote(post, now) is post:
        return post
    written = await posts.promote_if_scheduled(post.id, now)
    if written is not None:
        logger.info("Promoted scheduled post %s on read", post.id)
        return written
    return await posts.get_by_id(post.id)


async def load_visible_post(
    post_id: int,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    clock: ClockPort,
) -> Post:
    """
    Fetch a post the way the viewer may see it, promoting it first if due.

    Raises:
        NotFoundError: when the post is missing, or unpublished and the
            viewer is neither its author nor an admin.
    """
    post = await posts.get_by_id(post_id)
    if post is not None:
        post = await promote_on_read(post, clock.now_utc(), posts)
    if post is None or (
        post.status != "published" and not policy.can_view_unpublished(viewer, post)
    ):
        raise NotFoundError("Post", field="post_id")
    return post


async def run_sweep(
    inp: SweepInput,
    *,
    posts: PostRepoPort,
    clock: ClockPort,
) -> SweepOutput:
    """
    Promote every due scheduled post, up to batch_size.

    Args:
        inp: Input containing the batch size.
        posts: Post repository port.
        clock: Clock port; "now" is read once per sweep.

    Returns:
        SweepOutput with promoted, skipped and failed post ids.
    """
    if inp.batch_size < 1:
        return SweepOutput(
            errors=[
                SchedulerValidationError(
                    code="invalid_batch_size",
                    message="batch_size must be at least 1",
                    field="batch_size",
                )
            ],
            success=False,
        )

    now = clock.now_utc()
    due = await posts.list_due(now, inp.batch_size)

    promoted: list[int] = []
    skipped: list[int] = []
    failed: list[BestEffortFailure] = []

    for post in due:
        if promote(post, now) is post:
            # Listed as due but not due by the shared predicate
            skipped.append(post.id)
            continue
        try:
            written = await posts.promote_if_scheduled(post.id, now)
        except UpstreamStoreError as e:
            logger.warning("Sweep could not promote post %s: %s", post.id, e)
            failed.append(BestEffortFailure("promote", str(post.id), str(e)))
            continue

        if written is None:
            skipped.append(post.id)
        else:
            promoted.append(post.id)

    if promoted:
        logger.info("Sweep promoted %d scheduled post(s)", len(promoted))

    return SweepOutput(
        ran_at=now,
        promoted=promoted,
        skipped=skipped,
        failed=failed,
        errors=[],
        success=True,
    )
