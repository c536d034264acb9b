"""
Comments component - reader comments and likes on published posts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from src.components.scheduler import load_visible_post, promote_on_read
from src.domain.entities import Comment, CommentLike, CommentSort, CommentView, Identity, Post
from src.domain.errors import BlogError, NotFoundError, ValidationError
from src.domain.policy import PolicyEngine

from .models import (
    DEFAULT_COMMENTS_CONFIG,
    AddCommentInput,
    CommentListOutput,
    CommentOutput,
    CommentsConfig,
    CommentValidationError,
    DeleteCommentInput,
    DeleteCommentOutput,
    LikeOutput,
    ListCommentsInput,
    ToggleLikeInput,
)
from .ports import ClockPort, CommentRepoPort, PostRepoPort

logger = logging.getLogger(__name__)


def _error(exc: BlogError) -> CommentValidationError:
    return CommentValidationError(code=exc.code, message=exc.message, field=exc.field)


def sort_comments(comments: Sequence[CommentView], sort: CommentSort) -> list[CommentView]:
    """likes: most liked first, newest breaking ties. newest / oldest by created_at."""
    if sort == "oldest":
        return sorted(comments, key=lambda c: (c.created_at, c.id))
    newest = sorted(comments, key=lambda c: (c.created_at, c.id), reverse=True)
    if sort == "newest":
        return newest
    return sorted(newest, key=lambda c: c.like_count, reverse=True)


async def _views(
    comments: Sequence[Comment],
    viewer: Identity | None,
    repo: CommentRepoPort,
) -> list[CommentView]:
    ids = [c.id for c in comments]
    counts = await repo.like_counts(ids)
    liked = await repo.liked_by(viewer.user_id, ids) if viewer else set()
    return [
        CommentView.model_validate(
            {**c.model_dump(), "like_count": counts.get(c.id, 0), "user_has_liked": c.id in liked}
        )
        for c in comments
    ]


async def _published_post(post_id: int, posts: PostRepoPort, clock: ClockPort) -> Post:
    post = await posts.get_by_id(post_id)
    if post is not None:
        post = await promote_on_read(post, clock.now_utc(), posts)
    if post is None or post.status != "published":
        raise NotFoundError("Post", field="post_id")
    return post


async def run_list_comments(
    inp: ListCommentsInput,
    *,
    viewer: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    comments: CommentRepoPort,
    clock: ClockPort,
    config: CommentsConfig = DEFAULT_COMMENTS_CONFIG,
) -> CommentListOutput:
    """Comments with like counts; unpublished posts only for their author or an admin."""
    sort = inp.sort or config.default_sort
    try:
        post = await load_visible_post(
            inp.post_id, viewer=viewer, policy=policy, posts=posts, clock=clock
        )
    except BlogError as e:
        return CommentListOutput(sort=sort, errors=[_error(e)], success=False)
    views = await _views(await comments.list_for_post(post.id), viewer, comments)
    return CommentListOutput(items=sort_comments(views, sort), sort=sort, errors=[], success=True)


async def run_add_comment(
    inp: AddCommentInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    posts: PostRepoPort,
    comments: CommentRepoPort,
    clock: ClockPort,
    config: CommentsConfig = DEFAULT_COMMENTS_CONFIG,
) -> CommentOutput:
    """
    Add a comment to a published post, promoting a due scheduled one first.

    Content is trimmed and must be 1..max_length characters afterwards.
    """
    try:
        policy.require(actor, "comment:create")
        content = inp.content.strip()
        if not content:
            raise ValidationError("Comment cannot be empty", field="content")
        if len(content) > config.max_length:
            raise ValidationError(
                f"Comment must be at most {config.max_length} characters", field="content"
            )
        post = await _published_post(inp.post_id, posts, clock)
    except BlogError as e:
        return CommentOutput(errors=[_error(e)], success=False)

    now = clock.now_utc()
    comment = await comments.insert(
        Comment(
            post_id=post.id,
            user_id=actor.user_id,  # type: ignore[union-attr]
            content=content,
            created_at=now,
            updated_at=now,
        )
    )
    view = CommentView.model_validate({**comment.model_dump(), "like_count": 0})
    return CommentOutput(comment=view, errors=[], success=True)


async def run_delete_comment(
    inp: DeleteCommentInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    comments: CommentRepoPort,
) -> DeleteCommentOutput:
    """Delete a comment. Its author or an admin only; likes cascade."""
    try:
        comment = await comments.get(inp.comment_id)
        if comment is None:
            raise NotFoundError("Comment", field="comment_id")
        policy.require(actor, "comment:delete", comment)
    except BlogError as e:
        return DeleteCommentOutput(errors=[_error(e)], success=False)

    await comments.delete(comment.id)
    logger.info("Deleted comment %s on post %s", comment.id, comment.post_id)
    return DeleteCommentOutput(deleted_id=comment.id, errors=[], success=True)


async def run_toggle_like(
    inp: ToggleLikeInput,
    *,
    actor: Identity | None,
    policy: PolicyEngine,
    comments: CommentRepoPort,
    clock: ClockPort,
) -> LikeOutput:
    """Like the comment, or remove the viewer's like if it is already there."""
    try:
        policy.require(actor, "comment:like")
        comment = await comments.get(inp.comment_id)
        if comment is None:
            raise NotFoundError("Comment", field="comment_id")
    except BlogError as e:
        return LikeOutput(errors=[_error(e)], success=False)

    user_id = actor.user_id  # type: ignore[union-attr]
    existing = await comments.get_like(comment.id, user_id)
    if existing is not None:
        await comments.delete_like(existing.id)
        liked = False
    else:
        await comments.insert_like(
            CommentLike(comment_id=comment.id, user_id=user_id, created_at=clock.now_utc())
        )
        liked = True

    counts = await comments.like_counts([comment.id])
    return LikeOutput(
        comment_id=comment.id,
        liked=liked,
        like_count=counts.get(comment.id, 0),
        errors=[],
        success=True,
    )
