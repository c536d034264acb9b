"""
Comment API Routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.deps import (
    get_clock,
    get_comment_repo,
    get_comments_config,
    get_current_identity,
    get_policy,
    get_post_repo,
    get_viewer,
)
from src.api.errors import raise_for_errors
from src.api.schemas import CommentCreateRequest, CommentListResponse, LikeResponse
from src.components.comments import (
    AddCommentInput,
    CommentsConfig,
    DeleteCommentInput,
    ListCommentsInput,
    ToggleLikeInput,
    run_add_comment,
    run_delete_comment,
    run_list_comments,
    run_toggle_like,
)
from src.core.ports import ClockPort, CommentRepoPort, PostRepoPort
from src.domain.entities import CommentSort, CommentView, Identity
from src.domain.policy import PolicyEngine

router = APIRouter()


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: int,
    sort: CommentSort | None = None,
    viewer: Identity | None = Depends(get_viewer),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    comments: CommentRepoPort = Depends(get_comment_repo),
    clock: ClockPort = Depends(get_clock),
    config: CommentsConfig = Depends(get_comments_config),
) -> CommentListResponse:
    result = await run_list_comments(
        ListCommentsInput(post_id=post_id, sort=sort),
        viewer=viewer,
        policy=policy,
        posts=posts,
        comments=comments,
        clock=clock,
        config=config,
    )
    raise_for_errors(result.errors)
    return CommentListResponse(items=result.items, sort=result.sort)


@router.post("/posts/{post_id}/comments", response_model=CommentView, status_code=201)
async def add_comment(
    post_id: int,
    req: CommentCreateRequest,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    posts: PostRepoPort = Depends(get_post_repo),
    comments: CommentRepoPort = Depends(get_comment_repo),
    clock: ClockPort = Depends(get_clock),
    config: CommentsConfig = Depends(get_comments_config),
) -> CommentView:
    result = await run_add_comment(
        AddCommentInput(post_id=post_id, content=req.content),
        actor=actor,
        policy=policy,
        posts=posts,
        comments=comments,
        clock=clock,
        config=config,
    )
    raise_for_errors(result.errors)
    return result.comment  # type: ignore[return-value]


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    comments: CommentRepoPort = Depends(get_comment_repo),
) -> dict[str, int]:
    result = await run_delete_comment(
        DeleteCommentInput(comment_id=comment_id), actor=actor, policy=policy, comments=comments
    )
    raise_for_errors(result.errors)
    return {"deleted_id": comment_id}


@router.post("/comments/{comment_id}/like", response_model=LikeResponse)
async def toggle_like(
    comment_id: int,
    actor: Identity = Depends(get_current_identity),
    policy: PolicyEngine = Depends(get_policy),
    comments: CommentRepoPort = Depends(get_comment_repo),
    clock: ClockPort = Depends(get_clock),
) -> LikeResponse:
    """Like the comment, or unlike it if the caller already did."""
    result = await run_toggle_like(
        ToggleLikeInput(comment_id=comment_id),
        actor=actor,
        policy=policy,
        comments=comments,
        clock=clock,
    )
    raise_for_errors(result.errors)
    return LikeResponse(comment_id=comment_id, liked=result.liked, like_count=result.like_count)
