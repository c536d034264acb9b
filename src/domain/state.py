"""
Publication state machine.

States: draft, scheduled, published. Every function receives "now" from the
caller; nothing here reads the ambient clock.

Invariants:
- draft has neither scheduled_for nor published_at
- scheduled has scheduled_for and no published_at
- published has published_at and no scheduled_for
- published_at is stamped on first publish only
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from src.domain.entities import Post, PostStatus
from src.domain.errors import InvalidScheduleError, PastScheduleError, TitleRequiredError

DEFAULT_PLACEHOLDER_TITLE = "Untitled Draft"


@dataclass(frozen=True)
class StatusResolution:
    """Final status fields for a post after a requested transition."""

    status: PostStatus
    title: str
    scheduled_for: datetime | None
    published_at: datetime | None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_schedule(value: datetime | str | None) -> datetime:
    """
    Parse a scheduled_for value into an aware UTC datetime.

    Accepts datetimes or ISO-8601 strings. Naive values are treated as UTC.
    Raises InvalidScheduleError when missing or malformed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidScheduleError("scheduled_for is required when status is 'scheduled'")

    if isinstance(value, datetime):
        return _as_utc(value)

    try:
        parsed = datetime.fromisoformat(value.strip())
    except (TypeError, ValueError) as e:
        raise InvalidScheduleError() from e
    return _as_utc(parsed)


def normalize_title(title: str | None, status: PostStatus, placeholder: str) -> str:
    """Published posts need a real title; drafts and schedules fall back to a placeholder."""
    cleaned = (title or "").strip()
    if cleaned:
        return cleaned
    if status == "published":
        raise TitleRequiredError()
    return placeholder


def resolve_status_change(
    current: Post | None,
    requested: PostStatus,
    *,
    now: datetime,
    title: str | None,
    scheduled_for: datetime | str | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER_TITLE,
) -> StatusResolution:
    """
    Resolve the status, title and timestamps for a create or update.

    current is None for a new post. Every transition into a state is allowed;
    the guards are on the supplied values, not on the source state.
    """
    now = _as_utc(now)
    final_title = normalize_title(title, requested, placeholder)

    if requested == "draft":
        return StatusResolution(
            status="draft", title=final_title, scheduled_for=None, published_at=None
        )

    if requested == "scheduled":
        when = parse_schedule(scheduled_for)
        if when <= now:
            raise PastScheduleError()
        return StatusResolution(
            status="scheduled", title=final_title, scheduled_for=when, published_at=None
        )

    # published: keep the original publish stamp on republish
    published_at = now
    if current is not None and current.published_at is not None:
        published_at = current.published_at
    return StatusResolution(
        status="published", title=final_title, scheduled_for=None, published_at=published_at
    )


def is_due(post: Post, now: datetime) -> bool:
    """The one promotion predicate shared by reads, lists and the sweep."""
    if post.status != "scheduled" or post.scheduled_for is None:
        return False
    return _as_utc(post.scheduled_for) <= _as_utc(now)


def promote(post: Post, now: datetime) -> Post:
    """
    Return the post promoted to published if it is due.

    Non-due posts (including already-published ones) come back unchanged.
    """
    if not is_due(post, now):
        return post
    return post.model_copy(
        update={
            "status": "published",
            "published_at": _as_utc(now),
            "scheduled_for": None,
        }
    )
