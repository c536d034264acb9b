"""
Scheduler component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.domain.errors import BestEffortFailure

# --- Validation Error ---


@dataclass(frozen=True)
class SchedulerValidationError:
    """Scheduler validation error."""

    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SweepInput:
    """Input for one auto-publish sweep."""

    batch_size: int = 100


# --- Output Models ---


@dataclass(frozen=True)
class SweepOutput:
    """
    Outcome of a sweep.

    promoted: posts this sweep published.
    skipped: due posts already promoted elsewhere (a lazy read won the race).
    failed: posts whose promotion write failed; they stay scheduled for the next sweep.
    """

    ran_at: datetime | None = None
    promoted: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[BestEffortFailure] = field(default_factory=list)
    errors: list[SchedulerValidationError] = field(default_factory=list)
    success: bool = True

    @property
    def total_processed(self) -> int:
        return len(self.promoted) + len(self.skipped) + len(self.failed)
