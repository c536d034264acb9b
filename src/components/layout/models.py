"""
Layout component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.errors import BestEffortFailure
from src.domain.layout import LayoutDistribution, PlannedLayout

# --- Validation Error ---


@dataclass(frozen=True)
class LayoutValidationError:
    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class ReassignLayoutsInput:
    """Input for recomputing every post's layout."""

    dry_run: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class ReassignOutput:
    """
    Outcome of a full layout recompute.

    failures lists posts whose per-row write failed after the bulk write was
    unavailable; those rows keep their old layout until the next recompute.
    """

    total: int = 0
    updated: int = 0
    bulk: bool = False
    plan: list[PlannedLayout] = field(default_factory=list)
    distribution: LayoutDistribution | None = None
    failures: list[BestEffortFailure] = field(default_factory=list)
    errors: list[LayoutValidationError] = field(default_factory=list)
    success: bool = True
