"""
Grid layout assignment.

Each post gets a presentation variant and a grid-span hint from its position in
the collection (ordered by created_at, newest first) and the collection size.
The same (index, total) always yields the same layout.

Every block of six positions is anchored: position 1 is a wide 2x1 card,
position 3 a tall 1x2 card. The other four pick between a 1x1 card (60%) and
a tall card (40%) from a seeded value, which keeps 2, 3 and 4 column grids
mostly free of trailing holes.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from src.domain.entities import LayoutVariant

GRID_HINTS: dict[LayoutVariant, str] = {
    "hover": "md:col-span-1 row-span-1",
    "split-horizontal": "md:col-span-2 row-span-1",
    "split-vertical": "md:col-span-1 row-span-2",
}

PATTERN_LENGTH = 6
WIDE_POSITION = 1
TALL_POSITION = 3
NEUTRAL_PROBABILITY = 0.6


@dataclass(frozen=True)
class LayoutAssignment:
    variant: LayoutVariant
    grid_class: str


@dataclass(frozen=True)
class PlannedLayout:
    post_id: int
    index: int
    assignment: LayoutAssignment


@dataclass(frozen=True)
class LayoutDistribution:
    """Variant counts and percentages for an assignment run."""

    total: int
    counts: dict[LayoutVariant, int] = field(default_factory=dict)

    def percentage(self, variant: LayoutVariant) -> float:
        if self.total == 0:
            return 0.0
        return round(self.counts.get(variant, 0) / self.total * 100, 1)

    def labels(self) -> dict[str, str]:
        """Human readable summary, e.g. {"hover": "4 (57.1%)"}."""
        return {
            variant: f"{self.counts.get(variant, 0)} ({self.percentage(variant):.1f}%)"
            for variant in GRID_HINTS
        }


def seeded_random(seed: int) -> float:
    """Deterministic value in [0, 1) derived from the seed."""
    x = math.sin(seed) * 10000
    return x - math.floor(x)


def _make(variant: LayoutVariant) -> LayoutAssignment:
    return LayoutAssignment(variant=variant, grid_class=GRID_HINTS[variant])


def assign_layout(index: int, total: int) -> LayoutAssignment:
    """
    Assign a layout to the post at `index` of a `total`-post collection.

    Raises ValueError when index is outside the collection.
    """
    if index < 0 or total <= index:
        raise ValueError(f"index {index} out of range for {total} posts")

    position = index % PATTERN_LENGTH
    if position == WIDE_POSITION:
        return _make("split-horizontal")
    if position == TALL_POSITION:
        return _make("split-vertical")

    if seeded_random(index * 7 + total * 3) < NEUTRAL_PROBABILITY:
        return _make("hover")
    return _make("split-vertical")


def plan_layouts(post_ids: Sequence[int]) -> list[PlannedLayout]:
    """Assign layouts to an ordered collection of post ids."""
    total = len(post_ids)
    return [
        PlannedLayout(post_id=post_id, index=index, assignment=assign_layout(index, total))
        for index, post_id in enumerate(post_ids)
    ]


def summarize_distribution(plan: Sequence[PlannedLayout]) -> LayoutDistribution:
    counts: dict[LayoutVariant, int] = {variant: 0 for variant in GRID_HINTS}
    for item in plan:
        counts[item.assignment.variant] += 1
    return LayoutDistribution(total=len(plan), counts=counts)
