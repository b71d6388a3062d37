"""Mapping between score levels and the backend's five threshold slots.

The backend stores exactly five metric cutoffs per key result
(below, meets, good, very_good, exceptional), while the number of score
levels is configurable. Sets of 2..5 levels share one slot table:

    n=5  L0 L1 L2 L3 L4
    n=4  L0 L1 L2 L2 L3
    n=3  L0 L0 L1 L1 L2
    n=2  L0 L0 L0 L0 L1

The top level owns ``exceptional``; the four lower slots are spread over
the remaining levels, surplus slots going to the higher ones. Any other
count falls back to level i <-> slot min(i, 4).

The same table is used when a key result is created (per-level inputs to
slots) and when it is displayed (slots back to levels), so both directions
agree for as long as the level count is unchanged. If levels are
reconfigured after creation the displayed names are approximate.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from okr_dashboard.models import MetricType, Threshold
from okr_dashboard.scoring.classifier import LevelsLike
from okr_dashboard.scoring.levels import ScoreLevelSet

logger = logging.getLogger(__name__)

SLOT_NAMES = ("below", "meets", "good", "very_good", "exceptional")
SLOT_COUNT = len(SLOT_NAMES)


class LevelThreshold(BaseModel):
    """A score level paired with the metric cutoff that reaches it."""

    name: str
    color: str
    value: float
    slots: tuple[str, ...]


def is_exact_count(level_count: int) -> bool:
    """True when the slot table is defined for ``level_count`` levels."""
    return 2 <= level_count <= SLOT_COUNT


def slot_levels(level_count: int) -> tuple[int, ...]:
    """Level index assigned to each of the five slots."""
    if not is_exact_count(level_count):
        top = max(level_count - 1, 0)
        return tuple(min(slot, top) for slot in range(SLOT_COUNT))

    lower_levels = level_count - 1
    lower_slots = SLOT_COUNT - 1
    share, surplus = divmod(lower_slots, lower_levels)

    assignment: list[int] = []
    for level in range(lower_levels):
        extra = 1 if level >= lower_levels - surplus else 0
        assignment.extend([level] * (share + extra))
    assignment.append(level_count - 1)
    return tuple(assignment)


def to_backend(values: Sequence[float]) -> Threshold:
    """Build the five-slot threshold record from per-level cutoffs.

    Args:
        values: One cutoff per score level, in ascending level order.

    Raises:
        ValueError: If no values are given.
    """
    if not values:
        raise ValueError("At least one threshold value is required")
    assignment = slot_levels(len(values))
    if not is_exact_count(len(values)):
        logger.warning(
            "No slot table for %d levels, using index-clamped thresholds", len(values),
        )
    slots = {name: float(values[level]) for name, level in zip(SLOT_NAMES, assignment)}
    return Threshold(**slots)


def from_backend(threshold: Threshold, levels: LevelsLike) -> list[LevelThreshold]:
    """Reconstruct named per-level cutoffs from a stored threshold record.

    Each level shows the first slot assigned to it. An empty level set is
    displayed against the canonical five levels.
    """
    effective = ScoreLevelSet.of(levels).effective()
    stored = threshold.as_tuple()
    count = len(effective)

    if not is_exact_count(count):
        return [
            LevelThreshold(
                name=level.name,
                color=level.color,
                value=stored[min(i, SLOT_COUNT - 1)],
                slots=(SLOT_NAMES[min(i, SLOT_COUNT - 1)],),
            )
            for i, level in enumerate(effective)
        ]

    assignment = slot_levels(count)
    result = []
    for i, level in enumerate(effective):
        owned = tuple(SLOT_NAMES[s] for s, owner in enumerate(assignment) if owner == i)
        first = assignment.index(i)
        result.append(
            LevelThreshold(name=level.name, color=level.color, value=stored[first], slots=owned)
        )
    return result


def key_result_payload(
    name: str,
    level_values: Sequence[float],
    metric_type: MetricType = MetricType.HIGHER_BETTER,
    weight: float = 0.0,
    unit: Optional[str] = None,
    description: Optional[str] = None,
    actual_value: str = "0",
) -> dict:
    """Creation body for ``POST /objectives/{id}/key-results``.

    ``level_values`` are the cutoffs typed next to each score level.
    """
    body = {
        "name": name,
        "metricType": metric_type.value,
        "weight": weight,
        "thresholds": to_backend(level_values).to_payload(),
        "actualValue": actual_value,
    }
    if unit:
        body["unit"] = unit
    if description:
        body["description"] = description
    return body
