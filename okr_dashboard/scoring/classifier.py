"""Score classification.

Global, consistent mapping from a numeric score to a level name, colour and
gauge percentage against the current score levels. Every function here is
total: out-of-range or degenerate input degrades, it never raises.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from okr_dashboard.models import NotAvailable, ScoreDisplay, ScoreLevel, ScoreResult, Scored
from okr_dashboard.scoring.levels import ScoreLevelSet

LevelsLike = Union[ScoreLevelSet, Iterable[ScoreLevel], None]


def _effective(levels: LevelsLike) -> ScoreLevelSet:
    return ScoreLevelSet.of(levels).effective()


def level_for(score: float, levels: LevelsLike) -> ScoreLevel:
    """Return the highest level whose cutoff ``score`` reaches.

    Ties resolve to the higher level. Scores below every cutoff get the
    lowest level.
    """
    effective = _effective(levels)
    for level in reversed(effective.levels):
        if score >= level.score_value:
            return level
    return effective.lowest


def percentage_for(score: float, levels: LevelsLike) -> float:
    """Position of ``score`` within the level range, clamped to 0..100."""
    effective = _effective(levels)
    low, high = effective.min_score, effective.max_score
    if high == low:
        return 0.0
    pct = (score - low) / (high - low) * 100
    return max(0.0, min(100.0, pct))


def classify(score: float, levels: LevelsLike) -> ScoreResult:
    """Classify a score into level name, colour and percentage."""
    level = level_for(score, levels)
    return ScoreResult(
        score=score,
        level=level.name,
        color=level.color,
        percentage=percentage_for(score, levels),
    )


def classify_optional(score: Optional[float], levels: LevelsLike) -> ScoreDisplay:
    """Classify a score that may be absent."""
    if score is None:
        return NotAvailable()
    return Scored(result=classify(score, levels))


def color_for_level(level_name: str, levels: LevelsLike) -> str:
    """Colour of a named level, falling back to the lowest level's colour.

    Accepts display names and backend slugs ("Very Good" or "very_good").
    """
    effective = _effective(levels)
    level = effective.find(level_name)
    if level is None:
        return effective.lowest.color
    return level.color
