"""Client-side score roll-ups.

Used for the organisation summary card and any other place where the
dashboard needs a parent score ahead of the backend's own summary.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from okr_dashboard.models import Department, ScoreResult
from okr_dashboard.scoring.classifier import LevelsLike, classify
from okr_dashboard.scoring.levels import ScoreLevelSet

NEUTRAL_SCORE = 3.0


class Scorable(Protocol):
    score: Optional[ScoreResult]


def neutral_score(levels: LevelsLike) -> ScoreResult:
    """The score shown when nothing underneath has been scored yet."""
    lowest = ScoreLevelSet.of(levels).lowest
    return ScoreResult(score=NEUTRAL_SCORE, level=lowest.name, color=lowest.color, percentage=0.0)


def roll_up(children: Iterable[Scorable], levels: LevelsLike) -> ScoreResult:
    """Combine child scores into one parent score.

    Children without a score, or with a non-positive one, are skipped. The
    result is the plain mean of the remaining scores; the children's
    ``weight`` is not applied here.
    """
    scores = [
        child.score.score
        for child in children
        if child.score is not None and child.score.score > 0
    ]
    if not scores:
        return neutral_score(levels)
    return classify(sum(scores) / len(scores), levels)


def display_score(department: Department) -> Optional[ScoreResult]:
    """Final (evaluated) score when there is one, otherwise the OKR score."""
    return department.final_score or department.score


class _DisplayScore:
    __slots__ = ("score",)

    def __init__(self, score: Optional[ScoreResult]) -> None:
        self.score = score


def organization_score(departments: Sequence[Department], levels: LevelsLike) -> ScoreResult:
    """Roll up every department's display score into the organisation score."""
    return roll_up((_DisplayScore(display_score(d)) for d in departments), levels)
