"""Automatic OKR score preview.

Reproduces the backend's automatic calculation so the dashboard can show
an updated score as soon as an actual value is typed, before the saved
entity comes back with its server-side score.

Key result: the actual value is placed within its five thresholds and
interpolated between the matching score level and the next one.
Objective: mean of its key results. Department: objective scores averaged
by objective weight.
"""

from __future__ import annotations

from typing import Callable, Sequence

from okr_dashboard.models import KeyResult, MetricType, Objective, ScoreResult, Threshold
from okr_dashboard.scoring.aggregator import neutral_score
from okr_dashboard.scoring.classifier import LevelsLike, classify, percentage_for
from okr_dashboard.scoring.levels import ScoreLevelSet

QUALITATIVE_GRADES = {
    "A": 5.0,
    "B": 4.75,
    "C": 4.5,
    "D": 4.25,
    "E": 3.0,
}
DEFAULT_GRADE = "E"


def parse_actual(value: str) -> float:
    """Parse a typed actual value; anything unparseable counts as 0."""
    try:
        return float(value.strip().replace(",", "."))
    except (AttributeError, ValueError):
        return 0.0


def _band_level(band: int, top: int) -> int:
    """Index of the score level a threshold band starts from."""
    return max(0, min(top - (4 - band), band))


def _interpolate(levels: ScoreLevelSet, band: int, ratio: float) -> tuple[float, int]:
    top = len(levels) - 1
    idx = _band_level(band, top)
    start = levels[idx].score_value
    end = levels[min(idx + 1, top)].score_value
    return start + ratio * (end - start), idx


def _quantitative(actual: float, metric_type: MetricType, cutoffs: Threshold, levels: ScoreLevelSet) -> ScoreResult:
    t = cutoffs.as_tuple()
    top = len(levels) - 1
    score, idx = levels[0].score_value, 0

    if metric_type is MetricType.LOWER_BETTER:
        if actual <= t[4]:
            score, idx = levels[top].score_value, top
        else:
            for band in (3, 2, 1, 0):
                if actual <= t[band]:
                    ratio = 1 - (actual - t[band + 1]) / max(t[band] - t[band + 1], 1)
                    score, idx = _interpolate(levels, band, ratio)
                    break
    else:
        if actual >= t[4]:
            score, idx = levels[top].score_value, top
        else:
            for band in (3, 2, 1, 0):
                if actual >= t[band]:
                    ratio = (actual - t[band]) / max(t[band + 1] - t[band], 1)
                    score, idx = _interpolate(levels, band, ratio)
                    break

    score = round(min(max(score, levels.min_score), levels.max_score), 2)
    level = levels[idx]
    return ScoreResult(
        score=score,
        level=level.name,
        color=level.color,
        percentage=percentage_for(score, levels),
    )


def key_result_score(key_result: KeyResult, levels: LevelsLike) -> ScoreResult:
    """Automatic score for one key result from its actual value."""
    effective = ScoreLevelSet.of(levels).effective()

    if key_result.metric_type is MetricType.QUALITATIVE:
        grade = key_result.actual_value.strip().upper() or DEFAULT_GRADE
        score = QUALITATIVE_GRADES.get(grade, QUALITATIVE_GRADES[DEFAULT_GRADE])
        return classify(score, effective)

    if key_result.thresholds is None:
        return neutral_score(effective)

    return _quantitative(
        parse_actual(key_result.actual_value),
        key_result.metric_type,
        key_result.thresholds,
        effective,
    )


def objective_score(key_results: Sequence[KeyResult], levels: LevelsLike) -> ScoreResult:
    """Mean of the objective's key-result scores."""
    if not key_results:
        return neutral_score(levels)
    total = sum(key_result_score(kr, levels).score for kr in key_results)
    return classify(round(total / len(key_results), 2), levels)


def _weighted_average(
    objectives: Sequence[Objective],
    levels: LevelsLike,
    score_of: Callable[[Objective], float],
) -> ScoreResult:
    scored = [obj for obj in objectives if obj.key_results]
    if not scored:
        return neutral_score(levels)

    default_weight = 100.0 / len(scored)
    weighted_sum = 0.0
    total_weight = 0.0
    for obj in scored:
        weight = obj.weight if obj.weight is not None else default_weight
        weighted_sum += score_of(obj) * weight
        total_weight += weight

    average = weighted_sum / total_weight if total_weight > 0 else 0.0
    return classify(round(average, 2), levels)


def department_score(objectives: Sequence[Objective], levels: LevelsLike) -> ScoreResult:
    """Weighted average of objective scores.

    Objectives without key results are skipped. An objective without a
    weight counts as an equal share of the scored objectives.
    """
    return _weighted_average(
        objectives, levels, lambda obj: objective_score(obj.key_results, levels).score,
    )


def rescore_objective(objective: Objective, levels: LevelsLike) -> Objective:
    """Copy of ``objective`` with its score recomputed from its key results.

    Scores already on the key results (e.g. returned by the backend) are
    kept; only unscored key results are calculated.
    """
    if not objective.key_results:
        return objective.model_copy(update={"score": neutral_score(levels)})
    scores = [
        kr.score.score if kr.score is not None else key_result_score(kr, levels).score
        for kr in objective.key_results
    ]
    score = classify(round(sum(scores) / len(scores), 2), levels)
    return objective.model_copy(update={"score": score})


def rescore_department(objectives: Sequence[Objective], levels: LevelsLike) -> ScoreResult:
    """Department score from the objectives' current scores."""
    return _weighted_average(
        objectives,
        levels,
        lambda obj: obj.score.score if obj.score is not None
        else objective_score(obj.key_results, levels).score,
    )


def preview_objective(objective: Objective, levels: LevelsLike) -> Objective:
    """Copy of ``objective`` with every key result and the objective rescored."""
    key_results = [
        kr.model_copy(update={"score": key_result_score(kr, levels)})
        for kr in objective.key_results
    ]
    return objective.model_copy(
        update={"key_results": key_results, "score": objective_score(key_results, levels)}
    )
