"""Evaluation conversions and the final combined score.

Director ratings are 1-5 stars spread linearly over 4.25-5.0, HR ratings
are letters where D is the top grade, and business-block ratings are a raw
1-5 number shown beside the others but never weighted in. The final score
blends the automatic OKR score (60%), director (20%) and HR (20%), and only
exists when all three are present.

These rules must match the backend exactly; the backend's
``/departments/{id}/scores`` remains the authoritative version.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field

from okr_dashboard.models import (
    DepartmentScoreResult,
    EvaluationCreateRequest,
    EvaluatorType,
    NotAvailable,
    ScoreDisplay,
    TargetType,
)
from okr_dashboard.scoring.classifier import LevelsLike, classify_optional

logger = logging.getLogger(__name__)

DIRECTOR_MIN_SCORE = 4.25
DIRECTOR_MAX_SCORE = 5.0
MIN_STARS = 1
MAX_STARS = 5
STAR_STEP = (DIRECTOR_MAX_SCORE - DIRECTOR_MIN_SCORE) / (MAX_STARS - MIN_STARS)  # 0.1875

# D is the best grade
HR_LETTER_SCORES = {
    "D": 5.0,
    "C": 4.75,
    "B": 4.5,
    "A": 4.25,
}

BUSINESS_BLOCK_MIN = 1.0
BUSINESS_BLOCK_MAX = 5.0

AUTOMATIC_WEIGHT = 0.60
DIRECTOR_WEIGHT = 0.20
HR_WEIGHT = 0.20


# ── Director stars ──────────────────────────────────────────────


def stars_to_score(stars: int) -> float:
    """Convert a 1-5 star rating to its 4.25-5.0 score.

    Raises:
        ValueError: If ``stars`` is outside 1..5.
    """
    if stars < MIN_STARS or stars > MAX_STARS:
        raise ValueError(f"Star rating must be between {MIN_STARS} and {MAX_STARS}, got {stars}")
    return DIRECTOR_MIN_SCORE + (stars - MIN_STARS) * STAR_STEP


def stars_from_score(score: Optional[float]) -> Optional[int]:
    """Nearest star rating for a director score, or None outside 4.25-5.0."""
    if score is None or score < DIRECTOR_MIN_SCORE or score > DIRECTOR_MAX_SCORE:
        return None
    # round half up, not banker's rounding
    return int(MIN_STARS + (score - DIRECTOR_MIN_SCORE) / STAR_STEP + 0.5)


# ── HR letters ──────────────────────────────────────────────────


def letter_to_score(letter: Optional[str]) -> Optional[float]:
    """Score for an HR letter grade, or None for anything but A-D."""
    if not letter:
        return None
    return HR_LETTER_SCORES.get(letter.strip().upper())


# ── Final score ─────────────────────────────────────────────────


def combine_final_score(
    automatic: Optional[float],
    director: Optional[float],
    hr: Optional[float],
) -> Optional[float]:
    """Weighted final score, or None unless all three inputs are present."""
    if automatic is None or director is None or hr is None:
        return None
    return automatic * AUTOMATIC_WEIGHT + director * DIRECTOR_WEIGHT + hr * HR_WEIGHT


def validate_rating(
    evaluator_type: EvaluatorType,
    numeric_rating: Optional[float] = None,
    letter_rating: Optional[str] = None,
) -> None:
    """Check a rating against the rules for its evaluator type.

    Raises:
        ValueError: If the rating is missing or out of range.
    """
    if evaluator_type is EvaluatorType.DIRECTOR:
        if numeric_rating is None or not DIRECTOR_MIN_SCORE <= numeric_rating <= DIRECTOR_MAX_SCORE:
            raise ValueError(
                f"Director rating must be between {DIRECTOR_MIN_SCORE} and {DIRECTOR_MAX_SCORE}"
            )
    elif evaluator_type is EvaluatorType.HR:
        if letter_rating not in HR_LETTER_SCORES:
            raise ValueError("HR rating must be A, B, C, or D")
    elif evaluator_type is EvaluatorType.BUSINESS_BLOCK:
        if numeric_rating is None or not BUSINESS_BLOCK_MIN <= numeric_rating <= BUSINESS_BLOCK_MAX:
            raise ValueError(
                f"Business Block rating must be between {BUSINESS_BLOCK_MIN:g} and {BUSINESS_BLOCK_MAX:g}"
            )


def evaluation_request(
    evaluator_type: EvaluatorType,
    target_id: str,
    target_type: TargetType = TargetType.DEPARTMENT,
    stars: Optional[int] = None,
    letter: Optional[str] = None,
    numeric_rating: Optional[float] = None,
    comment: Optional[str] = None,
) -> EvaluationCreateRequest:
    """Build a validated evaluation submission.

    Director stars are converted to their numeric score; HR letters are
    normalized to upper case. Blank comments are dropped.

    Raises:
        ValueError: If the rating does not fit the evaluator type.
    """
    if evaluator_type is EvaluatorType.DIRECTOR and stars is not None:
        numeric_rating = stars_to_score(stars)
    if letter is not None:
        letter = letter.strip().upper()

    validate_rating(evaluator_type, numeric_rating, letter)

    return EvaluationCreateRequest(
        target_type=target_type,
        target_id=target_id,
        evaluator_type=evaluator_type,
        numeric_rating=numeric_rating,
        star_rating=stars if evaluator_type is EvaluatorType.DIRECTOR else None,
        letter_rating=letter if evaluator_type is EvaluatorType.HR else None,
        comment=(comment or "").strip() or None,
    )


# ── Score cards ─────────────────────────────────────────────────


class EvaluationScorecard(BaseModel):
    """Everything the four-gauge evaluation panel shows for one target."""

    automatic: ScoreDisplay = Field(default_factory=NotAvailable)
    director: ScoreDisplay = Field(default_factory=NotAvailable)
    hr: ScoreDisplay = Field(default_factory=NotAvailable)
    final: ScoreDisplay = Field(default_factory=NotAvailable)
    director_stars: Optional[int] = None
    hr_letter: Optional[str] = None
    business_block: Optional[float] = None

    @property
    def has_final(self) -> bool:
        return self.final.available


def build_scorecard(
    levels: LevelsLike,
    automatic: Optional[float] = None,
    director: Optional[float] = None,
    hr_letter: Optional[str] = None,
    business_block: Optional[float] = None,
) -> EvaluationScorecard:
    """Combine and classify evaluation inputs entered on the client."""
    hr = letter_to_score(hr_letter)
    if hr_letter and hr is None:
        logger.warning("Ignoring unknown HR letter grade %r", hr_letter)
    final = combine_final_score(automatic, director, hr)

    return EvaluationScorecard(
        automatic=classify_optional(automatic, levels),
        director=classify_optional(director, levels),
        hr=classify_optional(hr, levels),
        final=classify_optional(final, levels),
        director_stars=stars_from_score(director),
        hr_letter=hr_letter.strip().upper() if hr is not None else None,
        business_block=business_block,
    )


def scorecard_from_result(result: DepartmentScoreResult, levels: LevelsLike) -> EvaluationScorecard:
    """Classify the backend's department score breakdown.

    The backend's final score is used as-is when present. When it is
    missing but all three inputs are present, the client-side combination
    is shown instead.
    """
    hr = result.hr_evaluation_numeric
    if hr is None:
        hr = letter_to_score(result.hr_evaluation_letter)
    final = result.final_combined_score
    if final is None:
        final = combine_final_score(result.automatic_okr_score, result.director_evaluation, hr)

    return EvaluationScorecard(
        automatic=classify_optional(result.automatic_okr_score, levels),
        director=classify_optional(result.director_evaluation, levels),
        hr=classify_optional(hr, levels),
        final=classify_optional(final, levels),
        director_stars=result.director_stars or stars_from_score(result.director_evaluation),
        hr_letter=result.hr_evaluation_letter,
        business_block=result.business_block_evaluation,
    )
