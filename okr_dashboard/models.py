"""OKR dashboard Pydantic models.

Wire models matching the backend REST JSON. Field names are snake_case in
Python and camelCase on the wire; both spellings are accepted on input.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    """Base for every model exchanged with the backend."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict:
        """Serialize to a camelCase dict, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class MetricType(str, Enum):
    HIGHER_BETTER = "HIGHER_BETTER"
    LOWER_BETTER = "LOWER_BETTER"
    QUALITATIVE = "QUALITATIVE"


class EvaluatorType(str, Enum):
    DIRECTOR = "DIRECTOR"
    HR = "HR"
    BUSINESS_BLOCK = "BUSINESS_BLOCK"


class EvaluationStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"


class TargetType(str, Enum):
    DEPARTMENT = "DEPARTMENT"
    EMPLOYEE = "EMPLOYEE"


class ScoreLevel(_ApiModel):
    """A named score band with its lower cutoff and display colour."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str
    score_value: float
    color: str = Field(..., description="Hex colour, e.g. #28a745")
    display_order: int = Field(default=0, ge=0)


class ScoreResult(_ApiModel):
    """A classified score. Derived, never persisted by this layer."""

    score: float
    level: str
    color: str
    percentage: float


class Threshold(_ApiModel):
    """The backend's fixed five metric cutoffs for one key result."""

    below: float
    meets: float
    good: float
    very_good: float
    exceptional: float

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        """Return the cutoffs in slot order."""
        return (self.below, self.meets, self.good, self.very_good, self.exceptional)


class KeyResult(_ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    metric_type: MetricType = MetricType.HIGHER_BETTER
    unit: Optional[str] = None
    weight: float = 0.0
    thresholds: Optional[Threshold] = None
    actual_value: str = ""
    objective_id: Optional[str] = None
    score: Optional[ScoreResult] = None

    @field_validator("actual_value", mode="before")
    @classmethod
    def coerce_actual_value(cls, v: object) -> str:
        """Backend sends numbers for quantitative metrics; keep the raw text."""
        if v is None:
            return ""
        return str(v)


class Objective(_ApiModel):
    id: str
    name: str
    weight: Optional[float] = None
    department_id: Optional[str] = None
    key_results: list[KeyResult] = Field(default_factory=list)
    score: Optional[ScoreResult] = None


class Department(_ApiModel):
    id: str
    name: str
    objectives: list[Objective] = Field(default_factory=list)
    score: Optional[ScoreResult] = None
    final_score: Optional[ScoreResult] = None


class Evaluation(_ApiModel):
    id: str
    evaluator_id: Optional[str] = None
    evaluator_name: Optional[str] = None
    evaluator_type: EvaluatorType
    target_type: TargetType
    target_id: str
    numeric_rating: Optional[float] = None
    letter_rating: Optional[str] = None
    comment: Optional[str] = None
    status: EvaluationStatus = EvaluationStatus.DRAFT
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class EvaluationCreateRequest(_ApiModel):
    target_type: TargetType
    target_id: str
    evaluator_type: EvaluatorType
    numeric_rating: Optional[float] = None
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)
    letter_rating: Optional[str] = None
    comment: Optional[str] = None


class DepartmentScoreResult(_ApiModel):
    """The backend's authoritative multi-source score for a department."""

    automatic_okr_score: Optional[float] = None
    automatic_okr_percentage: Optional[float] = None
    director_evaluation: Optional[float] = None
    director_stars: Optional[int] = None
    director_comment: Optional[str] = None
    hr_evaluation_letter: Optional[str] = None
    hr_evaluation_numeric: Optional[float] = None
    hr_comment: Optional[str] = None
    business_block_evaluation: Optional[float] = None
    business_block_comment: Optional[str] = None
    final_combined_score: Optional[float] = None
    final_percentage: Optional[float] = None
    score_level: Optional[str] = None
    color: Optional[str] = None
    has_director_evaluation: bool = False
    has_hr_evaluation: bool = False
    has_business_block_evaluation: bool = False


# ── Score availability ──────────────────────────────────────────


class Scored(BaseModel):
    """A score that is present and has been classified."""

    kind: Literal["scored"] = "scored"
    result: ScoreResult

    @property
    def available(self) -> bool:
        return True


class NotAvailable(BaseModel):
    """A score that is absent. Displayed as such, never as a number."""

    kind: Literal["not_available"] = "not_available"
    label: str = "not available"

    @property
    def available(self) -> bool:
        return False


ScoreDisplay = Annotated[Union[Scored, NotAvailable], Field(discriminator="kind")]
