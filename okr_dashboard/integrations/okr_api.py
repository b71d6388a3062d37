"""OKR backend REST API client.

Thin wrapper over the backend endpoints the dashboard needs: score-level
configuration, department / objective / key-result CRUD, actual-value
updates, department score breakdowns and evaluations.

Transport errors propagate as httpx exceptions (``raise_for_status``);
malformed payloads as pydantic ``ValidationError``. Callers decide whether
a failure is fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from okr_dashboard.config import get_settings
from okr_dashboard.models import (
    Department,
    DepartmentScoreResult,
    Evaluation,
    EvaluationCreateRequest,
    KeyResult,
    Objective,
    ScoreLevel,
)

logger = logging.getLogger(__name__)


class OkrApiClient:
    """Synchronous client for the OKR backend.

    Args:
        base_url: API root, e.g. ``http://localhost:8080/api``. Defaults to settings.
        timeout: Per-request timeout in seconds. Defaults to settings.
        client: Pre-built ``httpx.Client`` (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = base_url or settings.api_base_url
            timeout = timeout or settings.request_timeout_seconds
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "OkrApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        resp = self._client.request(method, path, json=json)
        resp.raise_for_status()
        logger.debug("%s %s -> %d", method, path, resp.status_code)
        if not resp.content:
            return None
        return resp.json()

    # ── Score levels ──

    def get_score_levels(self) -> list[ScoreLevel]:
        data = self._request("GET", "/score-levels")
        return [ScoreLevel.model_validate(item) for item in data or []]

    def update_score_levels(self, levels: Sequence[ScoreLevel]) -> list[ScoreLevel]:
        """Replace the whole level configuration."""
        data = self._request("PUT", "/score-levels", json=[lv.to_payload() for lv in levels])
        return [ScoreLevel.model_validate(item) for item in data or []]

    def reset_score_levels(self) -> None:
        self._request("POST", "/score-levels/reset")

    # ── Departments ──

    def list_departments(self) -> list[Department]:
        data = self._request("GET", "/departments")
        return [Department.model_validate(item) for item in data or []]

    def get_department(self, department_id: str) -> Department:
        return Department.model_validate(self._request("GET", f"/departments/{department_id}"))

    def create_department(self, data: dict) -> Department:
        return Department.model_validate(self._request("POST", "/departments", json=data))

    def update_department(self, department_id: str, data: dict) -> Department:
        return Department.model_validate(
            self._request("PUT", f"/departments/{department_id}", json=data)
        )

    def delete_department(self, department_id: str) -> None:
        self._request("DELETE", f"/departments/{department_id}")

    def get_department_scores(self, department_id: str) -> DepartmentScoreResult:
        """Backend's authoritative OKR + evaluation breakdown for a department."""
        return DepartmentScoreResult.model_validate(
            self._request("GET", f"/departments/{department_id}/scores")
        )

    # ── Objectives ──

    def create_objective(self, department_id: str, data: dict) -> Objective:
        return Objective.model_validate(
            self._request("POST", f"/departments/{department_id}/objectives", json=data)
        )

    def update_objective(self, objective_id: str, data: dict) -> Objective:
        return Objective.model_validate(self._request("PUT", f"/objectives/{objective_id}", json=data))

    def delete_objective(self, objective_id: str) -> None:
        self._request("DELETE", f"/objectives/{objective_id}")

    # ── Key results ──

    def create_key_result(self, objective_id: str, data: dict) -> KeyResult:
        return KeyResult.model_validate(
            self._request("POST", f"/objectives/{objective_id}/key-results", json=data)
        )

    def update_key_result(self, key_result_id: str, data: dict) -> KeyResult:
        return KeyResult.model_validate(
            self._request("PUT", f"/key-results/{key_result_id}", json=data)
        )

    def update_actual_value(self, key_result_id: str, value: str) -> KeyResult:
        """Persist a key result's actual value; returns it rescored by the backend."""
        return KeyResult.model_validate(
            self._request(
                "PUT",
                f"/key-results/{key_result_id}/actual-value",
                json={"actualValue": value},
            )
        )

    def delete_key_result(self, key_result_id: str) -> None:
        self._request("DELETE", f"/key-results/{key_result_id}")

    # ── Evaluations ──

    def create_evaluation(self, request: EvaluationCreateRequest) -> Evaluation:
        return Evaluation.model_validate(
            self._request("POST", "/evaluations", json=request.to_payload())
        )

    def update_evaluation(self, evaluation_id: str, request: EvaluationCreateRequest) -> Evaluation:
        return Evaluation.model_validate(
            self._request("PUT", f"/evaluations/{evaluation_id}", json=request.to_payload())
        )

    # ── Demo data ──

    def load_demo_data(self) -> list[Department]:
        data = self._request("POST", "/demo/load")
        return [Department.model_validate(item) for item in data or []]
