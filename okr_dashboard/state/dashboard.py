"""Dashboard state.

Holds the department tree shown on the dashboard and derives the summary
figures from it. A failed fetch raises a banner but leaves the previously
loaded departments on screen.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from okr_dashboard.integrations.okr_api import OkrApiClient
from okr_dashboard.models import Department, KeyResult, ScoreResult
from okr_dashboard.scoring.aggregator import display_score, organization_score
from okr_dashboard.scoring.calculator import (
    department_score,
    preview_objective,
    rescore_department,
    rescore_objective,
)
from okr_dashboard.scoring.evaluation import (
    EvaluationScorecard,
    build_scorecard,
    scorecard_from_result,
)
from okr_dashboard.state.actual_values import ActualValueSaver, TimerFactory
from okr_dashboard.state.sequencing import RequestSequencer
from okr_dashboard.state.store import ScoreLevelStore

logger = logging.getLogger(__name__)

DEPARTMENTS_KEY = "departments"
LOAD_FAILED_MESSAGE = "Failed to load departments"
SCORES_FAILED_MESSAGE = "Failed to load department scores"


class DashboardState:
    """Departments plus the figures derived from them."""

    def __init__(
        self,
        client: OkrApiClient,
        store: ScoreLevelStore,
        sequencer: Optional[RequestSequencer] = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._client = client
        self.store = store
        self._sequencer = sequencer or RequestSequencer()
        self.departments: list[Department] = []
        self.banner: Optional[str] = None
        # guards departments; saves complete on timer threads
        self._lock = threading.RLock()
        self.saver = ActualValueSaver(
            client.update_actual_value,
            timer_factory=timer_factory,
            on_saved=self.apply_saved_key_result,
        )

    # ── Loading ──

    def fetch_departments(self) -> list[Department]:
        """Reload the department tree.

        On failure the banner is set and the current departments are kept.
        """
        ticket = self._sequencer.begin(DEPARTMENTS_KEY)
        try:
            departments = self._client.list_departments()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("%s: %s", LOAD_FAILED_MESSAGE, e)
            self.banner = LOAD_FAILED_MESSAGE
            return self.departments

        if not self._sequencer.is_current(DEPARTMENTS_KEY, ticket):
            logger.debug("Discarding superseded department list")
            return self.departments

        with self._lock:
            self.departments = departments
        self.banner = None
        logger.info("Loaded %d departments", len(departments))
        return self.departments

    def dismiss_banner(self) -> None:
        self.banner = None

    def department(self, department_id: str) -> Optional[Department]:
        for dept in self.departments:
            if dept.id == department_id:
                return dept
        return None

    # ── Summary figures ──

    def organization_score(self) -> ScoreResult:
        """Plain mean of every department's display score."""
        return organization_score(self.departments, self.store.levels)

    def department_display_score(self, department_id: str) -> Optional[ScoreResult]:
        dept = self.department(department_id)
        if dept is None:
            return None
        return display_score(dept)

    def department_scorecard(self, department_id: str) -> Optional[EvaluationScorecard]:
        """Backend score breakdown for a department, classified for display.

        Returns None (and sets the banner) if the breakdown cannot be fetched.
        """
        try:
            result = self._client.get_department_scores(department_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("%s for %s: %s", SCORES_FAILED_MESSAGE, department_id, e)
            self.banner = SCORES_FAILED_MESSAGE
            return None
        return scorecard_from_result(result, self.store.levels)

    def preview_scorecard(
        self,
        department_id: str,
        director: Optional[float] = None,
        hr_letter: Optional[str] = None,
        business_block: Optional[float] = None,
    ) -> EvaluationScorecard:
        """Scorecard for ratings entered inline, before the backend confirms them."""
        dept = self.department(department_id)
        automatic = dept.score.score if dept is not None and dept.score is not None else None
        return build_scorecard(
            self.store.levels,
            automatic=automatic,
            director=director,
            hr_letter=hr_letter,
            business_block=business_block,
        )

    # ── Edits ──

    def apply_actual_value(self, key_result_id: str, value: str) -> Optional[KeyResult]:
        """Show a typed actual value immediately, with preview scores.

        The key result, its objective and its department are rescored on
        the client. Returns the updated key result, or None if unknown.
        """
        levels = self.store.levels
        with self._lock:
            location = self._locate(key_result_id)
            if location is None:
                logger.warning("Unknown key result %s", key_result_id)
                return None
            d_idx, o_idx = location
            dept = self.departments[d_idx]
            obj = dept.objectives[o_idx]
            edited = obj.model_copy(update={
                "key_results": [
                    kr.model_copy(update={"actual_value": value}) if kr.id == key_result_id else kr
                    for kr in obj.key_results
                ],
            })
            rescored = preview_objective(edited, levels)
            objectives = list(dept.objectives)
            objectives[o_idx] = rescored
            self.departments[d_idx] = dept.model_copy(update={
                "objectives": objectives,
                "score": department_score(objectives, levels),
            })
            return next(kr for kr in rescored.key_results if kr.id == key_result_id)

    def edit_actual_value(self, key_result_id: str, value: str) -> Optional[KeyResult]:
        """Typed into an actual-value field: preview now, save after the idle delay."""
        with self._lock:
            previewed = self.apply_actual_value(key_result_id, value)
            if previewed is not None:
                self.saver.edit(key_result_id, value)
        return previewed

    def commit_actual_value(self, key_result_id: str) -> None:
        """Actual-value field lost focus: save any pending value immediately."""
        self.saver.blur(key_result_id)

    def apply_saved_key_result(self, key_result_id: str, saved: KeyResult) -> None:
        """Replace a key result with the backend's saved (and scored) copy.

        Skipped while a newer value for the key result is still waiting to
        be saved, so the value on screen stays the last one typed. The
        objective and department scores are recomputed after the merge.
        """
        levels = self.store.levels
        with self._lock:
            if self.saver.pending(key_result_id) is not None:
                logger.debug("Keeping newer typed value for %s over saved copy", key_result_id)
                return
            location = self._locate(key_result_id)
            if location is None:
                return
            d_idx, o_idx = location
            dept = self.departments[d_idx]
            obj = dept.objectives[o_idx]
            merged = obj.model_copy(update={
                "key_results": [saved if kr.id == key_result_id else kr for kr in obj.key_results],
            })
            objectives = list(dept.objectives)
            objectives[o_idx] = rescore_objective(merged, levels)
            self.departments[d_idx] = dept.model_copy(update={
                "objectives": objectives,
                "score": rescore_department(objectives, levels),
            })

    def _locate(self, key_result_id: str) -> Optional[tuple[int, int]]:
        for d_idx, dept in enumerate(self.departments):
            for o_idx, obj in enumerate(dept.objectives):
                if any(kr.id == key_result_id for kr in obj.key_results):
                    return d_idx, o_idx
        return None
