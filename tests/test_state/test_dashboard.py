"""Tests for dashboard state."""

from unittest.mock import MagicMock

import httpx
import pytest

from okr_dashboard.integrations.okr_api import OkrApiClient
from okr_dashboard.models import (
    Department,
    DepartmentScoreResult,
    KeyResult,
    Objective,
    ScoreResult,
    Threshold,
)
from okr_dashboard.state.dashboard import DashboardState
from okr_dashboard.state.store import ScoreLevelStore

THRESHOLDS = Threshold(below=10, meets=20, good=30, very_good=40, exceptional=50)


def _result(score):
    return ScoreResult(score=score, level="x", color="#000000", percentage=0.0)


def _departments():
    return [
        Department(
            id="d1",
            name="Sales",
            score=_result(4.5),
            objectives=[
                Objective(id="o1", name="Grow", weight=100, key_results=[
                    KeyResult(id="kr1", name="Revenue", thresholds=THRESHOLDS, actual_value="30"),
                    KeyResult(id="kr2", name="Deals", thresholds=THRESHOLDS, actual_value="50"),
                ]),
            ],
        ),
        Department(id="d2", name="Ops", score=_result(4.0), final_score=_result(5.0)),
    ]


@pytest.fixture
def client():
    mock = MagicMock(spec=OkrApiClient)
    mock.list_departments.return_value = _departments()
    mock.get_score_levels.return_value = []
    return mock


@pytest.fixture
def state(client):
    store = ScoreLevelStore(client)
    store.load()
    return DashboardState(client, store)


def test_fetch_departments(state):
    """Departments load and the banner stays clear."""
    departments = state.fetch_departments()
    assert [d.name for d in departments] == ["Sales", "Ops"]
    assert state.banner is None


def test_fetch_failure_sets_banner_and_keeps_data(state, client):
    """A failed reload shows the banner over the old data."""
    state.fetch_departments()
    client.list_departments.side_effect = httpx.ConnectError("down")
    departments = state.fetch_departments()
    assert state.banner == "Failed to load departments"
    assert len(departments) == 2

    state.dismiss_banner()
    assert state.banner is None


def test_organization_score_uses_display_scores(state):
    """The summary uses final scores where present."""
    state.fetch_departments()
    assert state.organization_score().score == pytest.approx(4.75)


def test_department_display_score(state):
    """Display score lookup by department id."""
    state.fetch_departments()
    assert state.department_display_score("d2").score == 5.0
    assert state.department_display_score("missing") is None


def test_department_scorecard(state, client):
    """The backend breakdown is classified into a scorecard."""
    client.get_department_scores.return_value = DepartmentScoreResult(
        automatic_okr_score=4.8,
        director_evaluation=4.625,
        hr_evaluation_letter="D",
        hr_evaluation_numeric=5.0,
    )
    card = state.department_scorecard("d1")
    assert card.final.result.score == pytest.approx(4.805)
    client.get_department_scores.assert_called_once_with("d1")


def test_department_scorecard_failure(state, client):
    """A failed breakdown fetch sets the banner."""
    client.get_department_scores.side_effect = httpx.ConnectError("down")
    assert state.department_scorecard("d1") is None
    assert state.banner == "Failed to load department scores"


def test_preview_scorecard(state):
    """Inline ratings combine with the department's automatic score."""
    state.fetch_departments()
    card = state.preview_scorecard("d1", director=4.625)
    assert card.automatic.result.score == 4.5
    assert not card.final.available

    card = state.preview_scorecard("d1", director=4.625, hr_letter="D")
    assert card.final.result.score == pytest.approx(0.6 * 4.5 + 0.2 * 4.625 + 0.2 * 5.0)


def test_apply_actual_value_rescores(state):
    """A typed value rescores its key result, objective and department."""
    state.fetch_departments()
    kr = state.apply_actual_value("kr1", "50")
    assert kr.actual_value == "50"
    assert kr.score.score == 5.0

    dept = state.department("d1")
    assert dept.objectives[0].score.score == 5.0
    assert dept.score.score == 5.0


def test_apply_actual_value_unknown(state):
    """Unknown key results are ignored."""
    state.fetch_departments()
    assert state.apply_actual_value("nope", "1") is None


def test_apply_saved_key_result(state):
    """The saved copy replaces only its key result."""
    state.fetch_departments()
    saved = KeyResult(id="kr2", name="Deals", actual_value="45", score=_result(4.9))
    state.apply_saved_key_result("kr2", saved)
    key_results = state.department("d1").objectives[0].key_results
    assert key_results[1].score.score == 4.9
    assert key_results[0].id == "kr1"


class ManualTimer:
    def __init__(self, interval, function, args=()):
        self.function = function
        self.args = args
        self.daemon = False

    def start(self):
        pass

    def cancel(self):
        pass


def test_edit_and_commit_actual_value(client):
    """Editing previews at once; committing saves and merges the result."""
    saved = KeyResult(id="kr1", name="Revenue", actual_value="44", score=_result(4.88))
    client.update_actual_value.return_value = saved
    store = ScoreLevelStore(client)
    state = DashboardState(client, store, timer_factory=ManualTimer)
    state.fetch_departments()

    preview = state.edit_actual_value("kr1", "44")
    assert preview.score.score == pytest.approx(4.85)
    client.update_actual_value.assert_not_called()

    state.commit_actual_value("kr1")
    client.update_actual_value.assert_called_once_with("kr1", "44")
    assert state.department("d1").objectives[0].key_results[0].score.score == 4.88


def test_edit_unknown_key_result_not_saved(client):
    """Edits to unknown key results are never sent."""
    state = DashboardState(client, ScoreLevelStore(client), timer_factory=ManualTimer)
    state.fetch_departments()
    assert state.edit_actual_value("nope", "1") is None
    state.commit_actual_value("nope")
    client.update_actual_value.assert_not_called()


def test_saved_copy_does_not_replace_newer_typed_value(client):
    """A save that returns after the user typed again keeps the newer value on screen."""
    state = DashboardState(client, ScoreLevelStore(client), timer_factory=ManualTimer)
    state.fetch_departments()

    def save(key_result_id, value):
        # user keeps typing while this save is in flight
        state.edit_actual_value(key_result_id, "45")
        return KeyResult(id=key_result_id, name="Revenue", actual_value=value, score=_result(4.62))

    client.update_actual_value.side_effect = save
    state.edit_actual_value("kr1", "35")
    state.commit_actual_value("kr1")

    shown = state.department("d1").objectives[0].key_results[0]
    assert shown.actual_value == "45"
    assert state.saver.pending("kr1") == "45"

    client.update_actual_value.side_effect = None
    client.update_actual_value.return_value = KeyResult(
        id="kr1", name="Revenue", actual_value="45", score=_result(4.88),
    )
    state.commit_actual_value("kr1")
    shown = state.department("d1").objectives[0].key_results[0]
    assert shown.actual_value == "45"
    assert shown.score.score == 4.88


def test_saved_copy_rescores_objective_and_department(state):
    """Merging a saved key result recomputes the objective and department scores."""
    state.fetch_departments()
    saved = KeyResult(id="kr2", name="Deals", actual_value="45", score=_result(4.9))
    state.apply_saved_key_result("kr2", saved)
    dept = state.department("d1")
    # kr1 at 30 scores 4.5 on the client
    assert dept.objectives[0].score.score == pytest.approx(4.7)
    assert dept.score.score == pytest.approx(4.7)
