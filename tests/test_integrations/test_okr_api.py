"""Tests for the OKR backend API client."""

import json

import httpx
import pytest

from okr_dashboard.integrations.okr_api import OkrApiClient
from okr_dashboard.models import EvaluatorType, ScoreLevel, TargetType
from okr_dashboard.scoring.evaluation import evaluation_request

BASE = "http://backend/api"


class Recorder:
    """Route table for httpx.MockTransport that records every request."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = self.routes[key]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def body(self, index=-1):
        return json.loads(self.requests[index].content)


def _client(routes):
    recorder = Recorder(routes)
    http = httpx.Client(base_url=BASE, transport=httpx.MockTransport(recorder))
    return OkrApiClient(client=http), recorder


LEVELS_JSON = [
    {"id": "1", "name": "Below", "scoreValue": 3.0, "color": "#dc3545", "displayOrder": 0},
    {"id": "2", "name": "Exceptional", "scoreValue": 5.0, "color": "#1e7b34", "displayOrder": 1},
]


def test_get_score_levels():
    """Score levels are parsed from the list endpoint."""
    api, recorder = _client({("GET", "/api/score-levels"): (200, LEVELS_JSON)})
    levels = api.get_score_levels()
    assert [lv.name for lv in levels] == ["Below", "Exceptional"]
    assert recorder.requests[0].url == f"{BASE}/score-levels"


def test_update_score_levels_sends_camel_case():
    """Level updates go out as camelCase JSON without unset ids."""
    api, recorder = _client({("PUT", "/api/score-levels"): (200, LEVELS_JSON)})
    api.update_score_levels([ScoreLevel(name="Below", score_value=3.0, color="#dc3545")])
    assert recorder.body() == [
        {"name": "Below", "scoreValue": 3.0, "color": "#dc3545", "displayOrder": 0}
    ]


def test_reset_with_empty_body():
    """An empty response body is returned as None."""
    api, recorder = _client({("POST", "/api/score-levels/reset"): (200, None)})
    assert api.reset_score_levels() is None
    assert recorder.requests[0].method == "POST"


def test_http_error_propagates():
    """Server errors surface as httpx status errors."""
    api, _ = _client({("GET", "/api/departments"): (500, {"error": "boom"})})
    with pytest.raises(httpx.HTTPStatusError):
        api.list_departments()


def test_list_departments_parses_tree():
    """The nested department tree is parsed, numeric actual values kept as text."""
    api, _ = _client({
        ("GET", "/api/departments"): (200, [{
            "id": "d1",
            "name": "Sales",
            "objectives": [{
                "id": "o1",
                "name": "Grow",
                "weight": 100,
                "keyResults": [{
                    "id": "kr1",
                    "name": "Revenue",
                    "metricType": "HIGHER_BETTER",
                    "actualValue": 42,
                    "thresholds": {"below": 1, "meets": 2, "good": 3, "veryGood": 4, "exceptional": 5},
                }],
            }],
        }]),
    })
    departments = api.list_departments()
    assert departments[0].objectives[0].key_results[0].actual_value == "42"


def test_update_actual_value():
    """Actual values are PUT as {"actualValue": ...} and the rescored copy returned."""
    api, recorder = _client({
        ("PUT", "/api/key-results/kr1/actual-value"): (
            200,
            {"id": "kr1", "name": "Revenue", "actualValue": "12,5",
             "score": {"score": 4.5, "level": "good", "color": "#5cb85c", "percentage": 75}},
        ),
    })
    saved = api.update_actual_value("kr1", "12,5")
    assert recorder.body() == {"actualValue": "12,5"}
    assert saved.score.score == 4.5


def test_department_scores():
    """A partial score breakdown parses with absent fields as None."""
    api, _ = _client({
        ("GET", "/api/departments/d1/scores"): (200, {
            "automaticOkrScore": 4.6,
            "directorEvaluation": 4.625,
            "directorStars": 3,
            "hasDirectorEvaluation": True,
        }),
    })
    result = api.get_department_scores("d1")
    assert result.director_stars == 3
    assert result.final_combined_score is None


def test_crud_paths():
    """Create and delete calls hit the nested resource paths."""
    api, recorder = _client({
        ("POST", "/api/departments"): (201, {"id": "d1", "name": "Ops"}),
        ("POST", "/api/departments/d1/objectives"): (201, {"id": "o1", "name": "Ship"}),
        ("POST", "/api/objectives/o1/key-results"): (201, {"id": "k1", "name": "Lead time"}),
        ("DELETE", "/api/key-results/k1"): (204, None),
        ("DELETE", "/api/objectives/o1"): (204, None),
        ("DELETE", "/api/departments/d1"): (204, None),
    })
    assert api.create_department({"name": "Ops"}).id == "d1"
    assert api.create_objective("d1", {"name": "Ship", "weight": 100}).id == "o1"
    assert api.create_key_result("o1", {"name": "Lead time"}).id == "k1"
    api.delete_key_result("k1")
    api.delete_objective("o1")
    api.delete_department("d1")
    assert [r.method for r in recorder.requests] == ["POST", "POST", "POST", "DELETE", "DELETE", "DELETE"]


def test_create_evaluation():
    """Evaluation requests are sent as camelCase payloads."""
    api, recorder = _client({
        ("POST", "/api/evaluations"): (201, {
            "id": "e1",
            "evaluatorType": "HR",
            "targetType": "DEPARTMENT",
            "targetId": "d1",
            "letterRating": "C",
            "status": "SUBMITTED",
        }),
    })
    evaluation = api.create_evaluation(evaluation_request(EvaluatorType.HR, "d1", letter="c"))
    assert evaluation.target_type is TargetType.DEPARTMENT
    assert recorder.body()["letterRating"] == "C"
    assert "starRating" not in recorder.body()


def test_load_demo_data():
    """Demo loading returns the seeded departments."""
    api, _ = _client({("POST", "/api/demo/load"): (200, [{"id": "d1", "name": "Demo"}])})
    assert [d.name for d in api.load_demo_data()] == ["Demo"]


def test_defaults_from_settings(monkeypatch):
    """Without arguments the client takes its API root from settings."""
    monkeypatch.setenv("API_BASE_URL", "http://configured/api/")
    with OkrApiClient() as api:
        assert api.base_url == "http://configured/api"
