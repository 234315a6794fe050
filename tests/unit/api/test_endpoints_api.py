"""
API tests for the v1 endpoints.

The text generator dependency is replaced so no request ever leaves the
process; coaching endpoints therefore exercise their fallback paths or a
scripted model reply.
"""

import json

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_session_store, get_text_generator
from app.main import app
from app.repcoach.session import SessionStore
from app.services.text_generation import GenerationResult, UnavailableTextGenerator


class _FixedGenerator:
    def __init__(self, text: str):
        self.text = text

    def generate(self, system, messages, sampler=None, tools=None):
        return GenerationResult(text=self.text)


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_text_generator] = lambda: UnavailableTextGenerator()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


_PROFILE = {
    "training_age_months": 24,
    "sessions_per_week_trailing_8w": 3,
    "relative_strength_ratio": 1.2,
    "exposure_count_by_movement_pattern": {"squat": 30},
}
_SESSION = {"total_sets": 4, "total_reps": 30, "avg_reps_in_reserve": 2}
_SIGNAL = {"amplitude_drop_pct": 15, "rate_of_rise_drop_pct": 20, "symmetry_pct": 95}
_CONTEXT = {
    "readiness": 82,
    "hours_since_last_same_muscle": 48,
    "weekly_sets_done": 4,
    "weekly_sets_target": 12,
    "fatigue": {"amplitude_drop_pct": 5, "rate_of_rise_drop_pct": 5},
    "symmetry_pct": 95,
}


class TestMeta:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert "text_generation" in body

    def test_root(self, client):
        assert client.get("/").status_code == 200


class TestSignalApi:

    def test_zone(self, client):
        amps = [1.0, 1.0, 1.02, 1.04, 1.06, 1.08, 1.12, 1.16]
        reps = [
            {"index": i + 1, "normalized_amplitude": a, "signal_confidence": 0.9}
            for i, a in enumerate(amps)
        ]
        resp = client.post("/api/v1/signal/zone", json={"reps": reps})
        assert resp.status_code == 200
        assert resp.json() == {"zone": "in_zone", "rep_count": 8, "fatigue_rep": 8}

    def test_empty_set(self, client):
        resp = client.post("/api/v1/signal/zone", json={"reps": []})
        assert resp.json()["zone"] == "building"

    def test_invalid_rep(self, client):
        reps = [{"index": 0, "normalized_amplitude": 1.0, "signal_confidence": 0.9}]
        assert client.post("/api/v1/signal/zone", json={"reps": reps}).status_code == 422


class TestRecoveryApi:

    def test_estimate(self, client):
        resp = client.post("/api/v1/recovery/estimate", json={
            "profile": _PROFILE, "session": _SESSION, "signal": _SIGNAL,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["level"] == "intermediate"
        assert body["t80_hours"] == 58
        assert body["t85_hours"] == 78
        assert body["readiness_curve"][0] == {"hours": 0, "readiness": 65.0}

    def test_what_if(self, client):
        resp = client.post("/api/v1/recovery/what-if", json={
            "profile": _PROFILE, "session": _SESSION, "signal": _SIGNAL,
            "changes": {"tags": ["heavy_singles"]},
        })
        assert resp.status_code == 200
        assert resp.json()["delta_t80_hours"] == 12

    @pytest.mark.parametrize("changes", [
        {"bogus": 1},
        {"profile": {}},
        {"total_sets": -1},
    ])
    def test_what_if_rejects_bad_changes(self, client, changes):
        resp = client.post("/api/v1/recovery/what-if", json={
            "profile": _PROFILE, "session": _SESSION, "signal": _SIGNAL,
            "changes": changes,
        })
        assert resp.status_code == 422


class TestPlanApi:

    def test_decide(self, client):
        resp = client.post("/api/v1/plan/decide", json=_CONTEXT)
        assert resp.status_code == 200
        body = resp.json()
        assert body["plan"]["mode"] == "TRAIN"
        assert body["trace"]["chosen_id"] == "TRAIN"

    def test_severe(self, client):
        ctx = dict(_CONTEXT, fatigue={"amplitude_drop_pct": 35, "rate_of_rise_drop_pct": 45})
        assert client.post("/api/v1/plan/decide", json=ctx).json()["plan"]["mode"] == "FULL_REST"


class TestCoachApi:

    def test_reply_pain_flag(self, client):
        resp = client.post("/api/v1/coach/reply", json={
            "app_surface": "working_set", "safety": {"pain_flag": True},
        })
        assert resp.status_code == 200
        assert resp.json()["source"] == "safety"

    def test_reply_fallback_without_generator(self, client):
        resp = client.post("/api/v1/coach/reply", json={"app_surface": "top_set"})
        body = resp.json()
        assert body["speak"] is True
        assert body["source"] == "fallback"

    def test_reply_from_model(self, client):
        reply = {"hook": "Strong rep.", "action": "Add five pounds.", "topic": "load"}
        app.dependency_overrides[get_text_generator] = lambda: _FixedGenerator(json.dumps(reply))
        resp = client.post("/api/v1/coach/reply", json={"app_surface": "working_set"})
        assert resp.json()["text"] == "Strong rep. Add five pounds."

    def test_home_fallback(self, client, store):
        resp = client.post("/api/v1/coach/home", json={
            "session_id": "lifter-1", "context": dict(_CONTEXT, hours_since_last_same_muscle=6),
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "suggestion"
        assert body["mode"] == "ACTIVE_RECOVERY"
        assert "lifter-1" in store

    def test_end_session(self, client, store):
        store.get("lifter-2")
        resp = client.delete("/api/v1/coach/sessions/lifter-2")
        assert resp.status_code == 204
        assert "lifter-2" not in store
