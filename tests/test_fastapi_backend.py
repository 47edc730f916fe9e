from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient

from backend.app.main import create_app
from care_engine.database import utc_now


def _client(tmp_path, monkeypatch) -> TestClient:
    monkeypatch.setenv("CARE_DB_PATH", str(tmp_path / "api_test.db"))
    monkeypatch.setenv("CARE_REASONER_MODE", "heuristic")
    monkeypatch.setenv("CARE_EMBEDDING_MODE", "none")
    app = create_app()
    return TestClient(app)


def _dates(*days: int) -> list[str]:
    today = utc_now().date()
    return [(today + timedelta(days=day)).isoformat() for day in days]


def _schedule_payload(**overrides) -> dict:
    payload = {
        "patient_id": "p-100",
        "department": "Cardiology",
        "preferred_dates": _dates(1, 3),
        "preferred_times": ["afternoon"],
        "duration": 30,
        "urgency": "high",
        "reason": "Follow-up for palpitations",
    }
    payload.update(overrides)
    return payload


def test_health_endpoint(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.get("/health")
        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "ok"
        assert payload["service"] == "care-decision-engine"
        assert payload["reasoner"] == "heuristic"
        assert payload["embedder"] == "none"


def test_schedule_cancel_and_activity_flow(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        scheduled = client.post("/api/v1/appointments/schedule", json=_schedule_payload())
        assert scheduled.status_code == 200
        body = scheduled.json()
        assert body["state"] == "reserved"
        slot = body["slot"]
        assert slot["department"] == "Cardiology"
        assert slot["date"] in _dates(1, 2, 3)
        assert 0.5 <= slot["confidence"] <= 1.0
        assert slot["reasoning"].startswith("Score: ")

        cancelled = client.post(f"/api/v1/appointments/{slot['slot_id']}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json() == {"appointment_id": slot["slot_id"], "cancelled": True}

        activity = client.get("/api/v1/activity", params={"limit": 10})
        assert activity.status_code == 200
        counts = activity.json()["counts"]
        assert counts["slot_reserved"] == 1
        assert counts["appointment_cancelled"] == 1


def test_schedule_without_availability_is_rejected(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post(
            "/api/v1/appointments/schedule",
            json=_schedule_payload(department="Podiatry"),
        )
        assert response.status_code == 200
        assert response.json()["state"] == "rejected"
        assert response.json()["slot"] is None


def test_schedule_requires_preferred_dates(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post(
            "/api/v1/appointments/schedule",
            json=_schedule_payload(preferred_dates=[]),
        )
        assert response.status_code == 422


def test_cancel_unknown_appointment(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post("/api/v1/appointments/does-not-exist/cancel")
        assert response.status_code == 200
        assert response.json()["cancelled"] is False


def test_reschedule_moves_appointment(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        first = client.post("/api/v1/appointments/schedule", json=_schedule_payload()).json()
        old_id = first["slot"]["slot_id"]

        moved = client.post(
            f"/api/v1/appointments/{old_id}/reschedule",
            json=_schedule_payload(preferred_dates=_dates(7), urgency="low"),
        )
        assert moved.status_code == 200
        body = moved.json()
        assert body["state"] == "reserved"
        assert body["slot"]["slot_id"] != old_id
        assert body["slot"]["date"] == _dates(7)[0]


def test_triage_endpoint_routes_critical_case(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post(
            "/api/v1/triage",
            json={
                "symptoms": "Severe chest pain radiating to left arm, difficulty breathing",
                "patient": {
                    "patient_id": "p-200",
                    "age": 58,
                    "gender": "male",
                    "medical_history": ["hypertension"],
                    "current_medications": ["lisinopril"],
                },
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["severity"] == "critical"
        assert body["department"] == "Emergency"
        assert body["estimated_wait_time"] == "Immediate"
        assert body["similar_cases"] == 0
        assert body["suggestion"]["severity"] == "critical"


def test_triage_endpoint_low_severity_uses_queue_estimate(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post(
            "/api/v1/triage",
            json={
                "symptoms": "itchy rash on forearm",
                "patient": {"patient_id": "p-201", "age": 30, "gender": "female"},
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["severity"] == "low"
        assert body["department"] == "Dermatology"
        assert body["estimated_wait_time"] == "15-30 minutes"


class _WordEmbedder:
    vocabulary = ("rash", "tired", "joint")

    def embed(self, text: str) -> list[float]:
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self.vocabulary]


def test_record_case_without_embedder_is_not_stored(tmp_path, monkeypatch) -> None:
    with _client(tmp_path, monkeypatch) as client:
        response = client.post(
            "/api/v1/triage/cases",
            json={"symptoms": "itchy rash", "severity": "low", "department": "Dermatology"},
        )
        assert response.status_code == 200
        assert response.json() == {"case_id": None, "stored": False}


def test_recorded_cases_feed_later_triage(tmp_path, monkeypatch) -> None:
    import backend.app.main as api

    monkeypatch.setattr(api, "build_embedder", lambda config: (_WordEmbedder(), "words"))
    with _client(tmp_path, monkeypatch) as client:
        for _ in range(2):
            recorded = client.post(
                "/api/v1/triage/cases",
                json={"symptoms": "tired joints", "severity": "high", "department": "Rheumatology"},
            )
            assert recorded.json()["stored"] is True

        response = client.post(
            "/api/v1/triage",
            json={
                "symptoms": "tired and sore joints",
                "patient": {"patient_id": "p-300", "age": 40, "gender": "female"},
            },
        )
        body = response.json()
        assert body["similar_cases"] == 2
        assert body["severity"] == "high"
        assert body["department"] == "Rheumatology"
