from datetime import date

import pytest

from care_engine.config import EngineConfig
from care_engine.database import SQLiteAvailabilityGateway
from care_engine.models import PatientContext, Severity, TriageSuggestion
from care_engine.triage import TriageEngine, calculate_confidence, extract_symptom_list


def _setup_gateway(tmp_path) -> SQLiteAvailabilityGateway:
    gateway = SQLiteAvailabilityGateway(str(tmp_path / "triage_test.db"))
    gateway.init_db()
    return gateway


def _context(age: int = 45, history: list[str] | None = None) -> PatientContext:
    return PatientContext(
        patient_id="p-1",
        age=age,
        gender="male",
        medical_history=history or [],
        allergies=["penicillin"],
        current_medications=["metformin"],
    )


class _KeywordEmbedder:
    """Maps text onto a tiny bag-of-words vector."""

    vocabulary = ("rash", "itch", "tired", "joint", "fever")

    def embed(self, text: str) -> list[float]:
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self.vocabulary]


class _FailingEmbedder:
    def embed(self, text: str) -> list[float]:
        raise RuntimeError("vector service offline")


class _FailingReasoner:
    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        raise RuntimeError("model outage")


class _FixedReasoner:
    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        return TriageSuggestion(
            department="Cardiology",
            severity=Severity.HIGH,
            reasoning="Model thinks this is cardiac.",
            confidence=0.9,
        )


class _QueueGateway:
    def __init__(self, waiting):
        self.waiting = waiting

    def count_waiting(self, department: str):
        if isinstance(self.waiting, Exception):
            raise self.waiting
        return self.waiting


def test_critical_symptoms_route_to_emergency(tmp_path) -> None:
    engine = TriageEngine(gateway=_setup_gateway(tmp_path))
    analysis = engine.analyze_and_route(
        "Severe chest pain radiating to left arm, difficulty breathing",
        _context(age=58),
    )

    assert analysis.severity == Severity.CRITICAL
    assert analysis.department == "Emergency"
    assert analysis.estimated_wait_time == "Immediate"
    assert analysis.confidence == 0.7
    assert analysis.similar_cases == 0
    assert analysis.symptoms == [
        "Severe chest pain radiating to left arm",
        "difficulty breathing",
    ]
    assert analysis.reasoning.startswith(
        'Based on the reported symptoms: "Severe chest pain radiating to left arm, '
        'difficulty breathing". Severity assessed as critical priority. '
        "Recommended department: Emergency."
    )


def test_triage_logs_completed_activity(tmp_path) -> None:
    gateway = _setup_gateway(tmp_path)
    engine = TriageEngine(gateway=gateway)
    engine.analyze_and_route("rash on arm", _context())

    items = gateway.recent_activity()
    assert items[0]["activity"] == "triage_completed"
    assert items[0]["agent"] == "patient-triage-agent"
    assert items[0]["data"]["department"] == "Dermatology"


def test_reasoner_failure_uses_default_suggestion(tmp_path) -> None:
    engine = TriageEngine(gateway=_setup_gateway(tmp_path), reasoner=_FailingReasoner())
    analysis = engine.analyze_and_route("itchy rash", _context())

    assert analysis.department == "Dermatology"
    assert analysis.suggestion.department == "General Medicine"
    assert analysis.suggestion.severity == Severity.MEDIUM
    assert analysis.suggestion.confidence == 0.5
    assert "default routing applied" in analysis.reasoning


def test_reasoner_suggestion_does_not_override_classification(tmp_path) -> None:
    engine = TriageEngine(gateway=_setup_gateway(tmp_path), reasoner=_FixedReasoner())
    analysis = engine.analyze_and_route("itchy rash", _context())

    assert analysis.severity == Severity.LOW
    assert analysis.department == "Dermatology"
    assert analysis.suggestion.department == "Cardiology"
    assert "Model suggestion: Cardiology (high, confidence 0.90)." in analysis.reasoning


def test_embedder_failure_yields_zero_similar_cases(tmp_path) -> None:
    engine = TriageEngine(gateway=_setup_gateway(tmp_path), embedder=_FailingEmbedder())
    analysis = engine.analyze_and_route("tired all week", _context())
    assert analysis.similar_cases == 0
    assert analysis.severity == Severity.LOW


def test_similar_cases_drive_severity_and_department(tmp_path) -> None:
    gateway = _setup_gateway(tmp_path)
    engine = TriageEngine(gateway=gateway, embedder=_KeywordEmbedder())
    for _ in range(3):
        engine.record_case(symptoms="tired and joint ache", severity="high", department="Rheumatology")
    engine.record_case(symptoms="fever", severity="low", department="General Medicine")

    analysis = engine.analyze_and_route("tired, joint ache", _context())

    # The orthogonal fever case scores 0.0 and is kept at the default threshold.
    assert analysis.similar_cases == 4
    assert "Analysis based on 4 similar historical cases" in analysis.reasoning


def test_min_similarity_filters_unrelated_cases(tmp_path) -> None:
    gateway = _setup_gateway(tmp_path)
    config = EngineConfig(min_case_similarity=0.5)
    engine = TriageEngine(gateway=gateway, config=config, embedder=_KeywordEmbedder())
    for _ in range(3):
        engine.record_case(symptoms="tired", severity="high", department="Rheumatology")
    engine.record_case(symptoms="fever", severity="low", department="General Medicine")

    analysis = engine.analyze_and_route("so tired", _context())

    assert analysis.similar_cases == 3
    assert analysis.severity == Severity.HIGH
    assert analysis.department == "Rheumatology"
    assert analysis.estimated_wait_time == "5-15 minutes"


def test_record_case_without_embedding_is_skipped(tmp_path) -> None:
    engine = TriageEngine(gateway=_setup_gateway(tmp_path))
    assert engine.record_case(symptoms="rash", severity=Severity.LOW, department="Dermatology") is None


@pytest.mark.parametrize(
    ("waiting", "expected"),
    [
        (0, "15-30 minutes"),
        (2, "15-30 minutes"),
        (3, "30-60 minutes"),
        (5, "30-60 minutes"),
        (6, "1-2 hours"),
        (None, "30-60 minutes"),
        (RuntimeError("queue offline"), "30-60 minutes"),
    ],
)
def test_wait_time_follows_queue_depth(waiting, expected) -> None:
    engine = TriageEngine(gateway=_QueueGateway(waiting))
    assert engine.estimate_wait_time("Dermatology", Severity.LOW) == expected
    assert engine.estimate_wait_time("Dermatology", Severity.MEDIUM) == expected


def test_wait_time_for_urgent_severities_ignores_queue() -> None:
    engine = TriageEngine(gateway=_QueueGateway(RuntimeError("not consulted")))
    assert engine.estimate_wait_time("Emergency", Severity.CRITICAL) == "Immediate"
    assert engine.estimate_wait_time("Neurology", Severity.HIGH) == "5-15 minutes"


def test_waiting_queue_is_read_from_store(tmp_path) -> None:
    gateway = _setup_gateway(tmp_path)
    for index in range(4):
        gateway.create_slot(
            department="Dermatology",
            doctor_id="dr-kim",
            doctor_name="Dr. Kim",
            slot_date=date(2024, 1, 1),
            time_slot=f"0{index}:00",
            status="waiting",
        )
    engine = TriageEngine(gateway=gateway)
    assert engine.estimate_wait_time("Dermatology", Severity.LOW) == "30-60 minutes"


def test_confidence_rules() -> None:
    assert calculate_confidence(0, Severity.LOW) == 0.5
    assert calculate_confidence(6, Severity.MEDIUM) == 0.7
    assert calculate_confidence(11, Severity.HIGH) == 0.8
    assert calculate_confidence(11, Severity.CRITICAL) == 1.0
    assert calculate_confidence(5, Severity.CRITICAL) == 0.7


def test_symptom_list_splits_on_punctuation() -> None:
    assert extract_symptom_list("Fever; cough. sore throat,, ") == ["Fever", "cough", "sore throat"]
    assert extract_symptom_list("") == []
