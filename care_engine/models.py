from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimeBand(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class ConflictType(str, Enum):
    PATIENT_DOUBLE_BOOKING = "patient_double_booking"
    DOCTOR_UNAVAILABLE = "doctor_unavailable"


class SchedulingState(str, Enum):
    QUERYING = "querying"
    CONFLICT_CHECK = "conflict-check"
    RANKING = "ranking"
    RESERVED = "reserved"
    REJECTED = "rejected"


SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


def severity_rank(value: Severity | str | None) -> int:
    """Numeric weight of a severity; unknown or missing values count as low."""
    try:
        severity = value if isinstance(value, Severity) else Severity(str(value).lower())
    except ValueError:
        return SEVERITY_RANK[Severity.LOW]
    return SEVERITY_RANK[severity]


@dataclass(frozen=True)
class AppointmentRequest:
    patient_id: str
    department: str
    preferred_dates: list[date]
    preferred_time_bands: frozenset[TimeBand]
    duration_minutes: int
    urgency: Urgency
    reason: str
    doctor_id: Optional[str] = None

    def __post_init__(self) -> None:
        # Stored as a frozenset so the same request can be ranked repeatedly.
        object.__setattr__(self, "preferred_time_bands", frozenset(self.preferred_time_bands))


@dataclass
class AppointmentSlot:
    slot_id: str
    doctor_id: str
    doctor_name: str
    date: date
    time: str
    duration_minutes: int
    department: str
    confidence: float = 0.8
    reasoning: str = "Available slot matching criteria"
    score: int = 0

    @property
    def hour(self) -> int | None:
        try:
            return int(self.time.split(":")[0])
        except (ValueError, AttributeError):
            return None


@dataclass
class ConflictResult:
    has_conflict: bool
    conflict_type: Optional[ConflictType] = None
    resolution: Optional[str] = None
    alternative_slots: Optional[list[AppointmentSlot]] = None


@dataclass
class SchedulingOutcome:
    state: SchedulingState
    slot: Optional[AppointmentSlot] = None
    conflict: Optional[ConflictResult] = None
    note: str = ""


@dataclass(frozen=True)
class PatientContext:
    patient_id: str
    age: int
    gender: str
    medical_history: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    current_medications: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SimilarCase:
    case_id: str
    symptoms: str
    severity: str
    department: str
    similarity: float = 0.0


@dataclass
class TriageSuggestion:
    department: str
    severity: Severity
    reasoning: str
    confidence: float


def default_suggestion() -> TriageSuggestion:
    return TriageSuggestion(
        department="General Medicine",
        severity=Severity.MEDIUM,
        reasoning="Reasoning service unavailable; default routing applied.",
        confidence=0.5,
    )


@dataclass(frozen=True)
class SymptomAnalysis:
    symptoms: list[str]
    severity: Severity
    department: str
    reasoning: str
    confidence: float
    similar_cases: int
    estimated_wait_time: str
    suggestion: Optional[TriageSuggestion] = None
