from __future__ import annotations

import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


TimeBandIn = Literal["morning", "afternoon", "evening"]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    reasoner: str
    embedder: str


class AppointmentRequestIn(BaseModel):
    patient_id: str = Field(min_length=1, max_length=100)
    department: str = Field(min_length=1, max_length=80)
    doctor_id: str | None = Field(default=None, max_length=100)
    preferred_dates: list[datetime.date] = Field(min_length=1, max_length=60)
    preferred_times: list[TimeBandIn] = Field(default_factory=list, max_length=3)
    duration: int = Field(default=30, ge=5, le=480)
    urgency: Literal["low", "medium", "high"] = "medium"
    reason: str = Field(default="", max_length=1000)


class AppointmentSlotOut(BaseModel):
    slot_id: str
    doctor_id: str
    doctor_name: str
    date: datetime.date
    time: str
    duration: int
    department: str
    confidence: float
    reasoning: str


class ConflictOut(BaseModel):
    has_conflict: bool
    conflict_type: str | None = None
    resolution: str | None = None
    alternative_slots: list[AppointmentSlotOut] | None = None


class ScheduleResponse(BaseModel):
    state: str
    slot: AppointmentSlotOut | None = None
    conflict: ConflictOut | None = None
    note: str = ""


class CancelResponse(BaseModel):
    appointment_id: str
    cancelled: bool


class PatientContextIn(BaseModel):
    patient_id: str = Field(min_length=1, max_length=100)
    age: int = Field(ge=0, le=120)
    gender: str = Field(min_length=1, max_length=20)
    medical_history: list[str] = Field(default_factory=list, max_length=100)
    allergies: list[str] = Field(default_factory=list, max_length=100)
    current_medications: list[str] = Field(default_factory=list, max_length=100)


class TriageRequest(BaseModel):
    symptoms: str = Field(min_length=3, max_length=4000)
    patient: PatientContextIn


class TriageSuggestionOut(BaseModel):
    department: str
    severity: str
    reasoning: str
    confidence: float


class SymptomAnalysisOut(BaseModel):
    symptoms: list[str]
    severity: str
    department: str
    reasoning: str
    confidence: float
    similar_cases: int
    estimated_wait_time: str
    suggestion: TriageSuggestionOut | None = None


class ActivityResponse(BaseModel):
    items: list[dict[str, Any]]
    counts: dict[str, int]


class CaseRecordIn(BaseModel):
    symptoms: str = Field(min_length=3, max_length=4000)
    severity: Literal["low", "medium", "high", "critical"]
    department: str = Field(min_length=1, max_length=80)


class CaseRecordResponse(BaseModel):
    case_id: str | None = None
    stored: bool
