from __future__ import annotations

import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware

from care_engine import (
    EngineConfig,
    ReservationError,
    SQLiteAvailabilityGateway,
    SchedulingEngine,
    TriageEngine,
    build_embedder,
    build_reasoner,
)
from care_engine.models import (
    AppointmentRequest,
    AppointmentSlot,
    ConflictResult,
    PatientContext,
    SchedulingOutcome,
    SymptomAnalysis,
    TimeBand,
    Urgency,
)
from care_engine.observability import Observability, configure_logging

from .schemas import (
    ActivityResponse,
    AppointmentRequestIn,
    AppointmentSlotOut,
    CancelResponse,
    CaseRecordIn,
    CaseRecordResponse,
    ConflictOut,
    HealthResponse,
    ScheduleResponse,
    SymptomAnalysisOut,
    TriageRequest,
    TriageSuggestionOut,
)


def _parse_origins(raw: str | None) -> list[str]:
    if not raw:
        return ["http://localhost:4200", "http://127.0.0.1:4200"]
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class EngineServices:
    scheduling: SchedulingEngine
    triage: TriageEngine
    observability: Observability
    reasoner_label: str
    embedder_label: str


def _build_services() -> EngineServices:
    config = EngineConfig.from_env()
    configure_logging(config.log_level)
    gateway = SQLiteAvailabilityGateway(
        config.db_path,
        strict_reservation=config.strict_reservation,
    )
    gateway.init_db()
    gateway.seed_slots_if_empty(config)
    reasoner, reasoner_label = build_reasoner(config)
    embedder, embedder_label = build_embedder(config)
    return EngineServices(
        scheduling=SchedulingEngine(gateway=gateway, config=config),
        triage=TriageEngine(
            gateway=gateway,
            config=config,
            reasoner=reasoner,
            embedder=embedder,
            reasoner_label=reasoner_label,
            embedder_label=embedder_label,
        ),
        observability=Observability(gateway),
        reasoner_label=reasoner_label,
        embedder_label=embedder_label,
    )


def _to_request(payload: AppointmentRequestIn) -> AppointmentRequest:
    return AppointmentRequest(
        patient_id=payload.patient_id,
        department=payload.department,
        doctor_id=payload.doctor_id,
        preferred_dates=list(payload.preferred_dates),
        preferred_time_bands={TimeBand(item) for item in payload.preferred_times},
        duration_minutes=payload.duration,
        urgency=Urgency(payload.urgency),
        reason=payload.reason,
    )


def _slot_out(value: AppointmentSlot) -> AppointmentSlotOut:
    return AppointmentSlotOut(
        slot_id=value.slot_id,
        doctor_id=value.doctor_id,
        doctor_name=value.doctor_name,
        date=value.date,
        time=value.time,
        duration=value.duration_minutes,
        department=value.department,
        confidence=value.confidence,
        reasoning=value.reasoning,
    )


def _conflict_out(value: ConflictResult) -> ConflictOut:
    return ConflictOut(
        has_conflict=value.has_conflict,
        conflict_type=value.conflict_type.value if value.conflict_type else None,
        resolution=value.resolution,
        alternative_slots=[_slot_out(item) for item in value.alternative_slots]
        if value.alternative_slots is not None
        else None,
    )


def _schedule_out(value: SchedulingOutcome) -> ScheduleResponse:
    return ScheduleResponse(
        state=value.state.value,
        slot=_slot_out(value.slot) if value.slot else None,
        conflict=_conflict_out(value.conflict) if value.conflict else None,
        note=value.note,
    )


def _analysis_out(value: SymptomAnalysis) -> SymptomAnalysisOut:
    suggestion = value.suggestion
    return SymptomAnalysisOut(
        symptoms=value.symptoms,
        severity=value.severity.value,
        department=value.department,
        reasoning=value.reasoning,
        confidence=value.confidence,
        similar_cases=value.similar_cases,
        estimated_wait_time=value.estimated_wait_time,
        suggestion=TriageSuggestionOut(
            department=suggestion.department,
            severity=suggestion.severity.value,
            reasoning=suggestion.reasoning,
            confidence=suggestion.confidence,
        )
        if suggestion
        else None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.engine_services = _build_services()
    try:
        yield
    finally:
        if hasattr(app.state, "engine_services"):
            delattr(app.state, "engine_services")


def get_services(request: Request) -> EngineServices:
    services = getattr(request.app.state, "engine_services", None)
    if not services:
        raise HTTPException(status_code=503, detail="Engines are not initialized.")
    return services


ServicesDep = Annotated[EngineServices, Depends(get_services)]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health(services: ServicesDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        service="care-decision-engine",
        version="1.0.0",
        reasoner=services.reasoner_label,
        embedder=services.embedder_label,
    )


@router.post(
    "/api/v1/appointments/schedule",
    response_model=ScheduleResponse,
    tags=["appointments"],
)
def schedule_appointment(payload: AppointmentRequestIn, services: ServicesDep) -> ScheduleResponse:
    try:
        outcome = services.scheduling.schedule_with_outcome(_to_request(payload))
    except ReservationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _schedule_out(outcome)


@router.post(
    "/api/v1/appointments/{appointment_id}/cancel",
    response_model=CancelResponse,
    tags=["appointments"],
)
def cancel_appointment(appointment_id: str, services: ServicesDep) -> CancelResponse:
    return CancelResponse(
        appointment_id=appointment_id,
        cancelled=services.scheduling.cancel(appointment_id),
    )


@router.post(
    "/api/v1/appointments/{appointment_id}/reschedule",
    response_model=ScheduleResponse,
    tags=["appointments"],
)
def reschedule_appointment(
    appointment_id: str,
    payload: AppointmentRequestIn,
    services: ServicesDep,
) -> ScheduleResponse:
    try:
        outcome = services.scheduling.reschedule_with_outcome(
            appointment_id, _to_request(payload)
        )
    except ReservationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _schedule_out(outcome)


@router.post("/api/v1/triage", response_model=SymptomAnalysisOut, tags=["triage"])
def triage(payload: TriageRequest, services: ServicesDep) -> SymptomAnalysisOut:
    context = PatientContext(
        patient_id=payload.patient.patient_id,
        age=payload.patient.age,
        gender=payload.patient.gender,
        medical_history=list(payload.patient.medical_history),
        allergies=list(payload.patient.allergies),
        current_medications=list(payload.patient.current_medications),
    )
    return _analysis_out(services.triage.analyze_and_route(payload.symptoms, context))


@router.post(
    "/api/v1/triage/cases",
    response_model=CaseRecordResponse,
    tags=["triage"],
)
def record_case(payload: CaseRecordIn, services: ServicesDep) -> CaseRecordResponse:
    case_id = services.triage.record_case(
        symptoms=payload.symptoms,
        severity=payload.severity,
        department=payload.department,
    )
    return CaseRecordResponse(case_id=case_id, stored=case_id is not None)


@router.get("/api/v1/activity", response_model=ActivityResponse, tags=["activity"])
def recent_activity(
    services: ServicesDep,
    limit: int = Query(default=30, ge=1, le=500),
) -> ActivityResponse:
    return ActivityResponse(**services.observability.snapshot(limit=limit))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Care Decision Engine API",
        version="1.0.0",
        description=(
            "Appointment slot selection with conflict resolution and preference "
            "ranking, plus symptom severity triage and department routing."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(os.getenv("CARE_API_CORS_ORIGINS")),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
