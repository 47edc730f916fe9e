from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import EngineConfig
from .conflicts import ConflictResolver
from .gateway import AvailabilityGateway
from .models import (
    AppointmentRequest,
    AppointmentSlot,
    ConflictResult,
    SchedulingOutcome,
    SchedulingState,
)
from .ranking import SlotRanker

logger = logging.getLogger(__name__)

AGENT_NAME = "appointment-scheduler-agent"


@dataclass
class SchedulingEngine:
    gateway: AvailabilityGateway
    config: EngineConfig = field(default_factory=EngineConfig)
    resolver: ConflictResolver | None = None
    ranker: SlotRanker | None = None

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = ConflictResolver(self.gateway)
        if self.ranker is None:
            self.ranker = SlotRanker()

    def schedule(self, request: AppointmentRequest) -> AppointmentSlot | None:
        return self.schedule_with_outcome(request).slot

    def schedule_with_outcome(self, request: AppointmentRequest) -> SchedulingOutcome:
        logger.info(
            "Scheduling patient=%s department=%s state=%s",
            request.patient_id,
            request.department,
            SchedulingState.QUERYING.value,
        )
        candidates = self._query_candidates(request)
        if not candidates:
            return self._reject("No available slots found.")

        logger.info(
            "Found %d candidate slots; state=%s",
            len(candidates),
            SchedulingState.CONFLICT_CHECK.value,
        )
        conflict = self.resolver.detect(candidates, request.patient_id)
        if conflict.has_conflict:
            chosen = self._resolve_conflict(conflict)
            if chosen is None:
                return self._reject("No alternative slots available.", conflict=conflict)
        else:
            logger.info("No conflicts; state=%s", SchedulingState.RANKING.value)
            chosen = self.ranker.rank(candidates, request)[0]

        self._reserve(chosen, request)
        logger.info(
            "Slot %s reserved on %s at %s; state=%s",
            chosen.slot_id,
            chosen.date.isoformat(),
            chosen.time,
            SchedulingState.RESERVED.value,
        )
        if conflict.has_conflict:
            return SchedulingOutcome(
                state=SchedulingState.RESERVED,
                slot=chosen,
                conflict=conflict,
                note=conflict.resolution or "Conflict resolved with an alternative slot.",
            )
        return SchedulingOutcome(
            state=SchedulingState.RESERVED,
            slot=chosen,
            note="Top-ranked slot reserved.",
        )

    def cancel(self, appointment_id: str) -> bool:
        try:
            self.gateway.release_slot(appointment_id)
        except Exception as exc:
            logger.warning("Failed to cancel appointment %s: %s", appointment_id, exc)
            return False
        logger.info("Appointment cancelled: %s", appointment_id)
        self._log_activity("appointment_cancelled", {"appointment_id": appointment_id})
        return True

    def reschedule(
        self, appointment_id: str, new_request: AppointmentRequest
    ) -> AppointmentSlot | None:
        return self.reschedule_with_outcome(appointment_id, new_request).slot

    def reschedule_with_outcome(
        self, appointment_id: str, new_request: AppointmentRequest
    ) -> SchedulingOutcome:
        logger.info("Rescheduling appointment %s", appointment_id)
        # Cancel and schedule are independent calls; a failed cancel does not stop scheduling.
        if not self.cancel(appointment_id):
            logger.warning(
                "Cancellation of %s failed; scheduling the new request anyway.",
                appointment_id,
            )
        return self.schedule_with_outcome(new_request)

    def _query_candidates(self, request: AppointmentRequest) -> list[AppointmentSlot]:
        if not request.preferred_dates:
            return []
        try:
            return self.gateway.find_slots(
                department=request.department,
                start_date=min(request.preferred_dates),
                end_date=max(request.preferred_dates),
                doctor_id=request.doctor_id,
                limit=self.config.slot_search_limit,
            )
        except Exception as exc:
            logger.warning(
                "Availability query failed; treating as no availability. Error: %s", exc
            )
            return []

    def _resolve_conflict(self, conflict: ConflictResult) -> AppointmentSlot | None:
        logger.info("Conflict detected: %s", conflict.conflict_type.value)
        if conflict.alternative_slots:
            logger.info("Found %d alternative slots", len(conflict.alternative_slots))
            return conflict.alternative_slots[0]
        return None

    def _reserve(self, slot: AppointmentSlot, request: AppointmentRequest) -> None:
        self.gateway.reserve_slot(
            slot_id=slot.slot_id,
            patient_id=request.patient_id,
            reason=request.reason,
        )
        self._log_activity(
            "slot_reserved",
            {
                "slot_id": slot.slot_id,
                "patient_id": request.patient_id,
                "doctor_id": slot.doctor_id,
                "date": slot.date.isoformat(),
                "time": slot.time,
            },
        )

    def _reject(self, note: str, *, conflict: ConflictResult | None = None) -> SchedulingOutcome:
        logger.info("%s state=%s", note, SchedulingState.REJECTED.value)
        return SchedulingOutcome(state=SchedulingState.REJECTED, conflict=conflict, note=note)

    def _log_activity(self, activity: str, data: dict) -> None:
        try:
            self.gateway.log_activity(agent=AGENT_NAME, activity=activity, data=data)
        except Exception as exc:
            logger.warning("Failed to log activity %s: %s", activity, exc)
