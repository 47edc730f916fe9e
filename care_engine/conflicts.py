from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from .gateway import AvailabilityGateway
from .models import AppointmentSlot, ConflictResult, ConflictType

logger = logging.getLogger(__name__)

CONFIRMED = "confirmed"


def _booking_date(booking: dict[str, Any]) -> str:
    value = booking.get("date")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value or "")[:10]


def _spanned_dates(slots: list[AppointmentSlot]) -> list[date]:
    seen: dict[date, None] = {}
    for slot in slots:
        seen.setdefault(slot.date, None)
    return list(seen)


@dataclass
class ConflictResolver:
    """Detects patient double-booking, then doctor overbooking.

    Detection is advisory: a lookup failure is reported as no conflict so that
    scheduling can still proceed.
    """

    gateway: AvailabilityGateway

    def detect(self, candidate_slots: list[AppointmentSlot], patient_id: str) -> ConflictResult:
        if not candidate_slots:
            return ConflictResult(has_conflict=False)
        try:
            patient_conflict = self._check_patient(candidate_slots, patient_id)
            if patient_conflict.has_conflict:
                return patient_conflict
            return self._check_doctors(candidate_slots)
        except Exception as exc:
            logger.warning("Conflict check failed; treating as no conflict. Error: %s", exc)
            return ConflictResult(has_conflict=False)

    def _check_patient(
        self, candidate_slots: list[AppointmentSlot], patient_id: str
    ) -> ConflictResult:
        bookings = self.gateway.find_patient_bookings(
            patient_id=patient_id,
            status=CONFIRMED,
            dates=_spanned_dates(candidate_slots),
        )
        if not bookings:
            return ConflictResult(has_conflict=False)

        booked_dates = {_booking_date(item) for item in bookings}
        alternatives = [
            slot for slot in candidate_slots if slot.date.isoformat() not in booked_dates
        ]
        return ConflictResult(
            has_conflict=True,
            conflict_type=ConflictType.PATIENT_DOUBLE_BOOKING,
            resolution="Find alternative slots on different dates",
            alternative_slots=alternatives,
        )

    def _check_doctors(self, candidate_slots: list[AppointmentSlot]) -> ConflictResult:
        slots_by_doctor: dict[str, list[AppointmentSlot]] = {}
        for slot in candidate_slots:
            slots_by_doctor.setdefault(slot.doctor_id, []).append(slot)

        for doctor_id, doctor_slots in slots_by_doctor.items():
            bookings = self.gateway.find_doctor_bookings(
                doctor_id=doctor_id,
                status=CONFIRMED,
                dates=_spanned_dates(doctor_slots),
            )
            if bookings:
                return ConflictResult(
                    has_conflict=True,
                    conflict_type=ConflictType.DOCTOR_UNAVAILABLE,
                    resolution="Find slots with different doctors or dates",
                    alternative_slots=[
                        slot for slot in candidate_slots if slot.doctor_id != doctor_id
                    ],
                )
        return ConflictResult(has_conflict=False)
