from __future__ import annotations

from datetime import date
from typing import Any, Protocol, Sequence

from .models import AppointmentSlot, SimilarCase


class ReservationError(RuntimeError):
    pass


class SlotUnavailableError(ReservationError):
    pass


class AppointmentNotFoundError(LookupError):
    pass


class AvailabilityGateway(Protocol):
    """Boundary to the availability/record store.

    Read methods report failures as empty results (``[]`` or ``None``) so
    callers always receive a defined input. ``reserve_slot`` is the only
    commit path and raises ``ReservationError`` when the write does not land;
    ``release_slot`` raises on failure and leaves best-effort handling to the
    caller. ``log_activity`` never raises.
    """

    def find_slots(
        self,
        *,
        department: str,
        start_date: date,
        end_date: date,
        doctor_id: str | None = None,
        limit: int = 20,
    ) -> list[AppointmentSlot]:
        ...

    def find_patient_bookings(
        self, *, patient_id: str, status: str, dates: Sequence[date]
    ) -> list[dict[str, Any]]:
        ...

    def find_doctor_bookings(
        self, *, doctor_id: str, status: str, dates: Sequence[date]
    ) -> list[dict[str, Any]]:
        ...

    def reserve_slot(self, *, slot_id: str, patient_id: str, reason: str) -> None:
        ...

    def release_slot(self, appointment_id: str) -> None:
        ...

    def count_waiting(self, department: str) -> int | None:
        ...

    def find_similar_cases(
        self, embedding: Sequence[float], *, limit: int = 10, min_similarity: float = 0.0
    ) -> list[SimilarCase]:
        ...

    def add_case(
        self,
        *,
        symptoms: str,
        severity: str,
        department: str,
        embedding: Sequence[float],
        case_id: str | None = None,
    ) -> str:
        ...

    def log_activity(self, *, agent: str, activity: str, data: dict[str, Any]) -> None:
        ...
