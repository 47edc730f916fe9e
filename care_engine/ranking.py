from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Callable

from .database import utc_now
from .models import AppointmentRequest, AppointmentSlot, TimeBand, Urgency

TIME_BAND_HOURS = {
    TimeBand.MORNING: (8, 12),
    TimeBand.AFTERNOON: (12, 17),
    TimeBand.EVENING: (17, 20),
}
MAX_SCORE = 30


def _as_band(value: TimeBand | str) -> TimeBand | None:
    try:
        return value if isinstance(value, TimeBand) else TimeBand(str(value).lower())
    except ValueError:
        return None


@dataclass
class SlotRanker:
    """Orders candidate slots by an additive preference score.

    Urgent requests favour the nearest dates, a slot inside a requested time
    band earns 5 points, and the requested doctor earns 10. Scores are
    converted to ``confidence = min(0.5 + score / 30, 1.0)``. Sorting is
    stable, so equal scores keep the incoming date/time order.
    """

    clock: Callable[[], datetime] = field(default=utc_now)

    def rank(
        self, candidate_slots: list[AppointmentSlot], request: AppointmentRequest
    ) -> list[AppointmentSlot]:
        now = self.clock()
        bands = {band for band in map(_as_band, request.preferred_time_bands) if band}
        for slot in candidate_slots:
            score = self._score(slot, request, bands, now)
            slot.score = score
            slot.confidence = min(0.5 + score / MAX_SCORE, 1.0)
            slot.reasoning = (
                f"Score: {score}/{MAX_SCORE}. "
                f"Matches {'most' if score > 15 else 'some'} preferences."
            )
        return sorted(candidate_slots, key=lambda slot: slot.score, reverse=True)

    def _score(
        self,
        slot: AppointmentSlot,
        request: AppointmentRequest,
        bands: set[TimeBand],
        now: datetime,
    ) -> int:
        score = 0
        if request.urgency == Urgency.HIGH:
            slot_start = datetime.combine(slot.date, time.min)
            days_from_now = math.floor((slot_start - now).total_seconds() / 86400)
            score += max(0, 10 - days_from_now)

        hour = slot.hour
        if hour is not None:
            for band, (start, end) in TIME_BAND_HOURS.items():
                if band in bands and start <= hour < end:
                    score += 5

        if request.doctor_id and slot.doctor_id == request.doctor_id:
            score += 10
        return score
