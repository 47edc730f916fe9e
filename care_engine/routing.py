from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .models import Severity, SimilarCase

EMERGENCY = "Emergency"
GENERAL_MEDICINE = "General Medicine"


def _default_department_keywords() -> dict[str, tuple[str, ...]]:
    return {
        "Cardiology": ("chest pain", "heart", "palpitations", "cardiac"),
        "Neurology": ("headache", "dizziness", "seizure", "stroke", "neurological"),
        "Orthopedics": ("bone", "fracture", "joint pain", "sprain", "back pain"),
        "Gastroenterology": ("stomach", "abdominal", "nausea", "vomiting", "digestive"),
        "Respiratory": ("breathing", "cough", "asthma", "lung", "respiratory"),
        "Dermatology": ("skin", "rash", "itch", "dermatological"),
    }


@dataclass
class DepartmentRouter:
    # Table order is the tie-break when several departments match.
    department_keywords: dict[str, tuple[str, ...]] = field(
        default_factory=_default_department_keywords
    )

    def route(
        self,
        symptom_text: str,
        severity: Severity | str,
        similar_cases: Sequence[SimilarCase] = (),
    ) -> str:
        if severity == Severity.CRITICAL:
            return EMERGENCY

        normalized = (symptom_text or "").lower()
        for department, keywords in self.department_keywords.items():
            if any(keyword in normalized for keyword in keywords):
                return department

        if similar_cases:
            return self.majority_department(similar_cases)
        return GENERAL_MEDICINE

    @staticmethod
    def majority_department(cases: Sequence[SimilarCase]) -> str:
        counts: dict[str, int] = {}
        for case in cases:
            department = case.department or GENERAL_MEDICINE
            # Emergency is reserved for critical severity.
            if department == EMERGENCY:
                continue
            counts[department] = counts.get(department, 0) + 1
        if not counts:
            return GENERAL_MEDICINE
        # max() keeps the first department seen among equal counts.
        return max(counts, key=lambda department: counts[department])
