from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import PatientContext, Severity, SimilarCase, severity_rank


@dataclass
class SeverityClassifier:
    """Strict priority cascade; the first layer that fires decides.

    1. critical keywords, 2. high-priority keywords, 3. mean severity of
    similar historical cases, 4. patient risk (age or history length),
    5. low.
    """

    critical_terms: tuple[str, ...] = (
        "chest pain",
        "difficulty breathing",
        "severe bleeding",
        "unconscious",
        "stroke",
        "heart attack",
        "severe trauma",
    )
    high_terms: tuple[str, ...] = (
        "high fever",
        "severe pain",
        "vomiting blood",
        "severe headache",
        "confusion",
        "seizure",
    )
    risk_age: int = 65
    risk_history_length: int = 3

    def classify(
        self,
        symptom_text: str,
        context: PatientContext,
        similar_cases: Sequence[SimilarCase] = (),
    ) -> Severity:
        normalized = (symptom_text or "").lower()

        if any(term in normalized for term in self.critical_terms):
            return Severity.CRITICAL
        if any(term in normalized for term in self.high_terms):
            return Severity.HIGH

        if similar_cases:
            average = self.average_severity(similar_cases)
            if average >= 3:
                return Severity.HIGH
            if average >= 2:
                return Severity.MEDIUM

        if context.age > self.risk_age or len(context.medical_history) > self.risk_history_length:
            return Severity.MEDIUM
        return Severity.LOW

    @staticmethod
    def average_severity(cases: Sequence[SimilarCase]) -> float:
        total = sum(severity_rank(case.severity) for case in cases)
        return total / len(cases)
