from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .config import EngineConfig
from .embeddings import NullSymptomEmbedder
from .gateway import AvailabilityGateway
from .models import (
    PatientContext,
    Severity,
    SimilarCase,
    SymptomAnalysis,
    TriageSuggestion,
    default_suggestion,
)
from .reasoner import HeuristicTriageReasoner
from .reasoner_protocol import SymptomEmbedder, TriageReasoner
from .routing import DepartmentRouter
from .severity import SeverityClassifier

logger = logging.getLogger(__name__)

AGENT_NAME = "patient-triage-agent"
SYMPTOM_SPLIT_RE = re.compile(r"[,;.]")


def extract_symptom_list(symptom_text: str) -> list[str]:
    return [part.strip() for part in SYMPTOM_SPLIT_RE.split(symptom_text or "") if part.strip()]


def calculate_confidence(similar_case_count: int, severity: Severity) -> float:
    confidence = 0.5
    if similar_case_count > 5:
        confidence += 0.2
    if similar_case_count > 10:
        confidence += 0.1
    if severity == Severity.CRITICAL:
        confidence += 0.2
    return round(min(confidence, 1.0), 2)


@dataclass
class TriageEngine:
    gateway: AvailabilityGateway
    config: EngineConfig = field(default_factory=EngineConfig)
    reasoner: TriageReasoner = field(default_factory=HeuristicTriageReasoner)
    embedder: SymptomEmbedder = field(default_factory=NullSymptomEmbedder)
    classifier: SeverityClassifier = field(default_factory=SeverityClassifier)
    router: DepartmentRouter = field(default_factory=DepartmentRouter)
    reasoner_label: str = "heuristic"
    embedder_label: str = "none"

    def analyze_and_route(self, symptom_text: str, context: PatientContext) -> SymptomAnalysis:
        logger.info("Starting triage analysis for patient=%s", context.patient_id)
        suggestion = self._suggest(symptom_text, context)

        similar_cases = self._search_similar_cases(symptom_text)
        logger.info("Found %d similar cases", len(similar_cases))

        severity = self.classifier.classify(symptom_text, context, similar_cases)
        department = self.router.route(symptom_text, severity, similar_cases)
        logger.info("Severity=%s department=%s", severity.value, department)

        analysis = SymptomAnalysis(
            symptoms=extract_symptom_list(symptom_text),
            severity=severity,
            department=department,
            reasoning=self._build_reasoning(
                symptom_text, severity, department, similar_cases, suggestion
            ),
            confidence=calculate_confidence(len(similar_cases), severity),
            similar_cases=len(similar_cases),
            estimated_wait_time=self.estimate_wait_time(department, severity),
            suggestion=suggestion,
        )
        self._log_activity(
            "triage_completed",
            {
                "patient_id": context.patient_id,
                "severity": severity.value,
                "department": department,
                "confidence": analysis.confidence,
                "similar_cases": analysis.similar_cases,
                "reasoner": self.reasoner_label,
            },
        )
        return analysis

    def estimate_wait_time(self, department: str, severity: Severity) -> str:
        if severity == Severity.CRITICAL:
            return "Immediate"
        if severity == Severity.HIGH:
            return "5-15 minutes"

        try:
            waiting = self.gateway.count_waiting(department)
        except Exception as exc:
            logger.warning("Queue depth unavailable for %s: %s", department, exc)
            waiting = None
        if waiting is None:
            return "30-60 minutes"
        if waiting < 3:
            return "15-30 minutes"
        if waiting < 6:
            return "30-60 minutes"
        return "1-2 hours"

    def record_case(
        self, *, symptoms: str, severity: Severity | str, department: str
    ) -> str | None:
        """Store a resolved case for future similar-case lookups; None without an embedding."""
        vector = self._embed(symptoms)
        if not vector:
            return None
        severity_value = severity.value if isinstance(severity, Severity) else str(severity)
        return self.gateway.add_case(
            symptoms=symptoms,
            severity=severity_value,
            department=department,
            embedding=vector,
        )

    def _suggest(self, symptom_text: str, context: PatientContext) -> TriageSuggestion:
        try:
            return self.reasoner.analyze(symptoms=symptom_text, context=context)
        except Exception as exc:
            logger.warning(
                "Reasoner %s unavailable; using default suggestion. Error: %s",
                self.reasoner_label,
                exc,
            )
            return default_suggestion()

    def _search_similar_cases(self, symptom_text: str) -> list[SimilarCase]:
        vector = self._embed(symptom_text)
        if not vector:
            return []
        try:
            return list(
                self.gateway.find_similar_cases(
                    vector,
                    limit=self.config.similar_case_limit,
                    min_similarity=self.config.min_case_similarity,
                )
            )
        except Exception as exc:
            logger.warning("Similar case search failed, continuing with limited data: %s", exc)
            return []

    def _embed(self, text: str) -> list[float]:
        try:
            return list(self.embedder.embed(text))
        except Exception as exc:
            logger.warning("Embedder %s failed: %s", self.embedder_label, exc)
            return []

    @staticmethod
    def _build_reasoning(
        symptom_text: str,
        severity: Severity,
        department: str,
        similar_cases: list[SimilarCase],
        suggestion: TriageSuggestion,
    ) -> str:
        reasons = [
            f'Based on the reported symptoms: "{symptom_text}"',
            f"Severity assessed as {severity.value} priority",
            f"Recommended department: {department}",
        ]
        if similar_cases:
            reasons.append(f"Analysis based on {len(similar_cases)} similar historical cases")
        reasoning = ". ".join(reasons) + "."
        return (
            f"{reasoning} Model suggestion: {suggestion.department} "
            f"({suggestion.severity.value}, confidence {suggestion.confidence:.2f}). "
            f"{suggestion.reasoning}"
        ).strip()

    def _log_activity(self, activity: str, data: dict[str, Any]) -> None:
        try:
            self.gateway.log_activity(agent=AGENT_NAME, activity=activity, data=data)
        except Exception as exc:
            logger.warning("Failed to log activity %s: %s", activity, exc)
