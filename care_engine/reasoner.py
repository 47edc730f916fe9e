from __future__ import annotations

from dataclasses import dataclass, field

from .models import PatientContext, Severity, TriageSuggestion
from .pii import redact_pii
from .routing import DepartmentRouter
from .severity import SeverityClassifier


@dataclass
class HeuristicTriageReasoner:
    """Deterministic reasoner that mimics the structured LLM suggestion."""

    classifier: SeverityClassifier = field(default_factory=SeverityClassifier)
    router: DepartmentRouter = field(default_factory=DepartmentRouter)

    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        redacted = redact_pii(symptoms)
        severity = self.classifier.classify(redacted, context)
        department = self.router.route(redacted, severity)
        return TriageSuggestion(
            department=department,
            severity=severity,
            reasoning=self._build_reasoning(redacted.lower(), severity, department, context),
            confidence=self._base_confidence(severity),
        )

    def _build_reasoning(
        self,
        normalized: str,
        severity: Severity,
        department: str,
        context: PatientContext,
    ) -> str:
        findings = [
            term
            for term in self.classifier.critical_terms + self.classifier.high_terms
            if term in normalized
        ][:3]
        detail = ", ".join(findings) if findings else "non-specific symptoms"
        reasoning = (
            f"Keyword assessment rates this {severity.value} ({detail}); "
            f"best-matched department is {department}."
        )
        if context.age > self.classifier.risk_age:
            reasoning += " Older age used as additional risk context."
        return reasoning

    @staticmethod
    def _base_confidence(severity: Severity) -> float:
        return {
            Severity.CRITICAL: 0.9,
            Severity.HIGH: 0.8,
            Severity.MEDIUM: 0.7,
            Severity.LOW: 0.65,
        }[severity]
