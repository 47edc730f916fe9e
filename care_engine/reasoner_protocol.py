from __future__ import annotations

from typing import Protocol

from .models import PatientContext, TriageSuggestion


class TriageReasoner(Protocol):
    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        ...


class SymptomEmbedder(Protocol):
    def embed(self, text: str) -> list[float]:
        ...
