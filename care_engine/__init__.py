from .config import EngineConfig
from .conflicts import ConflictResolver
from .database import SQLiteAvailabilityGateway
from .embeddings import GeminiSymptomEmbedder, NullSymptomEmbedder, OpenAISymptomEmbedder
from .gateway import (
    AppointmentNotFoundError,
    AvailabilityGateway,
    ReservationError,
    SlotUnavailableError,
)
from .gemini_reasoner import GeminiTriageReasoner
from .llm_reasoner import HybridTriageReasoner, OpenAITriageReasoner
from .ranking import SlotRanker
from .reasoner import HeuristicTriageReasoner
from .reasoner_factory import build_embedder, build_reasoner
from .routing import DepartmentRouter
from .scheduler import SchedulingEngine
from .severity import SeverityClassifier
from .triage import TriageEngine

__all__ = [
    "AppointmentNotFoundError",
    "AvailabilityGateway",
    "ConflictResolver",
    "DepartmentRouter",
    "EngineConfig",
    "GeminiSymptomEmbedder",
    "GeminiTriageReasoner",
    "HeuristicTriageReasoner",
    "HybridTriageReasoner",
    "NullSymptomEmbedder",
    "OpenAISymptomEmbedder",
    "OpenAITriageReasoner",
    "ReservationError",
    "SQLiteAvailabilityGateway",
    "SchedulingEngine",
    "SeverityClassifier",
    "SlotRanker",
    "SlotUnavailableError",
    "TriageEngine",
    "build_embedder",
    "build_reasoner",
]
