from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

from .pii import redact_pii

logger = logging.getLogger(__name__)

try:
    from openai import OpenAI
except ImportError:  # pragma: no cover
    OpenAI = None  # type: ignore[assignment]

try:
    from google import genai
except ImportError:  # pragma: no cover
    genai = None  # type: ignore[assignment]


class EmbeddingError(RuntimeError):
    pass


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    dot = sum(a * b for a, b in zip(left, right))
    left_norm = math.sqrt(sum(a * a for a in left))
    right_norm = math.sqrt(sum(b * b for b in right))
    if left_norm == 0 or right_norm == 0:
        return 0.0
    return dot / (left_norm * right_norm)


@dataclass
class NullSymptomEmbedder:
    """Embedder used until a vector service is configured; yields no vector."""

    label: str = "none"

    def embed(self, text: str) -> list[float]:
        return []


@dataclass
class OpenAISymptomEmbedder:
    model: str = "text-embedding-3-small"
    request_timeout_seconds: float = 20.0
    api_key: str | None = None
    client: Any | None = None

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        if OpenAI is None:
            raise ImportError(
                "openai package is not installed. Install the project dependencies."
            )
        self.client = OpenAI(
            api_key=self.api_key,
            timeout=self.request_timeout_seconds,
        )

    def embed(self, text: str) -> list[float]:
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=redact_pii(text),
            )
            vector = response.data[0].embedding
        except Exception as exc:
            raise EmbeddingError(f"OpenAI embedding failed: {exc}") from exc
        return [float(value) for value in vector]


@dataclass
class GeminiSymptomEmbedder:
    model: str = "gemini-embedding-001"
    api_key: str | None = None
    client: Any | None = None

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        if genai is None:
            raise ImportError(
                "google-genai package is not installed. Install the project dependencies."
            )
        self.client = genai.Client(api_key=self.api_key)

    def embed(self, text: str) -> list[float]:
        try:
            response = self.client.models.embed_content(
                model=self.model,
                contents=redact_pii(text),
            )
            embeddings = getattr(response, "embeddings", None) or []
            if not embeddings:
                raise EmbeddingError("Gemini returned no embeddings.")
            values = getattr(embeddings[0], "values", None) or []
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Gemini embedding failed: {exc}") from exc
        return [float(value) for value in values]
