from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .llm_reasoner import (
    LLMReasonerError,
    LLMTriagePayload,
    SYSTEM_PROMPT,
    build_user_payload,
    parse_payload_text,
    payload_to_suggestion,
)
from .models import PatientContext, TriageSuggestion

try:
    from google import genai
    from google.genai import types as genai_types
except ImportError:  # pragma: no cover
    genai = None  # type: ignore[assignment]
    genai_types = None  # type: ignore[assignment]


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


@dataclass
class GeminiTriageReasoner:
    """Gemini-backed suggestion; the schema travels in the prompt and JSON comes back as text."""

    model: str = "gemini-3-flash-preview"
    max_output_tokens: int = 400
    request_timeout_seconds: float = 20.0
    thinking_level: str = "LOW"
    api_key: str | None = None
    client: Any | None = None

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        if genai is None:
            raise ImportError(
                "google-genai package is not installed. Install the project dependencies."
            )
        # http_options timeout is in milliseconds.
        self.client = genai.Client(
            api_key=self.api_key,
            http_options={"timeout": int(self.request_timeout_seconds * 1000)},
        )

    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        prompt = "\n\n".join(
            (
                SYSTEM_PROMPT,
                "Respond with a single JSON object and nothing else. Schema:\n"
                + _compact(LLMTriagePayload.model_json_schema()),
                "Case:\n" + _compact(build_user_payload(symptoms=symptoms, context=context)),
            )
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._generation_config(),
            )
            text = self._response_text(response)
            if not text:
                raise LLMReasonerError("Gemini returned no text output.")
            payload = parse_payload_text(text)
        except Exception as exc:
            raise LLMReasonerError(f"Gemini structured triage failed: {exc}") from exc
        return payload_to_suggestion(payload)

    def _generation_config(self) -> Any:
        options: dict[str, Any] = {
            "response_mime_type": "application/json",
            "max_output_tokens": self.max_output_tokens,
        }
        if self.thinking_level:
            options["thinking_config"] = {"thinking_level": self.thinking_level}
        if genai_types is None:
            return options
        try:
            return genai_types.GenerateContentConfig(**options)
        except (TypeError, ValueError):
            # Older SDKs do not know thinking_level; the plain dict is still accepted.
            return options

    @staticmethod
    def _response_text(response: Any) -> str:
        text = getattr(response, "text", None)
        if isinstance(text, str) and text.strip():
            return text.strip()
        parts = [
            part.text
            for candidate in getattr(response, "candidates", None) or []
            for part in getattr(getattr(candidate, "content", None), "parts", None) or []
            if isinstance(getattr(part, "text", None), str) and part.text.strip()
        ]
        return "\n".join(parts).strip()
