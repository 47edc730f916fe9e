from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import PatientContext, Severity, TriageSuggestion
from .pii import context_payload, redact_pii
from .reasoner_protocol import TriageReasoner

logger = logging.getLogger(__name__)

try:
    from openai import OpenAI
except ImportError:  # pragma: no cover
    OpenAI = None  # type: ignore[assignment]


FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*(.*)\s*```$", re.DOTALL)

SYSTEM_PROMPT = """
You are a care-coordination triage assistant.
Return only data that conforms to the schema.
Use conservative safety-first judgment:
- Prefer higher severity when uncertain.
- Route life-threatening presentations to the Emergency department.
- Provide concise reasoning grounded in the symptoms and patient context.
Severity values must be one of: low, medium, high, critical.
Department should be one of: Emergency, Cardiology, Neurology, Orthopedics,
Gastroenterology, Respiratory, Dermatology, General Medicine.
""".strip()


class LLMTriagePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    department: str = Field(min_length=1, max_length=80)
    severity: Literal["low", "medium", "high", "critical"]
    reasoning: str = Field(min_length=5, max_length=1200)
    confidence: float = Field(ge=0.0, le=1.0)


class LLMReasonerError(RuntimeError):
    pass


def build_user_payload(*, symptoms: str, context: PatientContext) -> dict[str, Any]:
    return {
        "symptoms": redact_pii(symptoms),
        "patient": context_payload(context),
        "task": "Suggest department and severity as structured output only.",
    }


def parse_payload_text(raw_output: str) -> LLMTriagePayload:
    """Validate raw model text, tolerating a code fence or prose around one JSON object."""
    cleaned = raw_output.strip()
    fenced = FENCE_RE.match(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise LLMReasonerError("Model output was not valid JSON.") from None
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise LLMReasonerError("Model output was not valid JSON.") from exc

    try:
        return LLMTriagePayload.model_validate(data)
    except ValidationError as exc:
        raise LLMReasonerError(f"Schema validation failed: {exc}") from exc


def payload_to_suggestion(payload: LLMTriagePayload) -> TriageSuggestion:
    return TriageSuggestion(
        department=payload.department.strip() or "General Medicine",
        severity=Severity(payload.severity),
        reasoning=payload.reasoning.strip(),
        confidence=round(float(payload.confidence), 2),
    )


@dataclass
class OpenAITriageReasoner:
    model: str = "gpt-4o-mini"
    max_output_tokens: int = 400
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

    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        request_input = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": json.dumps(build_user_payload(symptoms=symptoms, context=context)),
            },
        ]

        try:
            payload = self._parse_via_sdk_parser(request_input)
        except Exception as exc:
            logger.warning("OpenAI parser path failed: %s", exc)
            try:
                payload = self._parse_via_strict_json_schema(request_input)
            except Exception as strict_exc:
                raise LLMReasonerError(
                    f"OpenAI structured triage failed: {strict_exc}"
                ) from strict_exc

        return payload_to_suggestion(payload)

    def _parse_via_sdk_parser(self, request_input: list[dict[str, Any]]) -> LLMTriagePayload:
        response = self.client.responses.parse(
            model=self.model,
            input=request_input,
            text_format=LLMTriagePayload,
            max_output_tokens=self.max_output_tokens,
        )
        payload = getattr(response, "output_parsed", None)
        if payload is None:
            raise LLMReasonerError("responses.parse returned no output_parsed payload.")
        if isinstance(payload, LLMTriagePayload):
            return payload
        return LLMTriagePayload.model_validate(payload)

    def _parse_via_strict_json_schema(
        self, request_input: list[dict[str, Any]]
    ) -> LLMTriagePayload:
        response = self.client.responses.create(
            model=self.model,
            input=request_input,
            text={
                "format": {
                    "type": "json_schema",
                    "name": "triage_suggestion",
                    "schema": LLMTriagePayload.model_json_schema(),
                    "strict": True,
                }
            },
            max_output_tokens=self.max_output_tokens,
        )
        output_text = getattr(response, "output_text", "")
        if not output_text:
            raise LLMReasonerError("responses.create returned empty output_text.")
        return parse_payload_text(output_text)


@dataclass
class HybridTriageReasoner:
    primary: TriageReasoner
    fallback: TriageReasoner

    def analyze(self, *, symptoms: str, context: PatientContext) -> TriageSuggestion:
        try:
            return self.primary.analyze(symptoms=symptoms, context=context)
        except Exception as exc:
            logger.exception("Primary reasoner failed; switching to fallback. Error: %s", exc)
            suggestion = self.fallback.analyze(symptoms=symptoms, context=context)
            suggestion.confidence = min(suggestion.confidence, 0.79)
            suggestion.reasoning = (
                suggestion.reasoning
                + " Fallback reasoner used because LLM structured output failed."
            )
            return suggestion
