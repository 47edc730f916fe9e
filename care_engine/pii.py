from __future__ import annotations

import re
from typing import Any

from .models import PatientContext


EMAIL_RE = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", flags=re.IGNORECASE)
PHONE_RE = re.compile(r"\b(?:\+?1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)\d{3}[-.\s]?\d{4}\b")
LONG_NUMBER_RE = re.compile(r"\b\d{8,}\b")


def redact_pii(text: str) -> str:
    if not text:
        return text
    redacted = EMAIL_RE.sub("[REDACTED_EMAIL]", text)
    redacted = PHONE_RE.sub("[REDACTED_PHONE]", redacted)
    redacted = LONG_NUMBER_RE.sub("[REDACTED_ID]", redacted)
    return redacted


def context_payload(context: PatientContext) -> dict[str, Any]:
    """Clinical context safe to send to an external model; the patient id is dropped."""
    return {
        "age": context.age,
        "gender": context.gender,
        "medical_history": [redact_pii(item) for item in context.medical_history],
        "allergies": [redact_pii(item) for item in context.allergies],
        "current_medications": [redact_pii(item) for item in context.current_medications],
    }
