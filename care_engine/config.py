from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    return value if value else default


@dataclass
class EngineConfig:
    db_path: str = "care_engine.db"
    log_level: str = "INFO"
    reasoner_mode: str = "hybrid"
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str = ""
    openai_timeout_seconds: float = 20.0
    openai_max_output_tokens: int = 400
    gemini_model: str = "gemini-3-flash-preview"
    gemini_api_key: str = ""
    gemini_timeout_seconds: float = 20.0
    gemini_max_output_tokens: int = 400
    gemini_thinking_level: str = "LOW"
    embedding_mode: str = "none"
    openai_embedding_model: str = "text-embedding-3-small"
    gemini_embedding_model: str = "gemini-embedding-001"
    slot_search_limit: int = 20
    similar_case_limit: int = 10
    min_case_similarity: float = 0.0
    strict_reservation: bool = False
    seed_days: int = 14
    department_doctors: dict[str, list[tuple[str, str]]] = field(
        default_factory=lambda: {
            "General Medicine": [("dr-patel", "Dr. Patel"), ("dr-reed", "Dr. Reed")],
            "Cardiology": [("dr-shah", "Dr. Shah"), ("dr-park", "Dr. Park")],
            "Respiratory": [("dr-khan", "Dr. Khan")],
            "Neurology": [("dr-li", "Dr. Li"), ("dr-garcia", "Dr. Garcia")],
            "Orthopedics": [("dr-smith", "Dr. Smith")],
            "Dermatology": [("dr-kim", "Dr. Kim")],
            "Gastroenterology": [("dr-brown", "Dr. Brown")],
            "Emergency": [("dr-okafor", "Dr. Okafor"), ("dr-silva", "Dr. Silva")],
        }
    )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        cfg = cls()
        cfg.db_path = _env_str("CARE_DB_PATH", cfg.db_path)
        cfg.log_level = _env_str("CARE_LOG_LEVEL", cfg.log_level).upper()
        cfg.reasoner_mode = _env_str("CARE_REASONER_MODE", cfg.reasoner_mode).lower()
        cfg.openai_model = _env_str("CARE_OPENAI_MODEL", cfg.openai_model)
        cfg.openai_api_key = _env_str("OPENAI_API_KEY", cfg.openai_api_key)
        cfg.openai_timeout_seconds = _env_float(
            "CARE_OPENAI_TIMEOUT_SECONDS",
            cfg.openai_timeout_seconds,
        )
        cfg.openai_max_output_tokens = _env_int(
            "CARE_OPENAI_MAX_OUTPUT_TOKENS",
            cfg.openai_max_output_tokens,
        )
        cfg.gemini_model = _env_str("CARE_GEMINI_MODEL", cfg.gemini_model)
        cfg.gemini_api_key = _env_str("GEMINI_API_KEY", cfg.gemini_api_key)
        cfg.gemini_timeout_seconds = _env_float(
            "CARE_GEMINI_TIMEOUT_SECONDS",
            cfg.gemini_timeout_seconds,
        )
        cfg.gemini_max_output_tokens = _env_int(
            "CARE_GEMINI_MAX_OUTPUT_TOKENS",
            cfg.gemini_max_output_tokens,
        )
        cfg.gemini_thinking_level = _env_str(
            "CARE_GEMINI_THINKING_LEVEL",
            cfg.gemini_thinking_level,
        ).upper()
        cfg.embedding_mode = _env_str("CARE_EMBEDDING_MODE", cfg.embedding_mode).lower()
        cfg.openai_embedding_model = _env_str(
            "CARE_OPENAI_EMBEDDING_MODEL",
            cfg.openai_embedding_model,
        )
        cfg.gemini_embedding_model = _env_str(
            "CARE_GEMINI_EMBEDDING_MODEL",
            cfg.gemini_embedding_model,
        )
        cfg.slot_search_limit = _env_int("CARE_SLOT_SEARCH_LIMIT", cfg.slot_search_limit)
        cfg.similar_case_limit = _env_int("CARE_SIMILAR_CASE_LIMIT", cfg.similar_case_limit)
        cfg.min_case_similarity = _env_float(
            "CARE_MIN_CASE_SIMILARITY",
            cfg.min_case_similarity,
        )
        cfg.strict_reservation = _env_bool(
            "CARE_STRICT_RESERVATION",
            cfg.strict_reservation,
        )
        cfg.seed_days = _env_int("CARE_SEED_DAYS", cfg.seed_days)
        return cfg
