from __future__ import annotations

import logging

from .config import EngineConfig
from .embeddings import GeminiSymptomEmbedder, NullSymptomEmbedder, OpenAISymptomEmbedder
from .gemini_reasoner import GeminiTriageReasoner
from .llm_reasoner import HybridTriageReasoner, OpenAITriageReasoner
from .reasoner import HeuristicTriageReasoner
from .reasoner_protocol import SymptomEmbedder, TriageReasoner

logger = logging.getLogger(__name__)

# Hybrid modes wrap an LLM provider with the heuristic reasoner as fallback.
HYBRID_PROVIDERS = {
    "hybrid": "openai",
    "hybrid-openai": "openai",
    "hybrid-gemini": "gemini",
    "hybrid_gemini": "gemini",
}


def _llm_reasoner(provider: str, config: EngineConfig) -> tuple[TriageReasoner, str]:
    if provider == "openai":
        reasoner: TriageReasoner = OpenAITriageReasoner(
            model=config.openai_model,
            max_output_tokens=config.openai_max_output_tokens,
            request_timeout_seconds=config.openai_timeout_seconds,
            api_key=config.openai_api_key or None,
        )
        return reasoner, f"openai:{config.openai_model}"
    reasoner = GeminiTriageReasoner(
        model=config.gemini_model,
        max_output_tokens=config.gemini_max_output_tokens,
        request_timeout_seconds=config.gemini_timeout_seconds,
        thinking_level=config.gemini_thinking_level,
        api_key=config.gemini_api_key or None,
    )
    return reasoner, f"gemini:{config.gemini_model}"


def build_reasoner(config: EngineConfig) -> tuple[TriageReasoner, str]:
    mode = (config.reasoner_mode or "hybrid").strip().lower()
    heuristic = HeuristicTriageReasoner()

    if mode == "heuristic":
        return heuristic, "heuristic"
    if mode in {"openai", "gemini"}:
        return _llm_reasoner(mode, config)

    provider = HYBRID_PROVIDERS.get(mode)
    if provider is None:
        logger.warning("Unsupported CARE_REASONER_MODE=%s; using heuristic.", mode)
        return heuristic, "heuristic(unsupported-mode)"

    try:
        llm, label = _llm_reasoner(provider, config)
    except Exception as exc:
        logger.warning(
            "Failed to initialize %s reasoner in %s mode; using heuristic only. %s",
            provider,
            mode,
            exc,
        )
        return heuristic, "heuristic(fallback-init)"
    return HybridTriageReasoner(primary=llm, fallback=heuristic), f"hybrid({label}->heuristic)"


def build_embedder(config: EngineConfig) -> tuple[SymptomEmbedder, str]:
    mode = (config.embedding_mode or "none").strip().lower()

    try:
        if mode == "openai":
            return (
                OpenAISymptomEmbedder(
                    model=config.openai_embedding_model,
                    request_timeout_seconds=config.openai_timeout_seconds,
                    api_key=config.openai_api_key or None,
                ),
                f"openai:{config.openai_embedding_model}",
            )
        if mode == "gemini":
            return (
                GeminiSymptomEmbedder(
                    model=config.gemini_embedding_model,
                    api_key=config.gemini_api_key or None,
                ),
                f"gemini:{config.gemini_embedding_model}",
            )
    except Exception as exc:
        logger.warning(
            "Failed to initialize %s embedder; similar-case lookup disabled. %s",
            mode,
            exc,
        )
        return NullSymptomEmbedder(), "none(fallback-init)"

    if mode not in {"none", ""}:
        logger.warning("Unsupported CARE_EMBEDDING_MODE=%s; similar-case lookup disabled.", mode)
    return NullSymptomEmbedder(), "none"
