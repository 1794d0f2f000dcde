from __future__ import annotations

from openai import AsyncOpenAI

from ..core.config import Settings
from ..core.errors import ConfigurationError


def build_llm_client(settings: Settings) -> AsyncOpenAI:
    """
    Factory for the OpenAI-compatible client used for enrichment.

    Built once per process (FastAPI lifespan / Celery task) and passed down
    explicitly. SDK-level retries are disabled: the retry engine owns the
    backoff schedule and the classification of retriable status codes.
    """
    if not settings.LLM_API_KEY:
        raise ConfigurationError("LLM_API_KEY is not configured")

    return AsyncOpenAI(
        api_key=settings.LLM_API_KEY.strip(),
        base_url=settings.LLM_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )
