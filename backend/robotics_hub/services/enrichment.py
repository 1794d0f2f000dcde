# backend/robotics_hub/services/enrichment.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..core.errors import (
    ConfigurationError,
    EnrichmentParseError,
    EnrichmentValidationError,
    RetriableError,
)
from ..schemas.enrichment import EnrichedArticle, validate_enrichment
from .feeds import RawNewsData
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

RETRIABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}

ENRICH_SYSTEM_PROMPT = (
    "You are an AI editor that summarizes robotics news. Respond with strict JSON "
    "and include fields title, summary_ai, category, robot_tags, importance_score, "
    "company_name, company_website. Category must be one of product, funding, "
    "partnership, policy, or other. importance_score is an integer from 0-100."
)


def is_retriable_llm_error(exc: BaseException) -> bool:
    if isinstance(exc, RetriableError):
        return True
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(exc, openai.APIConnectionError):
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code in RETRIABLE_STATUS_CODES
    return False


def build_messages(raw: RawNewsData) -> List[Dict[str, str]]:
    user_content = (
        f"Title: {raw.title_raw}\n"
        f"URL: {raw.url}\n"
        f"Published at: {raw.published_at.isoformat()}\n"
        f"Content: {raw.content_raw}"
    )
    return [
        {"role": "system", "content": ENRICH_SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


def parse_completion_content(content: str) -> EnrichedArticle:
    """
    Decode and validate the completion text.

    Neither failure is retried: re-sending the same prompt after a malformed
    answer is left to the next batch run.
    """
    try:
        payload: Any = json.loads(content)
    except json.JSONDecodeError as e:
        raise EnrichmentParseError(f"Completion content is not valid JSON: {e}") from e

    result = validate_enrichment(payload)
    if not result.ok:
        raise EnrichmentValidationError(result.error or "unknown validation error")
    return result.article


class EnrichmentClient:
    def __init__(
        self,
        llm: Optional[AsyncOpenAI],
        *,
        model: str,
        temperature: float = 0.2,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.policy = policy or RetryPolicy()

    async def _complete(self, raw: RawNewsData) -> str:
        completion = await self.llm.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=build_messages(raw),
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def enrich(self, raw: RawNewsData) -> EnrichedArticle:
        if self.llm is None:
            raise ConfigurationError("LLM_API_KEY is not configured")

        def _log_retry(exc: BaseException, attempt: int) -> None:
            logger.warning(
                "LLM enrichment attempt %s for %s failed: %s",
                attempt,
                raw.url,
                exc,
                extra={"step": "enrich", "url": raw.url, "attempt": attempt},
            )

        content = await with_retry(
            lambda _attempt: self._complete(raw),
            self.policy,
            should_retry=is_retriable_llm_error,
            on_retry=_log_retry,
        )
        return parse_completion_content(content)
