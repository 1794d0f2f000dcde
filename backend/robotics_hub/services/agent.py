# backend/robotics_hub/services/agent.py
"""
Free-form questions answered from recently stored articles.

The LLM only sees a small context built from the article store; it never
browses or calls tools.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from openai import AsyncOpenAI
from sqlalchemy.orm import Session

from ..core.errors import ConfigurationError
from ..models.article import Article
from .enrichment import is_retriable_llm_error
from .queries import get_articles
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7
MAX_CONTEXT_ARTICLES = 10

AGENT_SYSTEM_PROMPT = (
    "You are Robotics Hub, a helpful agent that answers user questions using "
    "the supplied context. Reference the context when available and reply concisely."
)

CONTEXT_INSTRUCTIONS = (
    "Act as the Robotics Intelligence Agent. Answer only with the data in the "
    "CONTEXT. If the answer is not there, say: \"I could not find enough "
    "information in the recent data to answer this question.\""
)

NO_ARTICLES_CONTEXT = (
    "No recent articles are available for the requested period. Answer that "
    "the context contains no data."
)


class InvalidDateRange(ValueError):
    pass


@dataclass
class AgentAnswer:
    answer: str
    context_articles_count: int


def resolve_date_range(
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """Fill a missing bound from the default lookback window ending now."""
    now = now or datetime.utcnow()
    if date_from is None:
        date_from = now - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    if date_to is None:
        date_to = now
    if date_from > date_to:
        raise InvalidDateRange('Invalid dateRange. The "from" date must be earlier than "to".')
    return date_from, date_to


def build_context(articles: List[Article]) -> str:
    blocks = []
    for index, article in enumerate(articles, start=1):
        source_name = article.source.name if article.source else "Unknown"
        blocks.append(
            "\n".join([
                f"Article {index}:",
                f"Title: {article.title}",
                f"Summary: {article.summary_ai}",
                f"Source: {source_name}",
                f"Published at: {article.published_at.isoformat()}",
                f"Importance score: {article.importance_score}",
            ])
        )
    body = "\n\n".join(blocks) or NO_ARTICLES_CONTEXT
    return f"{CONTEXT_INSTRUCTIONS}\n\nCONTEXT:\n{body}"


class AgentService:
    def __init__(
        self,
        llm: Optional[AsyncOpenAI],
        *,
        model: str,
        temperature: float = 0.3,
        policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.policy = policy or RetryPolicy()
        self.clock = clock

    async def _complete(self, context: str, question: str) -> str:
        completion = await self.llm.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": AGENT_SYSTEM_PROMPT},
                {"role": "user", "content": f"Context:\n{context}\n\nUser question: {question}"},
            ],
        )
        if not completion.choices:
            return ""
        return (completion.choices[0].message.content or "").strip()

    async def answer(
        self,
        db: Session,
        question: str,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> AgentAnswer:
        if self.llm is None:
            raise ConfigurationError("LLM_API_KEY is not configured")

        date_from, date_to = resolve_date_range(date_from, date_to, now=self.clock())
        articles, _ = get_articles(
            db,
            q=question,
            date_from=date_from,
            date_to=date_to,
            limit=MAX_CONTEXT_ARTICLES,
        )
        context = build_context(articles)

        def _log_retry(exc: BaseException, attempt: int) -> None:
            logger.warning(
                "Agent completion attempt %s failed: %s",
                attempt,
                exc,
                extra={"step": "agent", "attempt": attempt},
            )

        answer = await with_retry(
            lambda _attempt: self._complete(context, question),
            self.policy,
            should_retry=is_retriable_llm_error,
            on_retry=_log_retry,
        )
        return AgentAnswer(answer=answer, context_articles_count=len(articles))
