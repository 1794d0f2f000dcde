# backend/robotics_hub/schemas/enrichment.py
from dataclasses import dataclass
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

ARTICLE_CATEGORIES = ("product", "funding", "partnership", "policy", "other")

ArticleCategory = Literal["product", "funding", "partnership", "policy", "other"]


def sanitize_tags(tags: List[str]) -> List[str]:
    """
    Trim, drop empties, and deduplicate tags.

    Matching is case-sensitive ("AI" and "ai" are different tags) and the
    first occurrence wins, so the output order follows the model's output.
    """
    return list(dict.fromkeys(t.strip() for t in tags if t and t.strip()))


class EnrichedArticle(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    summary_ai: str
    category: ArticleCategory
    robot_tags: List[str] = []
    importance_score: int
    company_name: Optional[str] = None
    company_website: Optional[str] = None

    @field_validator("title", "summary_ai")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("robot_tags", mode="before")
    @classmethod
    def _tags_default(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("robot_tags")
    @classmethod
    def _clean_tags(cls, v: List[str]) -> List[str]:
        return sanitize_tags(v)

    @field_validator("importance_score", mode="before")
    @classmethod
    def _integer_score(cls, v: Any) -> Any:
        # Reject "50" and True; accept 50.0 since JSON does not distinguish
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be an integer")
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError("must be an integer")
            return int(v)
        return v

    @field_validator("importance_score")
    @classmethod
    def _score_range(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("must be between 0 and 100")
        return v

    @field_validator("company_name", "company_website", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            stripped = v.strip()
            return stripped or None
        return v


@dataclass
class EnrichmentValidation:
    ok: bool
    article: Optional[EnrichedArticle] = None
    error: Optional[str] = None


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_enrichment(payload: Any) -> EnrichmentValidation:
    if not isinstance(payload, dict):
        return EnrichmentValidation(ok=False, error="payload: expected a JSON object")
    try:
        article = EnrichedArticle.model_validate(payload)
    except ValidationError as e:
        return EnrichmentValidation(ok=False, error=_format_errors(e))
    return EnrichmentValidation(ok=True, article=article)
