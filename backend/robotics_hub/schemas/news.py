# backend/robotics_hub/schemas/news.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SourceOut(BaseModel):
    id: int
    name: str
    url: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class CompanyOut(BaseModel):
    id: int
    name: str
    website: str | None = None
    country: str | None = None
    categories: list[str] = []
    summary_ai: str | None = None
    last_seen_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ArticleOut(BaseModel):
    id: int
    source_id: int
    company_id: int | None = None
    url: str
    title: str
    summary_ai: str
    category: str
    robot_tags: list[str] = []
    importance_score: int
    published_at: datetime
    created_at: datetime
    source: SourceOut | None = None
    company: CompanyOut | None = None

    model_config = ConfigDict(from_attributes=True)


class ArticleListOut(BaseModel):
    articles: list[ArticleOut]
    total: int


class CompanyDetailOut(CompanyOut):
    articles: list[ArticleOut] = []


class TokenSnapshotOut(BaseModel):
    id: int
    coingecko_id: str
    symbol: str
    name: str
    image: str | None = None
    price_usd: float
    market_cap_usd: float
    volume_24h_usd: float
    change_1h_pct: float
    change_24h_pct: float
    change_7d_pct: float
    rank: int | None = None
    taken_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Batch trigger
# ---------------------------------------------------------------------------

class BatchStatsOut(BaseModel):
    new_raw_news: int = 0
    new_articles: int = 0
    new_companies: int = 0
    token_snapshots: int = 0
    skipped_dead_letter: int = 0
    logs: list[str] = []
    errors: list[str] = []


class BatchResultOut(BaseModel):
    success: bool
    message: str
    stats: BatchStatsOut
