"""
Read-side queries backing the dashboard APIs.

Single-entity lookups return None when nothing matches; callers decide how
to surface that (the API turns it into a 404).
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

from ..models.article import Article
from ..models.company import Company
from ..models.token_snapshot import TokenSnapshot

MAX_PAGE_SIZE = 100


def _clamp_limit(limit: int, default: int) -> int:
    if limit is None or limit <= 0:
        return default
    return min(limit, MAX_PAGE_SIZE)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _json_list_contains(db: Session, column, value: str):
    """Exact element match inside a JSON list column."""
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        return cast(column, JSONB).contains([value])

    if dialect == "sqlite":
        # json_each decodes the stored \uXXXX escapes before comparing
        elements = func.json_each(column).table_valued("value")
        return select(elements.c.value).where(elements.c.value == value).exists()

    # Other backends: match the serialised element literally
    return cast(column, String).like(
        f"%{_escape_like(json.dumps(value))}%", escape="\\"
    )


def get_articles(
    db: Session,
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    company_id: Optional[int] = None,
    source_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Article], int]:
    query = db.query(Article)

    if category:
        query = query.filter(Article.category == category)
    if tag:
        query = query.filter(_json_list_contains(db, Article.robot_tags, tag))
    if company_id is not None:
        query = query.filter(Article.company_id == company_id)
    if source_id is not None:
        query = query.filter(Article.source_id == source_id)
    if date_from:
        query = query.filter(Article.published_at >= date_from)
    if date_to:
        query = query.filter(Article.published_at <= date_to)

    search = (q or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Article.title.ilike(pattern), Article.summary_ai.ilike(pattern))
        )

    total = query.with_entities(func.count(Article.id)).scalar() or 0
    articles = (
        query.order_by(Article.published_at.desc(), Article.id.desc())
        .offset(max(offset, 0))
        .limit(_clamp_limit(limit, 20))
        .all()
    )
    return articles, total


def get_companies(
    db: Session,
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
    country: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Company]:
    query = db.query(Company)

    if category:
        query = query.filter(_json_list_contains(db, Company.categories, category))
    if country:
        query = query.filter(func.lower(Company.country) == country.strip().lower())

    search = (q or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Company.name.ilike(pattern), Company.summary_ai.ilike(pattern))
        )

    return (
        query.order_by(Company.last_seen_at.desc(), Company.name.asc())
        .offset(max(offset, 0))
        .limit(_clamp_limit(limit, 50))
        .all()
    )


def get_company_by_id(db: Session, company_id: int) -> Optional[Tuple[Company, List[Article]]]:
    company = db.query(Company).filter(Company.id == company_id).first()
    if company is None:
        return None

    articles = (
        db.query(Article)
        .filter(Article.company_id == company.id)
        .order_by(Article.published_at.desc(), Article.id.desc())
        .all()
    )
    return company, articles


def get_latest_token_snapshot(db: Session) -> List[TokenSnapshot]:
    """Every row of the most recent snapshot batch, best rank first."""
    latest = db.query(func.max(TokenSnapshot.taken_at)).scalar()
    if latest is None:
        return []

    return (
        db.query(TokenSnapshot)
        .filter(TokenSnapshot.taken_at == latest)
        .order_by(TokenSnapshot.rank.asc(), TokenSnapshot.id.asc())
        .all()
    )
