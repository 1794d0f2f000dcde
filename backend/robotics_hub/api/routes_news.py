from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..schemas.news import (
    ArticleListOut,
    ArticleOut,
    CompanyDetailOut,
    CompanyOut,
    TokenSnapshotOut,
)
from ..services import queries

router = APIRouter(tags=["news"])


@router.get("/news", response_model=ArticleListOut)
def list_news(
    q: str | None = None,
    category: str | None = None,
    tag: str | None = None,
    company_id: int | None = None,
    source_id: int | None = None,
    date_from: datetime | None = Query(None, alias="from"),
    date_to: datetime | None = Query(None, alias="to"),
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    articles, total = queries.get_articles(
        db,
        q=q,
        category=category,
        tag=tag,
        company_id=company_id,
        source_id=source_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return {
        "articles": [ArticleOut.model_validate(a) for a in articles],
        "total": total,
    }


@router.get("/companies", response_model=list[CompanyOut])
def list_companies(
    q: str | None = None,
    category: str | None = None,
    country: str | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    companies = queries.get_companies(
        db, q=q, category=category, country=country, limit=limit, offset=offset
    )
    return [CompanyOut.model_validate(c) for c in companies]


@router.get("/companies/{company_id}", response_model=CompanyDetailOut)
def get_company(company_id: int, db: Session = Depends(get_db)):
    found = queries.get_company_by_id(db, company_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Company not found")

    company, articles = found
    out = CompanyDetailOut.model_validate(company)
    out.articles = [ArticleOut.model_validate(a) for a in articles]
    return out


@router.get("/crypto/robotics", response_model=list[TokenSnapshotOut])
def latest_robotics_tokens(db: Session = Depends(get_db)):
    rows = queries.get_latest_token_snapshot(db)
    return [TokenSnapshotOut.model_validate(r) for r in rows]
