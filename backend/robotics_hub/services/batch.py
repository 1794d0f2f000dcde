# backend/robotics_hub/services/batch.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

import httpx
from openai import AsyncOpenAI
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.config import Settings, get_settings
from ..core.db import SessionLocal
from ..core.errors import ConfigurationError
from ..models.article import Article
from ..models.company import Company
from ..models.raw_news import RawNews
from ..models.source import Source
from ..models.token_snapshot import TokenSnapshot
from ..schemas.enrichment import EnrichedArticle
from .enrichment import EnrichmentClient
from .feeds import FeedFetcher, RawNewsData
from .llm import build_llm_client
from .market import MarketSnapshotFetcher, TokenData
from .retry import RetryPolicy
from .seed import SOURCE_SEED_DATA, SourceSeed, ensure_seed_sources

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def fetch(self, url: str, fallback_content: Optional[str] = None) -> List[RawNewsData]: ...


class Enricher(Protocol):
    async def enrich(self, raw: RawNewsData) -> EnrichedArticle: ...


class MarketSource(Protocol):
    async def fetch_robotics_tokens(self) -> List[TokenData]: ...


@dataclass
class BatchStats:
    new_raw_news: int = 0
    new_articles: int = 0
    new_companies: int = 0
    token_snapshots: int = 0
    skipped_dead_letter: int = 0
    logs: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class BatchResult:
    success: bool
    message: str
    stats: BatchStats

    def as_dict(self) -> dict:
        return asdict(self)


class BatchOrchestrator:
    """
    One ETL run: Seed -> Ingest -> Enrich -> Snapshot.

    Ingest, Enrich and Snapshot are isolated from each other: an exception
    inside one is logged into the run stats and the next stage still starts.
    Inside Ingest and Enrich, failures are isolated per source / per item.
    Seed is the exception: without a source catalog nothing downstream is
    meaningful, so a Seed failure ends the run with success=False.
    """

    def __init__(
        self,
        *,
        feeds: FeedSource,
        enricher: Enricher,
        market: MarketSource,
        seeds: List[SourceSeed] | None = None,
        fallbacks: Dict[str, str] | None = None,
        ingest_concurrency: int = 4,
        enrich_max_attempts: int = 5,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.feeds = feeds
        self.enricher = enricher
        self.market = market
        self.seeds = SOURCE_SEED_DATA if seeds is None else seeds
        # url -> literal feed XML, parsed when the live fetch fails
        self.fallbacks = fallbacks or {}
        self.ingest_concurrency = max(1, ingest_concurrency)
        self.enrich_max_attempts = enrich_max_attempts
        self.clock = clock

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, db: Session) -> BatchResult:
        run_id = str(uuid4())
        stats = BatchStats()

        def _log(message: str) -> None:
            stats.logs.append(message)
            logger.info(message, extra={"run_id": run_id, "step": "batch"})

        try:
            _log("Starting seed sources...")
            ensure_seed_sources(db, self.seeds)
            _log("Seed sources ensured.")
        except Exception as e:
            db.rollback()
            message = f"Seeding sources failed: {e}"
            stats.logs.append(message)
            stats.errors.append(message)
            logger.exception("Daily batch aborted at seed", extra={"run_id": run_id, "step": "seed"})
            return BatchResult(success=False, message="Daily batch failed", stats=stats)

        _log("Starting RSS ingestion...")
        await self._run_stage("ingest", self._ingest, db, stats, run_id)
        _log(f"RSS ingestion complete. New raw news: {stats.new_raw_news}")

        _log("Starting AI enrichment...")
        await self._run_stage("enrich", self._enrich, db, stats, run_id)
        _log(
            f"AI enrichment complete. New articles: {stats.new_articles}, "
            f"New companies: {stats.new_companies}"
        )

        _log("Starting CoinGecko snapshot...")
        await self._run_stage("snapshot", self._snapshot, db, stats, run_id)
        _log(f"CoinGecko snapshot complete. New tokens: {stats.token_snapshots}")

        return BatchResult(success=True, message="Daily batch completed successfully", stats=stats)

    async def _run_stage(
        self,
        name: str,
        stage: Callable[[Session, BatchStats, str], Awaitable[None]],
        db: Session,
        stats: BatchStats,
        run_id: str,
    ) -> None:
        try:
            await stage(db, stats, run_id)
        except Exception as e:
            db.rollback()
            message = f"Stage '{name}' failed: {e}"
            stats.logs.append(message)
            stats.errors.append(message)
            logger.exception(
                "Batch stage '%s' failed",
                name,
                extra={"run_id": run_id, "step": name},
            )

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    async def _ingest(self, db: Session, stats: BatchStats, run_id: str) -> None:
        sources = db.query(Source).order_by(Source.id.asc()).all()
        semaphore = asyncio.Semaphore(self.ingest_concurrency)

        async def _fetch_source(url: str) -> Tuple[List[RawNewsData], Optional[Exception]]:
            async with semaphore:
                try:
                    items = await self.feeds.fetch(url, fallback_content=self.fallbacks.get(url))
                    return items, None
                except Exception as e:
                    return [], e

        # Fetches overlap; DB writes below stay sequential on the one session
        tasks = {
            source.id: asyncio.create_task(_fetch_source(source.url))
            for source in sources
        }

        seen_urls: set[str] = set()
        for source in sources:
            items, error = await tasks[source.id]
            if error is not None:
                message = f"RSS ingestion failed for source {source.name}: {error}"
                stats.logs.append(message)
                stats.errors.append(message)
                logger.error(
                    message,
                    extra={"run_id": run_id, "step": "ingest", "source": source.name},
                )
                continue

            try:
                inserted = self._store_raw_items(db, source, items, seen_urls)
                db.commit()
            except Exception as e:
                db.rollback()
                message = f"RSS ingestion failed for source {source.name}: {e}"
                stats.logs.append(message)
                stats.errors.append(message)
                logger.exception(
                    "Storing raw news failed",
                    extra={"run_id": run_id, "step": "ingest", "source": source.name},
                )
                continue

            stats.new_raw_news += inserted
            logger.info(
                "Ingested %s new items from %s",
                inserted,
                source.name,
                extra={"run_id": run_id, "step": "ingest", "source": source.name},
            )

    def _raw_url_exists(self, db: Session, url: str) -> bool:
        return db.query(RawNews.id).filter(RawNews.url == url).first() is not None

    def _store_raw_items(
        self,
        db: Session,
        source: Source,
        items: List[RawNewsData],
        seen_urls: set[str],
    ) -> int:
        inserted = 0
        for item in items:
            if item.url in seen_urls:
                continue
            seen_urls.add(item.url)

            if self._raw_url_exists(db, item.url):
                continue

            try:
                # A concurrent run may insert the same URL after the check above
                with db.begin_nested():
                    db.add(
                        RawNews(
                            source_id=source.id,
                            url=item.url,
                            title_raw=item.title_raw,
                            content_raw=item.content_raw,
                            published_at=item.published_at,
                            ingested_at=self.clock(),
                            processed=False,
                        )
                    )
                    db.flush()
            except IntegrityError:
                logger.info(
                    "Raw news already stored by another run",
                    extra={"step": "ingest", "source": source.name, "url": item.url},
                )
                continue
            inserted += 1
        return inserted

    # ------------------------------------------------------------------
    # Enrich
    # ------------------------------------------------------------------

    async def _enrich(self, db: Session, stats: BatchStats, run_id: str) -> None:
        pending = (
            db.query(RawNews)
            .filter(RawNews.processed.is_(False))
            .order_by(RawNews.id.asc())
            .all()
        )

        for raw in pending:
            if raw.enrich_attempts >= self.enrich_max_attempts:
                stats.skipped_dead_letter += 1
                continue

            raw_id = raw.id
            try:
                enriched = await self.enricher.enrich(
                    RawNewsData(
                        title_raw=raw.title_raw,
                        content_raw=raw.content_raw,
                        url=raw.url,
                        published_at=raw.published_at,
                    )
                )
                company, company_created = self._resolve_company(db, enriched)

                db.add(
                    Article(
                        source_id=raw.source_id,
                        company_id=company.id if company else None,
                        url=raw.url,
                        title=enriched.title,
                        summary_ai=enriched.summary_ai,
                        category=enriched.category,
                        robot_tags=list(enriched.robot_tags),
                        importance_score=enriched.importance_score,
                        published_at=raw.published_at,
                        created_at=self.clock(),
                    )
                )
                raw.processed = True
                db.add(raw)
                db.commit()
            except ConfigurationError:
                db.rollback()
                raise
            except Exception as e:
                db.rollback()
                if self._processed_elsewhere(db, raw_id):
                    logger.info(
                        "Raw news %s was enriched by a concurrent run",
                        raw_id,
                        extra={"run_id": run_id, "step": "enrich", "raw_news_id": raw_id},
                    )
                    continue
                self._record_enrich_failure(db, raw_id, e)
                message = f"AI enrichment failed for raw news {raw_id}: {e}"
                stats.logs.append(message)
                stats.errors.append(message)
                logger.error(
                    message,
                    extra={"run_id": run_id, "step": "enrich", "raw_news_id": raw_id},
                )
                continue

            stats.new_articles += 1
            if company_created:
                stats.new_companies += 1

        if stats.skipped_dead_letter:
            stats.logs.append(
                f"Skipped {stats.skipped_dead_letter} raw news item(s) that reached "
                f"{self.enrich_max_attempts} failed enrichment attempts."
            )

    def _resolve_company(
        self, db: Session, enriched: EnrichedArticle
    ) -> Tuple[Optional[Company], bool]:
        """
        Find-or-create by unique name.

        A concurrent writer may create the same name between our select and
        insert; the unique constraint turns that into an IntegrityError and
        we fall back to the row that won.
        """
        name = enriched.company_name
        if not name:
            return None, False

        now = self.clock()
        company = (
            db.query(Company)
            .filter(Company.name == name)
            .with_for_update()
            .first()
        )

        if company is None:
            try:
                with db.begin_nested():
                    company = Company(
                        name=name,
                        website=enriched.company_website,
                        categories=[],
                        summary_ai=None,
                        last_seen_at=now,
                    )
                    db.add(company)
                    db.flush()
                return company, True
            except IntegrityError:
                company = (
                    db.query(Company)
                    .filter(Company.name == name)
                    .with_for_update()
                    .first()
                )
                if company is None:
                    raise

        if enriched.company_website:
            company.website = enriched.company_website
        company.last_seen_at = now
        db.add(company)
        db.flush()
        return company, False

    def _processed_elsewhere(self, db: Session, raw_id: int) -> bool:
        processed = db.query(RawNews.processed).filter(RawNews.id == raw_id).scalar()
        return bool(processed)

    def _record_enrich_failure(self, db: Session, raw_id: int, error: Exception) -> None:
        try:
            raw = db.get(RawNews, raw_id)
            if raw is None:
                return
            raw.enrich_attempts = (raw.enrich_attempts or 0) + 1
            raw.last_error = str(error)[:2000]
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(
                "Failed to record enrichment failure",
                extra={"step": "enrich", "raw_news_id": raw_id},
            )

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def _snapshot(self, db: Session, stats: BatchStats, run_id: str) -> None:
        tokens = await self.market.fetch_robotics_tokens()
        if not tokens:
            logger.info(
                "CoinGecko returned no robotics tokens; nothing to snapshot",
                extra={"run_id": run_id, "step": "snapshot"},
            )
            return

        taken_at = self.clock()
        db.add_all([TokenSnapshot(**token.as_row(), taken_at=taken_at) for token in tokens])
        db.commit()
        stats.token_snapshots += len(tokens)


def build_orchestrator(
    settings: Settings,
    http_client: httpx.AsyncClient,
    llm_client: Optional[AsyncOpenAI],
    *,
    fallbacks: Dict[str, str] | None = None,
) -> BatchOrchestrator:
    def _policy(retries: int) -> RetryPolicy:
        return RetryPolicy(
            retries=retries,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            factor=settings.RETRY_BACKOFF_FACTOR,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
        )

    return BatchOrchestrator(
        feeds=FeedFetcher(
            http_client,
            timeout=settings.RSS_TIMEOUT_SECONDS,
            policy=_policy(settings.RSS_RETRIES),
        ),
        enricher=EnrichmentClient(
            llm_client,
            model=settings.LLM_MODEL,
            temperature=settings.LLM_TEMPERATURE,
            policy=_policy(settings.LLM_RETRIES),
        ),
        market=MarketSnapshotFetcher(
            http_client,
            api_key=settings.COINGECKO_API_KEY,
            base_url=settings.COINGECKO_BASE_URL,
            timeout=settings.COINGECKO_TIMEOUT_SECONDS,
            per_page=settings.COINGECKO_PER_PAGE,
            policy=_policy(settings.COINGECKO_RETRIES),
        ),
        fallbacks=fallbacks,
        ingest_concurrency=settings.INGEST_CONCURRENCY,
        enrich_max_attempts=settings.ENRICH_MAX_ATTEMPTS,
    )


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(headers={"User-Agent": "robotics-hub-etl/1.0"})


def try_build_llm_client(settings: Settings) -> Optional[AsyncOpenAI]:
    """
    A missing LLM key must not stop seeding, ingestion or the snapshot; the
    enrich stage reports it as a configuration error instead.
    """
    try:
        return build_llm_client(settings)
    except ConfigurationError:
        logger.warning("LLM_API_KEY is not configured; enrichment will be skipped", extra={"step": "enrich"})
        return None


async def run_batch_once(db: Session, settings: Settings | None = None) -> BatchResult:
    """Build short-lived clients, run one batch, and close the clients."""
    settings = settings or get_settings()
    llm_client = try_build_llm_client(settings)
    async with build_http_client() as http_client:
        try:
            return await build_orchestrator(settings, http_client, llm_client).run(db)
        finally:
            if llm_client is not None:
                await llm_client.close()


@celery_app.task(name="robotics_hub.services.batch.run_daily_batch")
def run_daily_batch() -> dict:
    """Celery beat entry point for the scheduled daily batch."""
    db: Session = SessionLocal()
    try:
        # Celery workers are synchronous; each run gets its own event loop
        result = asyncio.run(run_batch_once(db))
        logger.info(
            "Scheduled daily batch finished",
            extra={"step": "batch", "success": result.success},
        )
        return result.as_dict()
    finally:
        db.close()
