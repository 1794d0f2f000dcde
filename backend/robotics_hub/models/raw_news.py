from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from datetime import datetime

from ..core.db import Base

class RawNews(Base):
    """
    One fetched feed entry waiting for LLM enrichment.

    `url` is the natural key: ingestion never inserts a second row for a URL
    it has already seen. `enrich_attempts` counts failed enrichment runs so
    permanently broken items stop being retried once ENRICH_MAX_ATTEMPTS is
    reached.
    """
    __tablename__ = "raw_news"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, ForeignKey("sources.id"), index=True, nullable=False)
    url = Column(String, unique=True, index=True, nullable=False)
    title_raw = Column(Text, nullable=False)
    content_raw = Column(Text, nullable=False, default="")
    published_at = Column(DateTime, nullable=False)
    ingested_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    processed = Column(Boolean, default=False, index=True, nullable=False)
    enrich_attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
