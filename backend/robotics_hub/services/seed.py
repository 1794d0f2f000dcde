from __future__ import annotations

from typing import List, TypedDict
import logging

from sqlalchemy.orm import Session

from ..models.source import Source

logger = logging.getLogger(__name__)


class SourceSeed(TypedDict):
    name: str
    url: str
    type: str


SOURCE_SEED_DATA: List[SourceSeed] = [
    {"name": "The Robot Report", "url": "https://www.therobotreport.com/feed/", "type": "rss"},
    {"name": "IEEE Spectrum Robotics", "url": "https://spectrum.ieee.org/robotics/fulltext/rss", "type": "rss"},
    {"name": "Robotics Business Review", "url": "https://www.roboticsbusinessreview.com/feed/", "type": "rss"},
    {"name": "Robotics Tomorrow", "url": "https://www.roboticstomorrow.com/rss/rss.xml", "type": "rss"},
    {"name": "RoboHub", "url": "https://robohub.org/feed/", "type": "rss"},
    {"name": "TechCrunch Robotics", "url": "https://techcrunch.com/category/robotics/feed/", "type": "rss"},
]


def ensure_seed_sources(db: Session, seeds: List[SourceSeed] | None = None) -> int:
    """
    Upsert the known feed catalog by URL and return how many rows were created.

    Existing sources get their name/type refreshed in place; nothing is ever
    deleted, so sources added by hand survive every run.
    """
    seeds = SOURCE_SEED_DATA if seeds is None else seeds
    created = 0

    for seed in seeds:
        existing = db.query(Source).filter(Source.url == seed["url"]).first()
        if existing:
            if existing.name != seed["name"] or existing.type != seed["type"]:
                existing.name = seed["name"]
                existing.type = seed["type"]
                db.add(existing)
            continue

        db.add(Source(name=seed["name"], url=seed["url"], type=seed["type"]))
        created += 1

    db.commit()

    logger.info(
        "Seed sources ensured",
        extra={"step": "seed", "sources_created": created},
    )
    return created
