from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.db import Base

class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, ForeignKey("sources.id"), index=True, nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), index=True, nullable=True)
    url = Column(String, unique=True, nullable=False)
    title = Column(Text, nullable=False)
    summary_ai = Column(Text, nullable=False)
    category = Column(String(32), index=True, nullable=False)   # product | funding | partnership | policy | other
    robot_tags = Column(JSON, nullable=False, default=list)
    importance_score = Column(Integer, nullable=False)
    published_at = Column(DateTime, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    source = relationship("Source", lazy="joined")
    company = relationship("Company", lazy="joined")
