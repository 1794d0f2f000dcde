from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from datetime import datetime

from ..core.db import Base

class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, index=True, nullable=False)
    website = Column(String, nullable=True)
    country = Column(String, nullable=True)
    categories = Column(JSON, nullable=False, default=list)  # business categories, not article categories
    summary_ai = Column(Text, nullable=True)
    last_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False)
