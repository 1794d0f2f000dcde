from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime

from ..core.db import Base

class Source(Base):
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    url = Column(String, unique=True, index=True, nullable=False)
    type = Column(String, nullable=False, default="rss")   # 'rss' is the only kind fetched today
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
