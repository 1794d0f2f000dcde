from sqlalchemy import Column, Integer, String, Float, DateTime

from ..core.db import Base

class TokenSnapshot(Base):
    __tablename__ = "token_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    coingecko_id = Column(String, nullable=False)
    symbol = Column(String, nullable=False)
    name = Column(String, nullable=False)
    image = Column(String, nullable=True)
    price_usd = Column(Float, nullable=False)
    market_cap_usd = Column(Float, nullable=False)
    volume_24h_usd = Column(Float, nullable=False)
    change_1h_pct = Column(Float, nullable=False, default=0.0)
    change_24h_pct = Column(Float, nullable=False, default=0.0)
    change_7d_pct = Column(Float, nullable=False, default=0.0)
    rank = Column(Integer, nullable=True)
    # Shared by every row written in one snapshot batch
    taken_at = Column(DateTime, index=True, nullable=False)
