# backend/robotics_hub/schemas/agent.py
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AgentDateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: Optional[datetime] = Field(default=None, alias="from")
    date_to: Optional[datetime] = Field(default=None, alias="to")

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _unparseable_is_missing(cls, v: Any) -> Any:
        # An unreadable bound falls back to the default window instead of failing
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError:
                return None
        return v

    @field_validator("date_from", "date_to")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class AgentQueryIn(BaseModel):
    userQuery: Optional[str] = None
    dateRange: Optional[AgentDateRange] = None


class AgentQueryOut(BaseModel):
    answer: str
    context_articles_count: int
