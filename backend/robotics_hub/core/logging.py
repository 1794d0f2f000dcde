import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

from .config import get_settings

_LOGGING_CONFIGURED = False


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter for structured logs.

    Batch runs are read back from log aggregation, so every record carries
    the stage and the entity it was working on when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", "robotics_hub_etl"),
        }

        # Common structured fields
        for field in ("run_id", "step", "source", "raw_news_id", "attempt", "url", "sources_created"):
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def configure_logging(level: int | str | None = None) -> None:
    """
    Configure root logger once with JSON output.

    Level defaults to LOG_LEVEL. Safe to call multiple times – subsequent
    calls are no-ops.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    if level is None:
        level = get_settings().LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # One INFO line per feed/LLM/CoinGecko request drowns the batch logs
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _LOGGING_CONFIGURED = True
