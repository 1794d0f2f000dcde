from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # database & redis
    # Plain strings so sqlite:/// and redis:// URLs are always accepted
    DATABASE_URL: str = "sqlite:///./robotics_hub.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    # llm enrichment (any OpenAI-compatible endpoint, xAI Grok by default)
    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str = "https://api.x.ai/v1"
    LLM_MODEL: str = "grok-2-latest"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: int = 60
    LLM_RETRIES: int = 3
    # free-form Q&A over stored articles
    AGENT_TEMPERATURE: float = 0.3

    # market data
    COINGECKO_API_KEY: str | None = None
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_TIMEOUT_SECONDS: float = 10.0
    COINGECKO_RETRIES: int = 3
    COINGECKO_PER_PAGE: int = 250

    # rss
    RSS_TIMEOUT_SECONDS: float = 15.0
    RSS_RETRIES: int = 2

    # shared backoff schedule
    RETRY_BASE_DELAY_SECONDS: float = 0.5
    RETRY_BACKOFF_FACTOR: float = 2.0
    RETRY_MAX_DELAY_SECONDS: float = 5.0

    # batch
    INGEST_CONCURRENCY: int = 4
    # Raw items that failed enrichment this many times are no longer retried
    ENRICH_MAX_ATTEMPTS: int = 5
    BATCH_CRON_HOUR: int = 6
    BATCH_CRON_MINUTE: int = 0

    # auth / security
    CRON_SECRET: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
