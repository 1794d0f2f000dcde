from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.logging import configure_logging
from .api.routes_agent import router as agent_router
from .api.routes_cron import router as cron_router
from .api.routes_news import router as news_router
from .services.batch import build_http_client, try_build_llm_client

configure_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One HTTP client and one LLM client for the lifetime of the process
    app.state.http_client = build_http_client()
    app.state.llm_client = try_build_llm_client(settings)
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        if app.state.llm_client is not None:
            await app.state.llm_client.close()


app = FastAPI(title="Robotics Hub API", lifespan=lifespan)

# CORS:
# - In prod, FRONTEND_ORIGIN is required and we never fall back to "*".
# - Elsewhere, "*" unless FRONTEND_ORIGIN narrows it and CORS_ALLOW_ALL_ORIGINS is off.
origins = [o.strip() for o in (settings.FRONTEND_ORIGIN or "").split(",") if o.strip()]
if settings.ENV.lower() == "prod":
    if not origins:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production – refusing to start with wide-open CORS."
        )
elif settings.CORS_ALLOW_ALL_ORIGINS or not origins:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(news_router, prefix=settings.API_PREFIX)
app.include_router(cron_router, prefix=settings.API_PREFIX)
app.include_router(agent_router, prefix=settings.API_PREFIX)

