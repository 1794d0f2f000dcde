import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.db import get_db
from ..schemas.news import BatchResultOut
from ..services.batch import BatchOrchestrator, build_orchestrator

router = APIRouter(tags=["cron"])

cron_secret_header = APIKeyHeader(name="x-vercel-cron-secret", auto_error=False)
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)
logger = logging.getLogger(__name__)


def extract_secret(cron_header: str | None, authorization: str | None) -> str | None:
    """Cron header wins; otherwise accept `Authorization: Bearer <secret>` or a bare value."""
    if cron_header and cron_header.strip():
        return cron_header.strip()

    if not authorization:
        return None

    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()

    return authorization.strip()


def verify_cron_secret(
    cron_header: str | None = Security(cron_secret_header),
    authorization: str | None = Security(authorization_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Shared-secret check for the batch trigger.

    Runs before the batch starts, so a rejected call has no side effects.
    Unlike the read APIs there is no dev-mode bypass: a missing secret is
    a server misconfiguration.
    """
    expected = settings.CRON_SECRET
    if not expected:
        raise HTTPException(status_code=500, detail="CRON_SECRET is not configured")

    provided = extract_secret(cron_header, authorization)
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_orchestrator(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> BatchOrchestrator:
    # Clients are created once in the app lifespan and shared across runs
    return build_orchestrator(
        settings,
        request.app.state.http_client,
        request.app.state.llm_client,
    )


@router.post("/cron/daily-batch", response_model=BatchResultOut)
async def trigger_daily_batch(
    response: Response,
    _: None = Depends(verify_cron_secret),
    db: Session = Depends(get_db),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.run(db)

    if not result.success:
        response.status_code = 500
        logger.error(
            "Daily batch failed",
            extra={"step": "batch", "errors": result.stats.errors},
        )

    return result.as_dict()
