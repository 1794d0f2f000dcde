import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from openai import AsyncOpenAI
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.db import get_db
from ..schemas.agent import AgentQueryIn, AgentQueryOut
from ..services.agent import AgentService, InvalidDateRange

router = APIRouter(tags=["agent"])
logger = logging.getLogger(__name__)


def get_llm_client(request: Request) -> Optional[AsyncOpenAI]:
    return request.app.state.llm_client


def get_agent(
    settings: Settings = Depends(get_settings),
    llm: Optional[AsyncOpenAI] = Depends(get_llm_client),
) -> AgentService:
    return AgentService(llm, model=settings.LLM_MODEL, temperature=settings.AGENT_TEMPERATURE)


@router.post("/agent/query", response_model=AgentQueryOut)
async def agent_query(
    payload: AgentQueryIn,
    db: Session = Depends(get_db),
    agent: AgentService = Depends(get_agent),
):
    question = (payload.userQuery or "").strip()
    if not question:
        raise HTTPException(status_code=400, detail='The field "userQuery" is required.')

    date_range = payload.dateRange
    try:
        result = await agent.answer(
            db,
            question,
            date_from=date_range.date_from if date_range else None,
            date_to=date_range.date_to if date_range else None,
        )
    except InvalidDateRange as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to process agent query: %s", e, extra={"step": "agent"})
        raise HTTPException(status_code=500, detail="Failed to process agent query")

    return AgentQueryOut(answer=result.answer, context_articles_count=result.context_articles_count)
