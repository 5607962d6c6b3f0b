import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from agents.pipeline import PipelineError
from api.backend import BackendAPI
from api.dependencies import get_backend, get_current_user
from api.metrics import PIPELINE_FAILURES_TOTAL, REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from api.routers.ai import failure
from task_assistant.models import User

router = APIRouter(prefix="/multi-agent")
logger = logging.getLogger(__name__)


class GoalIn(BaseModel):
    goal: str = Field(..., min_length=1)
    context: Optional[str] = None


@router.post("/process")
async def process_goal(
    payload: GoalIn,
    user: User = Depends(get_current_user),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    logger.info(f"Multi-agent run for user {user.id}: {payload.goal[:50]}...")
    try:
        data = await backend.process_goal(user, payload.goal, payload.context)
    except PipelineError as e:
        logger.error(f"Multi-agent run aborted at {e.stage} for user {user.id}: {e}")
        PIPELINE_FAILURES_TOTAL.labels(stage=e.stage).inc()
        REQUESTS_TOTAL.labels(endpoint="/multi-agent/process", status="error").inc()
        return failure(f"Multi-agent processing failed: {e}")
    except Exception as e:
        logger.exception(f"Multi-agent run failed for user {user.id}")
        REQUESTS_TOTAL.labels(endpoint="/multi-agent/process", status="error").inc()
        return failure(f"Multi-agent processing failed: {e}")
    finally:
        REQUEST_LATENCY_SECONDS.labels(endpoint="/multi-agent/process").observe(time.time() - start)

    REQUESTS_TOTAL.labels(endpoint="/multi-agent/process", status="ok").inc()
    return {"success": True, "data": data}
