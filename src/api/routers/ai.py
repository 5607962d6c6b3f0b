import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.backend import BackendAPI
from api.dependencies import get_backend, get_current_user
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from task_assistant.models import User

router = APIRouter(prefix="/ai")
logger = logging.getLogger(__name__)


class ChatIn(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_history: Optional[List[Dict[str, Any]]] = None


class AnalyzeTaskIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    # parsed leniently by the analyzer
    due_date: Optional[str] = None
    description: Optional[str] = None


def failure(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.post("/chat")
async def chat(
    payload: ChatIn,
    user: User = Depends(get_current_user),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    try:
        data = await backend.chat(user, payload.message, payload.conversation_history)
    except Exception as e:
        logger.exception(f"AI chat failed for user {user.id}")
        REQUESTS_TOTAL.labels(endpoint="/ai/chat", status="error").inc()
        return failure(f"AI request failed: {e}")
    finally:
        REQUEST_LATENCY_SECONDS.labels(endpoint="/ai/chat").observe(time.time() - start)

    REQUESTS_TOTAL.labels(endpoint="/ai/chat", status="ok").inc()
    return {"success": True, "data": data}


@router.post("/analyze-task")
async def analyze_task(
    payload: AnalyzeTaskIn,
    user: User = Depends(get_current_user),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    try:
        analysis = await backend.analyze_task(
            user, payload.title, payload.due_date, payload.description
        )
    except Exception as e:
        logger.exception(f"Task analysis failed for user {user.id}")
        REQUESTS_TOTAL.labels(endpoint="/ai/analyze-task", status="error").inc()
        return failure(f"AI request failed: {e}")
    finally:
        REQUEST_LATENCY_SECONDS.labels(endpoint="/ai/analyze-task").observe(time.time() - start)

    REQUESTS_TOTAL.labels(endpoint="/ai/analyze-task", status="ok").inc()
    return {"success": True, "data": analysis.model_dump()}
