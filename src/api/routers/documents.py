import logging
import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.backend import BackendAPI
from api.dependencies import get_backend, get_current_user
from api.metrics import REQUESTS_TOTAL, REQUEST_LATENCY_SECONDS
from api.routers.ai import failure
from task_assistant.models import User

router = APIRouter(prefix="/documents")
logger = logging.getLogger(__name__)


class DocumentIn(BaseModel):
    text: str = Field(..., min_length=1)


@router.post("/analyze")
async def analyze_document(
    payload: DocumentIn,
    user: User = Depends(get_current_user),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    logger.info(f"Document analysis for user {user.id}: {len(payload.text)} chars")
    try:
        data = await backend.analyze_document(user, payload.text)
    except Exception as e:
        logger.exception(f"Document analysis failed for user {user.id}")
        REQUESTS_TOTAL.labels(endpoint="/documents/analyze", status="error").inc()
        return failure(f"Document analysis failed: {e}")
    finally:
        REQUEST_LATENCY_SECONDS.labels(endpoint="/documents/analyze").observe(time.time() - start)

    REQUESTS_TOTAL.labels(endpoint="/documents/analyze", status="ok").inc()
    return {"success": True, "data": data}
