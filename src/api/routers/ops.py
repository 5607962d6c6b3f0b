import os
import logging

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api.dependencies import get_task_store
from storage import db
from storage.task_store import TaskStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(store: TaskStore = Depends(get_task_store)) -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "store": store.kind,
    }

    if store.kind == "postgres":
        try:
            db_health = await db.health_check()
            health["database"] = db_health
            if db_health["status"] != "healthy":
                health["status"] = "degraded"
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            health["status"] = "degraded"
            health["database"] = {"status": "error", "error": str(e)}

    return health


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
