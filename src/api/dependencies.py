import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api import state
from api.backend import BackendAPI
from llm.llm_client import LLMClient
from storage.task_store import TaskStore
from task_assistant.models import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_task_store() -> TaskStore:
    if state.task_store is None:
        raise HTTPException(status_code=503, detail="Task store not initialized")
    return state.task_store


def get_llm_client() -> LLMClient:
    if state.llm_client is None:
        try:
            state.llm_client = LLMClient()
        except RuntimeError as e:
            logger.error(f"LLM client could not be created: {e}")
            raise HTTPException(status_code=503, detail="AI service not configured")
    return state.llm_client


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: TaskStore = Depends(get_task_store),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await store.get_user_by_token(credentials.credentials)
    if user is None:
        logger.warning("Rejected request with unknown bearer token")
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_backend(
    store: TaskStore = Depends(get_task_store),
    llm_client: LLMClient = Depends(get_llm_client),
) -> BackendAPI:
    return BackendAPI(store, llm_client)
