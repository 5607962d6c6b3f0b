import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from api.dependencies import get_current_user, get_task_store
from api.metrics import TASKS_CREATED_TOTAL
from storage.task_store import TaskStore
from task_assistant.models import Priority, TaskCreate, TaskUpdate, User

router = APIRouter(prefix="/tasks")
logger = logging.getLogger(__name__)


class TaskCategoriesIn(BaseModel):
    category_ids: List[int]


@router.get("")
async def list_tasks(
    status: Optional[Literal["completed", "pending"]] = None,
    priority: Optional[Priority] = None,
    due_filter: Optional[Literal["overdue", "today", "upcoming"]] = None,
    search: Optional[str] = Query(default=None, max_length=255),
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    tasks = await store.list_tasks(
        user.id, status=status, priority=priority, due_filter=due_filter, search=search
    )
    return {"success": True, "data": [t.model_dump(mode="json") for t in tasks]}


@router.post("", status_code=201)
async def create_task(
    payload: TaskCreate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    task = await store.create_task(user.id, payload)
    TASKS_CREATED_TOTAL.labels(source="api").inc()
    logger.info(f"Created task {task.id} for user {user.id}")
    return {"success": True, "data": task.model_dump(mode="json")}


# declared before /{task_id} so "stats" is not taken for an id
@router.get("/stats")
async def task_stats(
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    stats = await store.stats(user.id)
    return {"success": True, "data": stats.model_dump()}


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    task = await store.get_task(user.id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"success": True, "data": task.model_dump(mode="json")}


@router.put("/{task_id}")
@router.patch("/{task_id}")
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    task = await store.update_task(user.id, task_id, payload.changes())
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"success": True, "data": task.model_dump(mode="json")}


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    if not await store.delete_task(user.id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    logger.info(f"Deleted task {task_id} for user {user.id}")
    return {"success": True, "message": "Task deleted successfully"}


@router.post("/{task_id}/categories")
async def attach_categories(
    task_id: int,
    payload: TaskCategoriesIn,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    try:
        categories = await store.set_task_categories(user.id, task_id, payload.category_ids)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if categories is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"success": True, "data": [c.model_dump(mode="json") for c in categories]}
