import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, get_task_store
from storage.task_store import TaskStore
from task_assistant.models import CategoryCreate, CategoryUpdate, User

router = APIRouter(prefix="/categories")
logger = logging.getLogger(__name__)


@router.get("")
async def list_categories(
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    categories = await store.list_categories(user.id)
    return {"success": True, "data": [c.model_dump(mode="json") for c in categories]}


@router.post("", status_code=201)
async def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    category = await store.create_category(user.id, payload)
    logger.info(f"Created category {category.id} for user {user.id}")
    return {"success": True, "data": category.model_dump(mode="json")}


@router.get("/{category_id}")
async def get_category(
    category_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    category = await store.get_category(user.id, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True, "data": category.model_dump(mode="json")}


@router.put("/{category_id}")
@router.patch("/{category_id}")
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    category = await store.update_category(user.id, category_id, payload.changes())
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True, "data": category.model_dump(mode="json")}


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    if not await store.delete_category(user.id, category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True, "message": "Category deleted successfully"}
