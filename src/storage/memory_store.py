"""
In-memory TaskStore (TASK_STORE=memory).

Used for local development and tests; state lives for the process lifetime only.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from storage.task_store import (
    CATEGORY_UPDATABLE,
    TASK_UPDATABLE,
    TaskStore,
    hash_token,
)
from task_assistant.models import (
    DEFAULT_CATEGORY_COLOR,
    Category,
    CategoryCreate,
    Task,
    TaskCreate,
    TaskStats,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class _Link:
    id: int
    task_id: int
    category_id: int
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


class InMemoryTaskStore(TaskStore):
    kind = "memory"

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._tokens: Dict[str, int] = {}
        self._tasks: Dict[int, Task] = {}
        self._categories: Dict[int, Category] = {}
        self._links: Dict[int, _Link] = {}
        self._ids = {
            "user": itertools.count(1),
            "task": itertools.count(1),
            "category": itertools.count(1),
            "link": itertools.count(1),
        }

    # users / tokens

    def add_user(self, name: str, email: Optional[str] = None, token: Optional[str] = None) -> User:
        user = User(id=next(self._ids["user"]), name=name, email=email)
        self._users[user.id] = user
        if token:
            self._tokens[hash_token(token)] = user.id
        return user

    async def get_user_by_token(self, token: str) -> Optional[User]:
        user_id = self._tokens.get(hash_token(token))
        return self._users.get(user_id) if user_id is not None else None

    # tasks

    def _owned(self, user_id: int) -> List[Task]:
        return [t for t in self._tasks.values() if t.user_id == user_id]

    async def list_tasks(
        self,
        user_id: int,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        due_filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        now = utcnow()
        tasks = self._owned(user_id)

        if status == "completed":
            tasks = [t for t in tasks if t.is_completed]
        elif status == "pending":
            tasks = [t for t in tasks if not t.is_completed]

        if priority:
            tasks = [t for t in tasks if t.priority == priority]

        if due_filter == "overdue":
            tasks = [t for t in tasks if t.due_date and t.due_date < now and not t.is_completed]
        elif due_filter == "today":
            tasks = [t for t in tasks if t.due_date and t.due_date.date() == now.date()]
        elif due_filter == "upcoming":
            tasks = [t for t in tasks if t.due_date and t.due_date > now]

        if search:
            needle = search.lower()
            tasks = [
                t
                for t in tasks
                if needle in t.title.lower() or needle in (t.description or "").lower()
            ]

        tasks.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        if due_filter == "upcoming":
            # stable sort keeps newest-first among equal due dates
            tasks.sort(key=lambda t: t.due_date)
        return [t.model_copy() for t in tasks]

    async def get_task(self, user_id: int, task_id: int) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task.model_copy()

    async def find_task_by_title(self, user_id: int, title: str) -> Optional[Task]:
        wanted = title.lower()
        for task in sorted(self._owned(user_id), key=lambda t: t.id):
            if task.title.lower() == wanted:
                return task.model_copy()
        return None

    def _build_task(self, user_id: int, data: TaskCreate) -> Task:
        now = utcnow()
        return Task(
            id=next(self._ids["task"]),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

    async def create_task(self, user_id: int, data: TaskCreate) -> Task:
        task = self._build_task(user_id, data)
        self._tasks[task.id] = task
        logger.info(f"Created task {task.id} for user {user_id}")
        return task.model_copy()

    async def create_tasks(self, user_id: int, items: List[TaskCreate]) -> List[Task]:
        # build everything first so a bad item leaves nothing behind
        built = [self._build_task(user_id, item) for item in items]
        for task in built:
            self._tasks[task.id] = task
        if built:
            logger.info(f"Created {len(built)} tasks for user {user_id}")
        return [t.model_copy() for t in built]

    async def update_task(
        self, user_id: int, task_id: int, changes: dict[str, Any]
    ) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        update = {k: v for k, v in changes.items() if k in TASK_UPDATABLE}
        if update:
            update["updated_at"] = utcnow()
            task = Task(**{**task.model_dump(), **update})
            self._tasks[task_id] = task
        return task.model_copy()

    def _unlink(self, *, task_id: Optional[int] = None, category_id: Optional[int] = None) -> None:
        for link_id, link in list(self._links.items()):
            if link.task_id == task_id or link.category_id == category_id:
                del self._links[link_id]

    async def delete_task(self, user_id: int, task_id: int) -> bool:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return False
        del self._tasks[task_id]
        self._unlink(task_id=task_id)
        return True

    async def delete_tasks(self, user_id: int, task_ids: List[int]) -> int:
        deleted = 0
        for task_id in set(task_ids):
            if await self.delete_task(user_id, task_id):
                deleted += 1
        return deleted

    async def count_pending(self, user_id: int) -> int:
        return sum(1 for t in self._owned(user_id) if not t.is_completed)

    async def stats(self, user_id: int) -> TaskStats:
        now = utcnow()
        tasks = self._owned(user_id)
        pending = [t for t in tasks if not t.is_completed]
        return TaskStats(
            total=len(tasks),
            completed=len(tasks) - len(pending),
            pending=len(pending),
            overdue=sum(1 for t in pending if t.due_date and t.due_date < now),
            due_today=sum(1 for t in tasks if t.due_date and t.due_date.date() == now.date()),
            high_priority=sum(1 for t in pending if t.priority == "high"),
            total_hours_estimated=sum(t.estimated_hours or 0 for t in pending),
        )

    # categories

    def _with_count(self, category: Category) -> Category:
        count = sum(1 for link in self._links.values() if link.category_id == category.id)
        return category.model_copy(update={"tasks_count": count})

    async def list_categories(self, user_id: int) -> List[Category]:
        owned = sorted(
            (c for c in self._categories.values() if c.user_id == user_id),
            key=lambda c: c.id,
        )
        return [self._with_count(c) for c in owned]

    async def get_category(self, user_id: int, category_id: int) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return None
        return self._with_count(category)

    async def create_category(self, user_id: int, data: CategoryCreate) -> Category:
        now = utcnow()
        category = Category(
            id=next(self._ids["category"]),
            user_id=user_id,
            name=data.name,
            color=data.color or DEFAULT_CATEGORY_COLOR,
            icon=data.icon,
            created_at=now,
            updated_at=now,
        )
        self._categories[category.id] = category
        return category.model_copy()

    async def update_category(
        self, user_id: int, category_id: int, changes: dict[str, Any]
    ) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return None
        update = {k: v for k, v in changes.items() if k in CATEGORY_UPDATABLE}
        if update:
            update["updated_at"] = utcnow()
            category = category.model_copy(update=update)
            self._categories[category_id] = category
        return self._with_count(category)

    async def delete_category(self, user_id: int, category_id: int) -> bool:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return False
        del self._categories[category_id]
        self._unlink(category_id=category_id)
        return True

    async def set_task_categories(
        self, user_id: int, task_id: int, category_ids: List[int]
    ) -> Optional[List[Category]]:
        if await self.get_task(user_id, task_id) is None:
            return None

        wanted = set(category_ids)
        owned = {c.id for c in self._categories.values() if c.user_id == user_id}
        missing = wanted - owned
        if missing:
            raise ValueError(f"Unknown category ids: {sorted(missing)}")

        current = {l.category_id: lid for lid, l in self._links.items() if l.task_id == task_id}
        for category_id, link_id in current.items():
            if category_id not in wanted:
                del self._links[link_id]
        for category_id in wanted - set(current):
            link = _Link(id=next(self._ids["link"]), task_id=task_id, category_id=category_id)
            self._links[link.id] = link

        return [self._with_count(self._categories[cid]) for cid in sorted(wanted)]
