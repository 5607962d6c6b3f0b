"""
Task store for the task assistant.

Every operation is scoped to the owning user id passed in by the caller;
nothing here reads an ambient "current user".
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from storage import db
from task_assistant.models import (
    Category,
    CategoryCreate,
    Task,
    TaskCreate,
    TaskStats,
    User,
)

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("completed", "pending")
DUE_FILTERS = ("overdue", "today", "upcoming")
DELETE_CRITERIA = ("completed", "all", "pending")

# Columns a caller may change through update_task / update_category.
TASK_UPDATABLE = (
    "title",
    "description",
    "is_completed",
    "due_date",
    "reminder_date",
    "priority",
    "estimated_hours",
)
CATEGORY_UPDATABLE = ("name", "color", "icon")


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TaskStore(ABC):
    """Owner-scoped persistence for tasks and categories."""

    kind: str = "abstract"

    @abstractmethod
    async def get_user_by_token(self, token: str) -> Optional[User]:
        """Resolve a bearer token to its user, or None."""

    @abstractmethod
    async def list_tasks(
        self,
        user_id: int,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        due_filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        """
        List a user's tasks, newest first.

        Args:
            status: 'completed' or 'pending'
            priority: 'low', 'medium' or 'high'
            due_filter: 'overdue', 'today' or 'upcoming' (upcoming is ordered by due date)
            search: case-insensitive substring over title and description

        Unknown filter values are ignored.
        """

    @abstractmethod
    async def get_task(self, user_id: int, task_id: int) -> Optional[Task]: ...

    @abstractmethod
    async def find_task_by_title(self, user_id: int, title: str) -> Optional[Task]:
        """Case-insensitive exact title match; first match wins."""

    @abstractmethod
    async def create_task(self, user_id: int, data: TaskCreate) -> Task: ...

    @abstractmethod
    async def create_tasks(self, user_id: int, items: List[TaskCreate]) -> List[Task]:
        """Create several tasks; either all are created or none."""

    @abstractmethod
    async def update_task(
        self, user_id: int, task_id: int, changes: dict[str, Any]
    ) -> Optional[Task]:
        """Apply column changes. Returns None when the task isn't the user's."""

    @abstractmethod
    async def delete_task(self, user_id: int, task_id: int) -> bool: ...

    @abstractmethod
    async def delete_tasks(self, user_id: int, task_ids: List[int]) -> int:
        """Delete a batch of the user's tasks, returning how many went."""

    @abstractmethod
    async def count_pending(self, user_id: int) -> int: ...

    @abstractmethod
    async def stats(self, user_id: int) -> TaskStats: ...

    @abstractmethod
    async def list_categories(self, user_id: int) -> List[Category]: ...

    @abstractmethod
    async def get_category(self, user_id: int, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    async def create_category(self, user_id: int, data: CategoryCreate) -> Category: ...

    @abstractmethod
    async def update_category(
        self, user_id: int, category_id: int, changes: dict[str, Any]
    ) -> Optional[Category]: ...

    @abstractmethod
    async def delete_category(self, user_id: int, category_id: int) -> bool: ...

    @abstractmethod
    async def set_task_categories(
        self, user_id: int, task_id: int, category_ids: List[int]
    ) -> Optional[List[Category]]:
        """
        Replace the categories linked to a task.

        Returns None if the task is not the user's. Raises ValueError if any
        category id does not belong to the user.
        """

    async def complete_task(self, user_id: int, task_id: int) -> Optional[Task]:
        return await self.update_task(user_id, task_id, {"is_completed": True})

    async def tasks_matching(
        self,
        user_id: int,
        *,
        criteria: Optional[str] = None,
        task_ids: Optional[List[int]] = None,
    ) -> List[Task]:
        """Resolve a bulk-delete selection. criteria wins over task_ids."""
        if criteria == "all":
            return await self.list_tasks(user_id)
        if criteria in STATUS_FILTERS:
            return await self.list_tasks(user_id, status=criteria)
        if task_ids:
            wanted = set(task_ids)
            return [t for t in await self.list_tasks(user_id) if t.id in wanted]
        return []


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


_TASK_COLUMNS = (
    "id, user_id, title, description, is_completed, due_date, reminder_date, "
    "priority, estimated_hours, created_at, updated_at"
)

_CATEGORY_SELECT = """
    SELECT c.id, c.user_id, c.name, c.color, c.icon, c.created_at, c.updated_at,
           COUNT(tc.id) AS tasks_count
    FROM categories c
    LEFT JOIN task_category tc ON tc.category_id = c.id
"""

_TODAY_UTC = "(due_date AT TIME ZONE 'UTC')::date = (NOW() AT TIME ZONE 'UTC')::date"


class PostgresTaskStore(TaskStore):
    """asyncpg-backed store. Requires storage.db.init_db_pool() to have run."""

    kind = "postgres"

    async def get_user_by_token(self, token: str) -> Optional[User]:
        record = await db.fetchrow(
            """
            SELECT u.id, u.name, u.email
            FROM api_tokens t
            JOIN users u ON u.id = t.user_id
            WHERE t.token_hash = $1
            """,
            hash_token(token),
        )
        return User(**dict(record)) if record else None

    async def list_tasks(
        self,
        user_id: int,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        due_filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Task]:
        args: list[Any] = [user_id]
        conditions = ["user_id = $1"]
        order_by = "created_at DESC"

        def _param(value: Any) -> str:
            args.append(value)
            return f"${len(args)}"

        if status == "completed":
            conditions.append("is_completed = TRUE")
        elif status == "pending":
            conditions.append("is_completed = FALSE")

        if priority:
            conditions.append(f"priority = {_param(priority)}")

        if due_filter == "overdue":
            conditions.append("due_date < NOW() AND is_completed = FALSE")
        elif due_filter == "today":
            conditions.append(_TODAY_UTC)
        elif due_filter == "upcoming":
            conditions.append("due_date > NOW()")
            order_by = "due_date ASC, created_at DESC"

        if search:
            pattern = _param(f"%{_escape_like(search)}%")
            conditions.append(
                f"(title ILIKE {pattern} OR COALESCE(description, '') ILIKE {pattern})"
            )

        query = (
            f"SELECT {_TASK_COLUMNS} FROM tasks "
            f"WHERE {' AND '.join(conditions)} ORDER BY {order_by}, id DESC"
        )
        records = await db.fetch(query, *args)
        return [Task(**dict(r)) for r in records]

    async def get_task(self, user_id: int, task_id: int) -> Optional[Task]:
        record = await db.fetchrow(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = $1 AND user_id = $2",
            task_id,
            user_id,
        )
        return Task(**dict(record)) if record else None

    async def find_task_by_title(self, user_id: int, title: str) -> Optional[Task]:
        record = await db.fetchrow(
            f"""
            SELECT {_TASK_COLUMNS} FROM tasks
            WHERE user_id = $1 AND LOWER(title) = LOWER($2)
            ORDER BY id
            LIMIT 1
            """,
            user_id,
            title,
        )
        return Task(**dict(record)) if record else None

    @staticmethod
    async def _insert_task(conn, user_id: int, data: TaskCreate) -> Task:
        record = await conn.fetchrow(
            f"""
            INSERT INTO tasks (
                user_id, title, description, is_completed,
                due_date, reminder_date, priority, estimated_hours
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING {_TASK_COLUMNS}
            """,
            user_id,
            data.title,
            data.description,
            data.is_completed,
            data.due_date,
            data.reminder_date,
            data.priority,
            data.estimated_hours,
        )
        return Task(**dict(record))

    async def create_task(self, user_id: int, data: TaskCreate) -> Task:
        async with db.get_connection() as conn:
            task = await self._insert_task(conn, user_id, data)
        logger.info(f"Created task {task.id} for user {user_id}")
        return task

    async def create_tasks(self, user_id: int, items: List[TaskCreate]) -> List[Task]:
        if not items:
            return []
        async with db.transaction() as conn:
            created = [await self._insert_task(conn, user_id, item) for item in items]
        logger.info(f"Created {len(created)} tasks for user {user_id}")
        return created

    async def update_task(
        self, user_id: int, task_id: int, changes: dict[str, Any]
    ) -> Optional[Task]:
        columns = [c for c in TASK_UPDATABLE if c in changes]
        if not columns:
            return await self.get_task(user_id, task_id)

        assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=3))
        record = await db.fetchrow(
            f"""
            UPDATE tasks SET {assignments}, updated_at = NOW()
            WHERE id = $1 AND user_id = $2
            RETURNING {_TASK_COLUMNS}
            """,
            task_id,
            user_id,
            *[changes[c] for c in columns],
        )
        return Task(**dict(record)) if record else None

    async def delete_task(self, user_id: int, task_id: int) -> bool:
        status = await db.execute(
            "DELETE FROM tasks WHERE id = $1 AND user_id = $2", task_id, user_id
        )
        return db.affected_rows(status) == 1

    async def delete_tasks(self, user_id: int, task_ids: List[int]) -> int:
        if not task_ids:
            return 0
        status = await db.execute(
            "DELETE FROM tasks WHERE user_id = $1 AND id = ANY($2::bigint[])",
            user_id,
            list(task_ids),
        )
        return db.affected_rows(status)

    async def count_pending(self, user_id: int) -> int:
        return await db.fetchval(
            "SELECT COUNT(*) FROM tasks WHERE user_id = $1 AND is_completed = FALSE",
            user_id,
        )

    async def stats(self, user_id: int) -> TaskStats:
        record = await db.fetchrow(
            f"""
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE is_completed) AS completed,
                COUNT(*) FILTER (WHERE NOT is_completed) AS pending,
                COUNT(*) FILTER (WHERE due_date < NOW() AND NOT is_completed) AS overdue,
                COUNT(*) FILTER (WHERE {_TODAY_UTC}) AS due_today,
                COUNT(*) FILTER (WHERE priority = 'high' AND NOT is_completed) AS high_priority,
                COALESCE(SUM(estimated_hours) FILTER (WHERE NOT is_completed), 0)
                    AS total_hours_estimated
            FROM tasks
            WHERE user_id = $1
            """,
            user_id,
        )
        return TaskStats(**dict(record))

    async def list_categories(self, user_id: int) -> List[Category]:
        records = await db.fetch(
            _CATEGORY_SELECT + " WHERE c.user_id = $1 GROUP BY c.id ORDER BY c.id",
            user_id,
        )
        return [Category(**dict(r)) for r in records]

    async def get_category(self, user_id: int, category_id: int) -> Optional[Category]:
        record = await db.fetchrow(
            _CATEGORY_SELECT + " WHERE c.user_id = $1 AND c.id = $2 GROUP BY c.id",
            user_id,
            category_id,
        )
        return Category(**dict(record)) if record else None

    async def create_category(self, user_id: int, data: CategoryCreate) -> Category:
        record = await db.fetchrow(
            """
            INSERT INTO categories (user_id, name, color, icon)
            VALUES ($1, $2, COALESCE($3, '#007bff'), $4)
            RETURNING id, user_id, name, color, icon, created_at, updated_at
            """,
            user_id,
            data.name,
            data.color,
            data.icon,
        )
        return Category(**dict(record))

    async def update_category(
        self, user_id: int, category_id: int, changes: dict[str, Any]
    ) -> Optional[Category]:
        columns = [c for c in CATEGORY_UPDATABLE if c in changes]
        if columns:
            assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=3))
            status = await db.execute(
                f"""
                UPDATE categories SET {assignments}, updated_at = NOW()
                WHERE id = $1 AND user_id = $2
                """,
                category_id,
                user_id,
                *[changes[c] for c in columns],
            )
            if db.affected_rows(status) == 0:
                return None
        return await self.get_category(user_id, category_id)

    async def delete_category(self, user_id: int, category_id: int) -> bool:
        status = await db.execute(
            "DELETE FROM categories WHERE id = $1 AND user_id = $2", category_id, user_id
        )
        return db.affected_rows(status) == 1

    async def set_task_categories(
        self, user_id: int, task_id: int, category_ids: List[int]
    ) -> Optional[List[Category]]:
        if await self.get_task(user_id, task_id) is None:
            return None

        wanted = sorted(set(category_ids))
        async with db.transaction() as conn:
            owned = await conn.fetch(
                "SELECT id FROM categories WHERE user_id = $1 AND id = ANY($2::bigint[])",
                user_id,
                wanted,
            )
            missing = set(wanted) - {r["id"] for r in owned}
            if missing:
                raise ValueError(f"Unknown category ids: {sorted(missing)}")

            await conn.execute(
                """
                DELETE FROM task_category
                WHERE task_id = $1 AND NOT (category_id = ANY($2::bigint[]))
                """,
                task_id,
                wanted,
            )
            await conn.executemany(
                """
                INSERT INTO task_category (task_id, category_id)
                VALUES ($1, $2)
                ON CONFLICT (task_id, category_id) DO NOTHING
                """,
                [(task_id, cid) for cid in wanted],
            )

        records = await db.fetch(
            _CATEGORY_SELECT
            + """
            WHERE c.user_id = $1
              AND c.id IN (SELECT category_id FROM task_category WHERE task_id = $2)
            GROUP BY c.id ORDER BY c.id
            """,
            user_id,
            task_id,
        )
        return [Category(**dict(r)) for r in records]
