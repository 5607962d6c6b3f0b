"""Turns a parsed assistant intent into task-store mutations.

Every lookup is scoped to the requesting user. Lookups that miss never raise;
they become a message for the user and nothing is changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Type

from pydantic import ValidationError

from classification.task_analyzer import TaskAnalyzer
from llm.schemas import (
    AskForDetails,
    CompleteTask,
    CreateMultipleTasks,
    CreateTaskSmart,
    DeleteMultiple,
    DeleteTask,
    Intent,
    ListTasks,
    NoAction,
    TaskSpec,
)
from storage.task_store import DELETE_CRITERIA, TaskStore
from task_assistant.models import Task, TaskCreate, parse_datetime

from assistant.prompts import count_tasks

logger = logging.getLogger(__name__)

PRIORITY_GLYPHS = {"HIGH": "🔴", "MEDIUM": "🟡", "LOW": "🟢"}

NO_TASKS_MESSAGE = "You don't have any tasks yet! 🎉 Would you like me to create one?"
NO_MATCH_MESSAGE = "I couldn't find any tasks matching that criteria."


@dataclass
class ActionResult:
    message: Optional[str]
    actions: List[str] = field(default_factory=list)
    created: List[Task] = field(default_factory=list)


def format_task_list(tasks: Sequence[Task]) -> str:
    if not tasks:
        return NO_TASKS_MESSAGE

    lines = []
    for task in tasks:
        status = "✅" if task.is_completed else "⬜"
        label = (task.priority or "medium").upper()
        lines.append(f"{status} {PRIORITY_GLYPHS.get(label, '')} {label} - {task.title}")

    counts = count_tasks(tasks)
    return (
        "Here are your tasks:\n\n"
        + "\n".join(lines)
        + f"\n\nTotal: {counts.total} tasks ({counts.pending} pending, {counts.completed} completed)"
    )


class ActionInterpreter:
    def __init__(self, store: TaskStore, analyzer: TaskAnalyzer):
        self.store = store
        self.analyzer = analyzer
        self._handlers: Dict[Type, Callable[..., Awaitable[ActionResult]]] = {
            AskForDetails: self._passthrough,
            NoAction: self._passthrough,
            CreateTaskSmart: self._create_task_smart,
            CreateMultipleTasks: self._create_multiple_tasks,
            ListTasks: self._list_tasks,
            CompleteTask: self._complete_task,
            DeleteTask: self._delete_task,
            DeleteMultiple: self._delete_multiple,
        }

    async def execute(
        self,
        intent: Intent,
        snapshot: Sequence[Task],
        user_id: int,
        raw_text: str = "",
    ) -> ActionResult:
        """Run the intent; the returned message is never empty."""
        handler = self._handlers.get(type(intent), self._passthrough)
        result = await handler(intent, snapshot, user_id)

        if not result.message:
            result.message = intent.response or raw_text

        logger.info(
            f"AI action executed for user {user_id}: {intent.action} -> {result.actions or 'no changes'}"
        )
        return result

    async def _passthrough(self, intent: Intent, snapshot, user_id: int) -> ActionResult:
        return ActionResult(message=intent.response)

    async def _create_one(self, user_id: int, title: str, due_date: Optional[str]) -> tuple:
        title = title.strip()[:255]
        analysis = await self.analyzer.analyze(title, due_date, user_id)
        task = await self.store.create_task(
            user_id,
            TaskCreate(
                title=title,
                due_date=parse_datetime(due_date),
                priority=analysis.priority,
                estimated_hours=analysis.estimated_hours,
                is_completed=False,
            ),
        )
        return task, analysis

    async def _create_task_smart(self, intent: CreateTaskSmart, snapshot, user_id: int) -> ActionResult:
        if not intent.task_title or not intent.task_title.strip():
            return ActionResult(message=intent.response)

        task, analysis = await self._create_one(user_id, intent.task_title, intent.due_date)
        message = (
            f"✅ I've added '{task.title}' to your tasks!\n\n"
            f"🤖 AI Analysis:\n"
            f"- Priority: {analysis.priority.upper()}\n"
            f"- Estimated: {analysis.estimated_hours} hours\n"
            f"- Reason: {analysis.reasoning}"
        )
        return ActionResult(message=message, actions=[f"Created task: {task.title}"], created=[task])

    async def _create_multiple_tasks(
        self, intent: CreateMultipleTasks, snapshot, user_id: int
    ) -> ActionResult:
        if intent.tasks is None:
            return ActionResult(message=intent.response)

        created: List[Task] = []
        lines: List[str] = []
        for index, item in enumerate(intent.tasks):
            try:
                spec = TaskSpec.model_validate(item)
            except ValidationError:
                logger.info(f"Skipping task #{index} without a usable title for user {user_id}")
                continue

            try:
                task, analysis = await self._create_one(user_id, spec.title, spec.due_date)
            except Exception:
                logger.exception(f"Failed to create task '{spec.title}' for user {user_id}")
                continue

            label = analysis.priority.upper()
            created.append(task)
            lines.append(
                f"✅ {task.title} ({PRIORITY_GLYPHS.get(label, '')} {label}, {analysis.estimated_hours}h)"
            )

        count = len(created)
        message = f"🎉 I've created {count} tasks with AI analysis!\n\n" + "\n".join(lines)
        return ActionResult(message=message, actions=[f"Created {count} tasks"], created=created)

    async def _list_tasks(self, intent: ListTasks, snapshot: Sequence[Task], user_id: int) -> ActionResult:
        return ActionResult(message=format_task_list(snapshot), actions=["Listed all tasks"])

    async def _complete_task(self, intent: CompleteTask, snapshot, user_id: int) -> ActionResult:
        if intent.task_id is None:
            return ActionResult(message=intent.response)

        task = await self.store.complete_task(user_id, intent.task_id)
        if task is None:
            return ActionResult(message=f"I couldn't find task ID {intent.task_id}.")

        return ActionResult(
            message=intent.response or f"I've marked '{task.title}' as completed!",
            actions=[f"Completed task: {task.title}"],
        )

    async def _delete_task(self, intent: DeleteTask, snapshot, user_id: int) -> ActionResult:
        task = None
        if intent.task_id is not None:
            task = await self.store.get_task(user_id, intent.task_id)
        if task is None and intent.task_title and intent.task_title.strip():
            task = await self.store.find_task_by_title(user_id, intent.task_title.strip())

        if task is None or not await self.store.delete_task(user_id, task.id):
            term = intent.task_title or intent.task_id or "that task"
            return ActionResult(
                message=f"I couldn't find a task matching '{term}'. Could you be more specific?"
            )

        return ActionResult(
            message=f"I've deleted '{task.title}' from your tasks!",
            actions=[f"Deleted task: {task.title}"],
        )

    async def _delete_multiple(self, intent: DeleteMultiple, snapshot, user_id: int) -> ActionResult:
        criteria = (intent.delete_criteria or "").strip().lower()
        if criteria not in DELETE_CRITERIA:
            criteria = None
        if criteria is None and intent.task_ids == []:
            logger.info(f"delete_multiple for user {user_id} sent an empty task_ids list")

        matched = await self.store.tasks_matching(user_id, criteria=criteria, task_ids=intent.task_ids)
        if not matched:
            return ActionResult(message=NO_MATCH_MESSAGE)

        await self.store.delete_tasks(user_id, [t.id for t in matched])
        titles = [t.title for t in matched]
        count = len(titles)
        return ActionResult(
            message=f"I've deleted {count} task{'s' if count > 1 else ''}: {', '.join(titles)}",
            actions=[f"Deleted {count} tasks: {', '.join(titles)}"],
        )
