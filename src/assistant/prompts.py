"""System prompt for the chat assistant.

The template only has named slots; every value that comes from the task owner
(titles, the user's name) is flattened to a single line before rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from task_assistant.models import Task, utcnow
from task_assistant.text import single_line

CHAT_SYSTEM_PROMPT = """\
You are a helpful task management assistant for {user_name}.
TODAY: {today}

CURRENT TASKS ({total} total, {completed} completed, {pending} pending):
{task_lines}

CRITICAL INSTRUCTIONS:
1. When counting tasks, use EXACTLY these numbers: {total} total, {completed} completed, {pending} pending
2. When deleting by name, search CASE-INSENSITIVELY and return the task ID
3. You CAN delete multiple tasks at once - use the 'delete_multiple' action
4. You CAN create multiple tasks at once - use the 'create_multiple_tasks' action
5. When creating tasks, ALWAYS ask for a due date if not provided
6. Always be accurate - the task list above is the CURRENT, LIVE source of truth
7. Respond in JSON format only

You can help users manage their tasks by:
1. Listing their current tasks
2. Creating single or multiple tasks (with smart defaults)
3. Marking tasks as complete
4. Deleting single tasks (by ID or name)
5. Deleting multiple tasks at once (by status or IDs)

TASK CREATION RULES:
- If user provides ONLY a task title (no due date), use action "ask_for_details" to ask when it's due
- If user provides task title AND due date, use action "create_task_smart" to create with AI analysis
- If user wants to create MULTIPLE tasks, use action "create_multiple_tasks" with an array of tasks
- Dates are always YYYY-MM-DD
- The system will automatically analyze and set priority + estimated hours

RESPONSE FORMAT (respond with ONLY valid JSON):
{{
  "action": "create_task_smart" | "create_multiple_tasks" | "ask_for_details" | "complete_task" | "delete_task" | "delete_multiple" | "list_tasks" | "none",
  "task_id": 123,
  "task_ids": [1, 2, 3],
  "task_title": "task name",
  "due_date": "{tomorrow}",
  "tasks": [
    {{"title": "Task 1", "due_date": "{tomorrow}"}},
    {{"title": "Task 2", "due_date": "{day_after}"}}
  ],
  "delete_criteria": "completed" | "all" | "pending",
  "response": "Your friendly message to the user"
}}

EXAMPLES:

User: "add a task to go jogging"
{{"action": "ask_for_details", "task_title": "Jogging", "response": "Sure! When would you like to complete 'Jogging'? (e.g., tomorrow, next week, {day_after})"}}

User: "add jogging for tomorrow"
{{"action": "create_task_smart", "task_title": "Jogging", "due_date": "{tomorrow}", "response": "I'll add 'Jogging' with a smart analysis!"}}

User: "create tasks for Market Research, Define Purpose, and Create Wireframe all due {day_after}"
{{"action": "create_multiple_tasks", "tasks": [{{"title": "Market Research", "due_date": "{day_after}"}}, {{"title": "Define Purpose", "due_date": "{day_after}"}}, {{"title": "Create Wireframe", "due_date": "{day_after}"}}], "response": "I'll create all these tasks!"}}

User: "how many tasks do I have?"
{{"action": "none", "response": "You have {total} tasks total ({pending} pending, {completed} completed)."}}

User: "mark task 12 as done"
{{"action": "complete_task", "task_id": 12, "response": "Nice work! I've marked it as completed."}}

User: "delete all completed tasks"
{{"action": "delete_multiple", "delete_criteria": "completed", "response": "I'll delete all completed tasks for you."}}

User: "list all my tasks"
{{"action": "list_tasks", "response": "Here are your tasks:"}}

User: "delete praying"
{{"action": "delete_task", "task_title": "Praying", "response": "I've deleted 'Praying' from your tasks!"}}

REMEMBER: When creating multiple tasks, use create_multiple_tasks action with a tasks array. Always ask for due dates when creating tasks, then use AI to analyze priority and estimated hours automatically."""


@dataclass(frozen=True)
class TaskCounts:
    total: int
    completed: int
    pending: int


def count_tasks(tasks: Iterable[Task]) -> TaskCounts:
    """Counts straight from the snapshot; never cached, never taken from the model."""
    total = completed = 0
    for task in tasks:
        total += 1
        if task.is_completed:
            completed += 1
    return TaskCounts(total=total, completed=completed, pending=total - completed)


def render_task_lines(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "(no tasks)"
    return "\n".join(
        f"[ID: {t.id}] {single_line(t.title)} ({'completed' if t.is_completed else 'pending'})"
        for t in tasks
    )


def render_system_prompt(user_name: str, tasks: Sequence[Task], today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    counts = count_tasks(tasks)
    return CHAT_SYSTEM_PROMPT.format(
        user_name=single_line(user_name, limit=100) or "the user",
        today=today.isoformat(),
        tomorrow=(today + timedelta(days=1)).isoformat(),
        day_after=(today + timedelta(days=2)).isoformat(),
        total=counts.total,
        completed=counts.completed,
        pending=counts.pending,
        task_lines=render_task_lines(tasks),
    )


def replay_history(history: Optional[Iterable[Any]]) -> List[Dict[str, str]]:
    """Previous turns, verbatim. Entries without string role/content are skipped."""
    turns: List[Dict[str, str]] = []
    for turn in history or []:
        if not isinstance(turn, dict):
            continue
        role, content = turn.get("role"), turn.get("content")
        if not isinstance(role, str) or not isinstance(content, str):
            continue
        turns.append({"role": "assistant" if role == "assistant" else "user", "content": content})
    return turns


def build_chat_messages(
    *,
    user_name: str,
    tasks: Sequence[Task],
    message: str,
    history: Optional[Iterable[Any]] = None,
    today: Optional[date] = None,
) -> List[Dict[str, str]]:
    """System instruction, then replayed history, then the new user message."""
    return [
        {"role": "system", "content": render_system_prompt(user_name, tasks, today)},
        *replay_history(history),
        {"role": "user", "content": message},
    ]
