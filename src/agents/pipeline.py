"""
Planner -> executor -> reviewer -> coordinator pipeline.

Four completion calls run strictly one after another, each prompt embedding
the earlier stages' JSON. The unit of failure is the whole run: if any stage
fails or returns something that isn't a JSON object, nothing is created.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from llm.json_extraction import extract_json_object
from llm.llm_client import CompletionError, LLMClient
from storage.task_store import TaskStore
from task_assistant.models import Task, TaskCreate
from task_assistant.text import single_line

from agents.prompts import (
    AGENT_SYSTEM_PROMPT,
    COORDINATOR_PROMPT,
    EXECUTOR_PROMPT,
    PLANNER_PROMPT,
    REVIEWER_PROMPT,
    to_json,
)

logger = logging.getLogger(__name__)

AGENT_TIMEOUT_S = float(os.getenv("AGENT_TIMEOUT_S", "60"))
GOAL_MAX_CHARS = 1000
CONTEXT_MAX_CHARS = 2000


class PipelineError(RuntimeError):
    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


@dataclass
class PipelineResult:
    goal: str
    planner: Dict[str, Any]
    executor: Dict[str, Any]
    reviewer: Dict[str, Any]
    coordinator: Dict[str, Any]
    tasks_created: List[Dict[str, Any]] = field(default_factory=list)
    agent_conversation: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal,
            "planner_analysis": self.planner,
            "executor_analysis": self.executor,
            "reviewer_suggestions": self.reviewer,
            "final_plan": self.coordinator,
            "tasks_created": self.tasks_created,
            "agent_conversation": self.agent_conversation,
        }


def _headline(value: Any, default: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return value if isinstance(value, str) else str(value)


def build_conversation_log(
    planner: Dict[str, Any],
    executor: Dict[str, Any],
    reviewer: Dict[str, Any],
    coordinator: Dict[str, Any],
) -> List[Dict[str, str]]:
    """Display-only summary, one entry per stage."""
    score = _headline(reviewer.get("quality_score"), "N/A")
    return [
        {
            "agent": "Planner",
            "role": "Strategic Planning",
            "emoji": "🎯",
            "summary": _headline(planner.get("analysis"), "Analyzed goal and created task breakdown"),
        },
        {
            "agent": "Executor",
            "role": "Execution Analysis",
            "emoji": "⚡",
            "summary": _headline(
                executor.get("execution_strategy"), "Assessed feasibility and execution approach"
            ),
        },
        {
            "agent": "Reviewer",
            "role": "Quality Assurance",
            "emoji": "🔍",
            "summary": f"Quality score: {score}/10 - Provided improvements",
        },
        {
            "agent": "Coordinator",
            "role": "Final Synthesis",
            "emoji": "🎭",
            "summary": _headline(coordinator.get("executive_summary"), "Created final optimized plan"),
        },
    ]


def plan_rows(coordinator: Dict[str, Any]) -> List[Tuple[TaskCreate, Dict[str, Any]]]:
    """
    Turn coordinator.final_tasks into task rows.

    Priority, phase and estimate are appended to the description text rather
    than stored in columns. Entries without a title are skipped.

    Raises:
        PipelineError: if final_tasks is missing or not a list
    """
    final_tasks = coordinator.get("final_tasks")
    if not isinstance(final_tasks, list):
        raise PipelineError("coordinator", "Coordinator did not return valid final_tasks array")

    rows = []
    for entry in final_tasks:
        if not isinstance(entry, dict):
            continue
        title = entry.get("title")
        if not isinstance(title, str) or not title.strip():
            logger.warning(f"Skipping final task without a title: {str(entry)[:100]}")
            continue

        description = str(entry.get("description") or "")
        if entry.get("priority") is not None:
            description += f"\n\nPriority: {entry['priority']}"
        if entry.get("phase") is not None:
            description += f"\nPhase: {entry['phase']}"
        if entry.get("estimated_hours") is not None:
            description += f"\nEstimated: {entry['estimated_hours']} hours"

        rows.append((
            TaskCreate(title=title.strip()[:255], description=description.strip() or None),
            entry,
        ))
    return rows


class MultiAgentPipeline:
    def __init__(self, llm_client: LLMClient, store: TaskStore):
        self.llm_client = llm_client
        self.store = store

    @staticmethod
    def planner_prompt(goal: str, context: Optional[str], snapshot: Sequence[Task]) -> str:
        task_lines = "\n".join(f"- {single_line(t.title)}" for t in snapshot) or "No current tasks"
        return PLANNER_PROMPT.format(
            goal=single_line(goal, limit=GOAL_MAX_CHARS),
            context=single_line(context, limit=CONTEXT_MAX_CHARS),
            task_lines=task_lines,
        )

    @staticmethod
    def executor_prompt(planner: Dict[str, Any], snapshot: Sequence[Task]) -> str:
        return EXECUTOR_PROMPT.format(
            planner_json=to_json(planner),
            total=len(snapshot),
            completed=sum(1 for t in snapshot if t.is_completed),
        )

    @staticmethod
    def reviewer_prompt(planner: Dict[str, Any], executor: Dict[str, Any]) -> str:
        return REVIEWER_PROMPT.format(
            combined_json=to_json({"planner": planner, "executor": executor})
        )

    @staticmethod
    def coordinator_prompt(
        goal: str,
        planner: Dict[str, Any],
        executor: Dict[str, Any],
        reviewer: Dict[str, Any],
    ) -> str:
        return COORDINATOR_PROMPT.format(
            goal=single_line(goal, limit=GOAL_MAX_CHARS),
            all_json=to_json({"planner": planner, "executor": executor, "reviewer": reviewer}),
        )

    async def _call_stage(self, stage: str, prompt: str, user_id: int) -> Dict[str, Any]:
        try:
            raw = await asyncio.to_thread(
                self.llm_client.complete_json_prompt,
                prompt,
                system=AGENT_SYSTEM_PROMPT,
                purpose=f"agent:{stage}",
                timeout=AGENT_TIMEOUT_S,
            )
        except CompletionError as e:
            raise PipelineError(stage, f"Agent '{stage}' API call failed: {e}") from e

        logger.info(f"Agent {stage} raw response for user {user_id}: {raw[:500]!r}")

        if not raw.strip():
            raise PipelineError(stage, f"Agent '{stage}' returned empty response")

        parsed = extract_json_object(raw)
        if parsed is None:
            logger.error(f"Agent {stage} final parse failed for user {user_id}: {raw[:500]!r}")
            raise PipelineError(stage, f"Agent '{stage}' returned unparseable JSON")

        logger.info(f"Agent {stage} parsed successfully for user {user_id}")
        return parsed

    async def run(self, goal: str, context: Optional[str], user_id: int) -> PipelineResult:
        snapshot = await self.store.list_tasks(user_id)

        planner = await self._call_stage(
            "planner", self.planner_prompt(goal, context, snapshot), user_id
        )
        executor = await self._call_stage(
            "executor", self.executor_prompt(planner, snapshot), user_id
        )
        reviewer = await self._call_stage(
            "reviewer", self.reviewer_prompt(planner, executor), user_id
        )
        coordinator = await self._call_stage(
            "coordinator", self.coordinator_prompt(goal, planner, executor, reviewer), user_id
        )

        rows = plan_rows(coordinator)
        created = await self.store.create_tasks(user_id, [row for row, _ in rows])
        logger.info(f"Pipeline created {len(created)} tasks for user {user_id}")

        tasks_created = [
            {
                "id": task.id,
                "title": task.title,
                "priority": entry.get("priority") or "medium",
                "phase": entry.get("phase") or "Phase 1",
            }
            for task, (_, entry) in zip(created, rows)
        ]

        return PipelineResult(
            goal=goal,
            planner=planner,
            executor=executor,
            reviewer=reviewer,
            coordinator=coordinator,
            tasks_created=tasks_created,
            agent_conversation=build_conversation_log(planner, executor, reviewer, coordinator),
        )
