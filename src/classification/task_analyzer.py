import asyncio
import logging
import math
import os
from datetime import date, datetime
from typing import Any, Optional

from llm.json_extraction import extract_json_object
from llm.llm_client import LLMClient
from storage.task_store import TaskStore
from task_assistant.models import PRIORITIES, TaskAnalysis, parse_datetime, utcnow
from task_assistant.text import single_line

logger = logging.getLogger(__name__)

ANALYZER_TIMEOUT_S = float(os.getenv("ANALYZER_TIMEOUT_S", "30"))
ANALYZER_MAX_TOKENS = 500
# Upper end of the "complex task" band in the prompt
MAX_ESTIMATED_HOURS = 40

ANALYSIS_SYSTEM_PROMPT = "You are a task analysis AI. Respond only with valid JSON."

ANALYSIS_PROMPT = """\
Analyze this task and determine priority and estimated hours.

TASK: {title}
DETAILS: {details}
DUE: {due}
WORKLOAD: {pending} pending tasks

PRIORITY RULES:
- HIGH: Due in 0-2 days OR urgent keywords
- MEDIUM: Due in 3-7 days OR moderate task
- LOW: Due in 8+ days OR simple task

ESTIMATION RULES:
- Simple tasks: 1-2 hours
- Medium tasks: 2-8 hours
- Complex tasks: 8-40 hours

Respond ONLY with this JSON (no markdown, no explanation):
{{
  "priority": "high",
  "estimated_hours": 2,
  "reasoning": "Brief explanation"
}}"""

RULE_BASED_REASONING = "Auto-determined based on due date"


def days_until(due_date: Optional[datetime], today: Optional[date] = None) -> Optional[int]:
    """Whole calendar days from today (UTC) to the due date; negative when overdue."""
    if due_date is None:
        return None
    today = today or utcnow().date()
    return (due_date.date() - today).days


def rule_based_analysis(due_date: Optional[datetime], today: Optional[date] = None) -> TaskAnalysis:
    """Deterministic fallback keyed on days until due. Never calls out."""
    days = days_until(due_date, today)
    if days is not None and days <= 2:
        priority, hours = "high", 1
    elif days is not None and days <= 7:
        priority, hours = "medium", 2
    else:
        priority, hours = "low", 1
    return TaskAnalysis(
        priority=priority,
        estimated_hours=hours,
        reasoning=RULE_BASED_REASONING,
        source="rules",
    )


def _coerce_hours(value: Any) -> int:
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return 2
    if math.isnan(hours) or math.isinf(hours):
        return 2
    return min(max(1, math.ceil(hours)), MAX_ESTIMATED_HOURS)


def normalize_analysis(data: dict) -> TaskAnalysis:
    """Clamp whatever the model sent into a valid TaskAnalysis."""
    priority = str(data.get("priority") or "").strip().lower()
    if priority not in PRIORITIES:
        priority = "medium"

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = "AI analysis complete"

    return TaskAnalysis(
        priority=priority,
        estimated_hours=_coerce_hours(data.get("estimated_hours", 2)),
        reasoning=reasoning.strip(),
        source="ai",
    )


class TaskAnalyzer:
    """Priority / estimate suggestion for a single task."""

    def __init__(self, llm_client: LLMClient, store: TaskStore):
        self.llm_client = llm_client
        self.store = store

    def build_prompt(
        self,
        title: str,
        due_date: Optional[datetime],
        pending: int,
        description: Optional[str] = None,
    ) -> str:
        days = days_until(due_date)
        return ANALYSIS_PROMPT.format(
            title=single_line(title),
            details=single_line(description, limit=500) or "None",
            due=f"{days} days" if days is not None else "Not set",
            pending=pending,
        )

    async def analyze(
        self,
        title: str,
        due_date: Any,
        user_id: int,
        description: Optional[str] = None,
    ) -> TaskAnalysis:
        due = parse_datetime(due_date)
        pending = await self.store.count_pending(user_id)
        prompt = self.build_prompt(title, due, pending, description)

        try:
            raw = await asyncio.to_thread(
                self.llm_client.complete_json_prompt,
                prompt,
                system=ANALYSIS_SYSTEM_PROMPT,
                purpose="analyzer",
                timeout=ANALYZER_TIMEOUT_S,
                max_tokens=ANALYZER_MAX_TOKENS,
            )
        except Exception as e:
            logger.error(f"Task analysis failed for user {user_id}, using rules: {e}")
            return rule_based_analysis(due)

        data = extract_json_object(raw)
        if data is None:
            logger.warning(
                f"Task analysis for user {user_id} was not JSON, using rules: {raw[:500]!r}"
            )
            return rule_based_analysis(due)

        return normalize_analysis(data)
