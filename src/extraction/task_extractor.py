import asyncio
import logging
import os
from typing import Any, Dict, List

from pydantic import ValidationError

from llm.json_extraction import extract_json_object
from llm.llm_client import LLMClient
from llm.schemas import ExtractedTask
from storage.task_store import TaskStore
from task_assistant.models import PRIORITIES, TaskCreate, parse_datetime

logger = logging.getLogger(__name__)

DOCUMENT_MAX_CHARS = int(os.getenv("DOCUMENT_MAX_CHARS", "4000"))
DOCUMENT_TIMEOUT_S = float(os.getenv("DOCUMENT_TIMEOUT_S", "60"))

EXTRACTION_SYSTEM_PROMPT = """\
You are a task extraction AI. Analyze the following document and extract actionable tasks.

RULES:
1. Identify specific action items, deliverables, or things that need to be done
2. Each task should be clear and actionable
3. Extract deadlines if mentioned
4. Categorize by priority if possible (high/medium/low)
5. Return ONLY a JSON object, no markdown, no explanation

Respond with this EXACT JSON structure:
{
  "summary": "Brief summary of the document",
  "tasks": [
    {
      "title": "Clear, actionable task title",
      "description": "Optional details or context",
      "priority": "high" | "medium" | "low",
      "deadline": "YYYY-MM-DD or null"
    }
  ]
}

Extract between 3-10 tasks. Focus on the most important actionable items."""


class ExtractionError(RuntimeError):
    """The model's answer had no usable task list."""


class DocumentTaskExtractor:
    """Document text -> created tasks."""

    def __init__(self, llm_client: LLMClient, store: TaskStore):
        self.llm_client = llm_client
        self.store = store

    async def extract(self, text: str, user_id: int) -> Dict[str, Any]:
        document = text[:DOCUMENT_MAX_CHARS]
        raw = await asyncio.to_thread(
            self.llm_client.complete_json_prompt,
            f"DOCUMENT TEXT:\n\n{document}",
            system=EXTRACTION_SYSTEM_PROMPT,
            purpose="document",
            timeout=DOCUMENT_TIMEOUT_S,
        )

        parsed = extract_json_object(raw)
        if parsed is None or not isinstance(parsed.get("tasks"), list):
            logger.error(f"Document extraction for user {user_id} returned invalid format: {raw[:500]!r}")
            raise ExtractionError("AI returned invalid format")

        items: List[ExtractedTask] = []
        for entry in parsed["tasks"]:
            try:
                items.append(ExtractedTask.model_validate(entry))
            except ValidationError:
                logger.info(f"Skipping extracted task without a usable title: {str(entry)[:100]}")

        rows = []
        for item in items:
            priority = (item.priority or "").strip().lower()
            rows.append(
                TaskCreate(
                    title=item.title,
                    description=item.description,
                    priority=priority if priority in PRIORITIES else "medium",
                    due_date=parse_datetime(item.deadline),
                )
            )

        created = await self.store.create_tasks(user_id, rows)
        logger.info(f"Document extraction created {len(created)} tasks for user {user_id}")

        summary = parsed.get("summary")
        return {
            "summary": summary if isinstance(summary, str) and summary.strip() else "Document analyzed",
            "tasks": [
                {
                    "id": task.id,
                    "title": task.title,
                    "description": task.description,
                    "priority": task.priority,
                    "deadline": task.due_date.date().isoformat() if task.due_date else None,
                }
                for task in created
            ],
        }
