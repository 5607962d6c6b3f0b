from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class _Intent(BaseModel):
    """Fields every assistant intent may carry. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    action: str
    response: Optional[str] = None

    @field_validator("response", mode="before")
    @classmethod
    def response_as_text(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)


class AskForDetails(_Intent):
    action: Literal["ask_for_details"]
    task_title: Optional[str] = None


class CreateTaskSmart(_Intent):
    action: Literal["create_task_smart"]
    task_title: Optional[str] = None
    due_date: Optional[str] = None


class TaskSpec(BaseModel):
    """One entry of create_multiple_tasks.tasks; validated item by item."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    due_date: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2


class CreateMultipleTasks(_Intent):
    action: Literal["create_multiple_tasks"]
    # items stay raw so one bad entry doesn't sink the batch
    tasks: Optional[List[Any]] = None


class ListTasks(_Intent):
    action: Literal["list_tasks"]


class CompleteTask(_Intent):
    action: Literal["complete_task"]
    task_id: Optional[int] = None


class DeleteTask(_Intent):
    action: Literal["delete_task"]
    task_id: Optional[int] = None
    task_title: Optional[str] = None


class DeleteMultiple(_Intent):
    action: Literal["delete_multiple"]
    delete_criteria: Optional[str] = None
    task_ids: Optional[List[int]] = None


class NoAction(_Intent):
    action: str = "none"


Intent = Union[
    AskForDetails,
    CreateTaskSmart,
    CreateMultipleTasks,
    ListTasks,
    CompleteTask,
    DeleteTask,
    DeleteMultiple,
    NoAction,
]

INTENTS: Dict[str, Type[_Intent]] = {
    "ask_for_details": AskForDetails,
    "create_task_smart": CreateTaskSmart,
    "create_multiple_tasks": CreateMultipleTasks,
    "list_tasks": ListTasks,
    "complete_task": CompleteTask,
    "delete_task": DeleteTask,
    "delete_multiple": DeleteMultiple,
}


def parse_intent(data: Dict[str, Any]) -> Intent:
    """Map a parsed completion onto its intent model.

    Unknown or missing actions, and intents whose fields don't validate,
    come back as NoAction carrying the model's own response text.
    """
    action = data.get("action")
    action = action.strip() if isinstance(action, str) else "none"
    model = INTENTS.get(action)

    if model is not None:
        try:
            return model.model_validate({**data, "action": action})
        except ValidationError as e:
            logger.warning(f"Ignoring malformed '{action}' intent: {e.errors()[:3]}")

    response = data.get("response")
    return NoAction(action=action or "none", response=response if isinstance(response, str) else None)


class ExtractedTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("description", "priority", "deadline", mode="before")
    @classmethod
    def scalar_as_text(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)
