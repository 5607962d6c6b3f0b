import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from llm.json_extraction import extract_json_object, strip_code_fences
from llm.llm_client import LLMClient
from llm.schemas import parse_intent
from storage.task_store import TaskStore
from task_assistant.models import Task, User

from assistant.actions import ActionInterpreter
from assistant.prompts import build_chat_messages, count_tasks

logger = logging.getLogger(__name__)

CHAT_TIMEOUT_S = float(os.getenv("CHAT_TIMEOUT_S", "60"))


@dataclass
class ChatReply:
    message: str
    actions_taken: List[str] = field(default_factory=list)
    created: List[Task] = field(default_factory=list)


class ChatAssistant:
    """Snapshot -> prompt -> completion -> intent -> store mutation."""

    def __init__(self, llm_client: LLMClient, store: TaskStore, interpreter: ActionInterpreter):
        self.llm_client = llm_client
        self.store = store
        self.interpreter = interpreter

    async def reply(
        self,
        user: User,
        message: str,
        history: Optional[Iterable[Any]] = None,
    ) -> ChatReply:
        # fresh snapshot every request
        snapshot = await self.store.list_tasks(user.id)
        counts = count_tasks(snapshot)
        logger.info(
            f"AI chat for user {user.id}: {counts.total} total, {counts.completed} completed, "
            f"{counts.pending} pending"
        )

        messages = build_chat_messages(
            user_name=user.name,
            tasks=snapshot,
            message=message,
            history=history,
        )
        raw = await asyncio.to_thread(
            self.llm_client.complete, messages, purpose="chat", timeout=CHAT_TIMEOUT_S
        )

        data = extract_json_object(raw)
        if data is None:
            logger.info(f"AI chat reply for user {user.id} was plain text, no action taken")
            return ChatReply(message=strip_code_fences(raw))

        intent = parse_intent(data)
        result = await self.interpreter.execute(intent, snapshot, user.id, raw_text=strip_code_fences(raw))
        return ChatReply(message=result.message or "", actions_taken=result.actions, created=result.created)
