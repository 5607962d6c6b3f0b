import logging
from typing import Any, Dict, Iterable, Optional

from agents.pipeline import MultiAgentPipeline
from assistant.actions import ActionInterpreter
from assistant.chat import ChatAssistant
from classification.task_analyzer import TaskAnalyzer
from extraction.task_extractor import DocumentTaskExtractor
from llm.llm_client import LLMClient
from storage.task_store import TaskStore
from task_assistant.models import TaskAnalysis, User, utcnow

from api.metrics import ANALYZER_FALLBACK_TOTAL, TASKS_CREATED_TOTAL

logger = logging.getLogger(__name__)


class MeteredTaskAnalyzer(TaskAnalyzer):
    """Counts every analysis answered by the rule-based fallback, whichever caller asked."""

    async def analyze(self, *args, **kwargs) -> TaskAnalysis:
        analysis = await super().analyze(*args, **kwargs)
        if analysis.source == "rules":
            ANALYZER_FALLBACK_TOTAL.inc()
        return analysis


class BackendAPI:
    """Central orchestration component: one instance per request, bound to a store and a model client."""

    def __init__(self, store: TaskStore, llm_client: LLMClient):
        self.store = store
        self.llm_client = llm_client
        self.analyzer = MeteredTaskAnalyzer(llm_client, store)
        self.chat_assistant = ChatAssistant(
            llm_client, store, ActionInterpreter(store, self.analyzer)
        )
        self.extractor = DocumentTaskExtractor(llm_client, store)
        self.pipeline = MultiAgentPipeline(llm_client, store)

    async def chat(
        self,
        user: User,
        message: str,
        history: Optional[Iterable[Any]] = None,
    ) -> Dict[str, Any]:
        reply = await self.chat_assistant.reply(user, message, history)
        if reply.created:
            TASKS_CREATED_TOTAL.labels(source="chat").inc(len(reply.created))
        return {
            "message": reply.message,
            "actions_taken": reply.actions_taken,
            "timestamp": utcnow().isoformat(),
        }

    async def analyze_task(
        self,
        user: User,
        title: str,
        due_date: Any = None,
        description: Optional[str] = None,
    ) -> TaskAnalysis:
        return await self.analyzer.analyze(title, due_date, user.id, description)

    async def analyze_document(self, user: User, text: str) -> Dict[str, Any]:
        result = await self.extractor.extract(text, user.id)
        TASKS_CREATED_TOTAL.labels(source="document").inc(len(result["tasks"]))
        return result

    async def process_goal(self, user: User, goal: str, context: Optional[str] = None) -> Dict[str, Any]:
        result = await self.pipeline.run(goal, context, user.id)
        TASKS_CREATED_TOTAL.labels(source="multi_agent").inc(len(result.tasks_created))
        return result.as_dict()
