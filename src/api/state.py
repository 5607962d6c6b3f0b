from typing import Optional

from llm.llm_client import LLMClient
from storage.task_store import TaskStore

# Global instances initialized at startup
task_store: Optional[TaskStore] = None

# Created lazily on first AI request; provider construction may need credentials
llm_client: Optional[LLMClient] = None
