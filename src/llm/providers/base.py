from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

Message = Dict[str, str]


class LLMProvider(ABC):
    @abstractmethod
    def generate(
        self,
        *,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ) -> str:
        """
        Send a role-tagged message list, return the completion TEXT.

        JSON extraction happens in the callers; providers only deal with the
        transport and the vendor's response envelope.
        """
        raise NotImplementedError
