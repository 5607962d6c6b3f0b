import logging
import os
from typing import List, Optional

import httpx

from llm.providers.base import LLMProvider, Message

logger = logging.getLogger(__name__)

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").strip().lower()
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))


class CompletionError(RuntimeError):
    """The completion service was unreachable, timed out or answered badly."""

    def __init__(self, message: str, body: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.body = body
        self.status_code = status_code


def get_provider(name: Optional[str] = None) -> LLMProvider:
    name = (name or LLM_PROVIDER).strip().lower()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider
        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider
        return MockProvider()
    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider
        return OpenAIProvider()
    raise RuntimeError(f"Unknown LLM_PROVIDER: {name}")


class LLMClient:
    """Provider-agnostic "message list in, completion text out" client.

    Every call is a single attempt; callers decide how to degrade.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider or get_provider()

    def complete(
        self,
        messages: List[Message],
        *,
        purpose: str = "chat",
        timeout: float = 60.0,
        max_tokens: int = 2048,
    ) -> str:
        try:
            text = self.provider.generate(
                messages=messages,
                temperature=LLM_TEMPERATURE,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except httpx.HTTPStatusError as e:
            body = e.response.text
            logger.error(f"LLM call '{purpose}' failed with HTTP {e.response.status_code}: {body[:500]}")
            raise CompletionError(
                f"LLM API failed ({e.response.status_code}): {body}",
                body=body,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"LLM call '{purpose}' failed: {e}")
            raise CompletionError(f"LLM API unreachable: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"LLM call '{purpose}' returned an unexpected envelope: {e}")
            raise CompletionError("Invalid LLM response format") from e

        if not isinstance(text, str):
            raise CompletionError("Invalid LLM response format")

        logger.debug(f"LLM call '{purpose}' returned {len(text)} chars")
        return text

    def complete_json_prompt(
        self,
        prompt: str,
        *,
        system: str,
        purpose: str,
        timeout: float = 60.0,
        max_tokens: int = 2048,
    ) -> str:
        """Single system + user exchange, the shape every JSON-only prompt uses."""
        return self.complete(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            purpose=purpose,
            timeout=timeout,
            max_tokens=max_tokens,
        )
