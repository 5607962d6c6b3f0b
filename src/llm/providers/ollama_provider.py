from __future__ import annotations
import os
from typing import List, Optional

import httpx
from .base import LLMProvider, Message


class OllamaProvider(LLMProvider):
    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.model = os.getenv("OLLAMA_MODEL", "llama3.1").strip()
        self.base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        self._transport = transport

    def generate(
        self,
        *,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": model or self.model,
            "stream": False,
            "messages": messages,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

        with httpx.Client(timeout=timeout, transport=self._transport) as client:
            r = client.post(url, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["message"]["content"]
