from __future__ import annotations
import json
from typing import List, Optional

from .base import LLMProvider, Message


class MockProvider(LLMProvider):
    """Offline provider (LLM_PROVIDER=mock) for running the API without a model."""

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
        Returns dummy JSON responses based on the prompt content.
        """
        system = messages[0]["content"] if messages else ""
        user = messages[-1]["content"] if messages else ""

        if "task analysis AI" in system:
            return json.dumps({
                "priority": "medium",
                "estimated_hours": 2,
                "reasoning": "Mock analysis"
            })

        if "task extraction AI" in system:
            return json.dumps({
                "summary": "Mock summary of the document",
                "tasks": [
                    {
                        "title": "Review the document",
                        "description": "Read it end to end",
                        "priority": "medium",
                        "deadline": None
                    }
                ]
            })

        # Pipeline stages
        if "PLANNER AGENT" in user:
            return json.dumps({
                "analysis": "Break the goal into two steps",
                "tasks": [{"title": "Research", "description": "", "difficulty": "easy",
                           "dependencies": [], "priority": "high"}],
                "estimated_timeline": "1 week"
            })
        if "EXECUTOR AGENT" in user:
            return json.dumps({
                "feasibility_score": 8,
                "execution_strategy": "Start with research",
                "potential_blockers": [],
                "quick_wins": ["Research"],
                "risk_assessment": "Low"
            })
        if "REVIEWER AGENT" in user:
            return json.dumps({
                "quality_score": 8,
                "missing_tasks": [],
                "improvements": [],
                "best_practices": ["Timebox each step"]
            })
        if "COORDINATOR AGENT" in user:
            return json.dumps({
                "executive_summary": "Two-step plan",
                "final_tasks": [
                    {"title": "Research", "description": "Collect sources",
                     "priority": "high", "phase": "Phase 1", "estimated_hours": 2},
                    {"title": "Write summary", "description": "Summarize findings",
                     "priority": "medium", "phase": "Phase 2", "estimated_hours": 1}
                ],
                "key_insights": [],
                "next_steps": ["Start research"]
            })

        # Chat assistant
        if "list" in user.lower():
            return json.dumps({"action": "list_tasks", "response": "Here are your tasks:"})

        return json.dumps({"action": "none", "response": "Mock assistant reply"})
