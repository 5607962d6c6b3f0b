"""Prompt templates for each pipeline stage."""

from __future__ import annotations

import json
from typing import Any

AGENT_SYSTEM_PROMPT = "You are an AI agent. Respond only with valid JSON, no markdown, no explanations."

PLANNER_PROMPT = """\
You are the PLANNER AGENT. You MUST respond with ONLY valid JSON, nothing else.

USER'S GOAL: {goal}

ADDITIONAL CONTEXT: {context}

CURRENT TASKS:
{task_lines}

Respond with ONLY this JSON structure (no markdown, no explanations):
{{
  "analysis": "Your strategic analysis of the goal",
  "tasks": [
    {{
      "title": "Task name",
      "description": "What needs to be done",
      "difficulty": "easy",
      "dependencies": [],
      "priority": "high"
    }}
  ],
  "estimated_timeline": "3 months"
}}

CRITICAL: Return ONLY the JSON object. No other text."""

EXECUTOR_PROMPT = """\
You are the EXECUTOR AGENT. Respond with ONLY valid JSON, nothing else.

PLANNER'S ANALYSIS:
{planner_json}

CURRENT PROGRESS:
- Total tasks: {total}
- Completed: {completed}

Respond with ONLY this JSON (no markdown, no explanations):
{{
  "feasibility_score": 8,
  "execution_strategy": "Your recommended approach",
  "potential_blockers": ["Challenge 1", "Challenge 2"],
  "quick_wins": ["Quick task 1"],
  "risk_assessment": "Medium"
}}

CRITICAL: Return ONLY the JSON object."""

REVIEWER_PROMPT = """\
You are the REVIEWER AGENT. Respond with ONLY valid JSON, nothing else.

ANALYSIS TO REVIEW:
{combined_json}

Respond with ONLY this JSON (no markdown, no explanations):
{{
  "quality_score": 8,
  "missing_tasks": ["Additional task 1"],
  "improvements": [
    {{
      "task": "Task title",
      "suggestion": "How to improve"
    }}
  ],
  "best_practices": ["Practice 1", "Practice 2"]
}}

CRITICAL: Return ONLY the JSON object."""

COORDINATOR_PROMPT = """\
You are the COORDINATOR AGENT. Respond with ONLY valid JSON, nothing else.

GOAL: {goal}

ALL AGENT INPUTS:
{all_json}

Respond with ONLY this JSON (no markdown, no explanations):
{{
  "executive_summary": "Brief overview",
  "final_tasks": [
    {{
      "title": "Task title",
      "description": "Description",
      "priority": "high",
      "phase": "Phase 1",
      "estimated_hours": 10
    }}
  ],
  "key_insights": ["Insight 1"],
  "next_steps": ["Step 1"]
}}

CRITICAL: Return ONLY the JSON object."""


def to_json(value: Any) -> str:
    """Inline serialization of earlier stage output."""
    return json.dumps(value, indent=4, ensure_ascii=False, default=str)
