import asyncio
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from classification.task_analyzer import (
    RULE_BASED_REASONING,
    TaskAnalyzer,
    normalize_analysis,
    rule_based_analysis,
)
from task_assistant.models import TaskCreate, utcnow

TODAY = date(2026, 2, 27)


def _due_in(days: int) -> datetime:
    return datetime(2026, 2, 27, 12, tzinfo=timezone.utc) + timedelta(days=days)


@pytest.mark.parametrize(
    "days, priority, hours",
    [
        (-3, "high", 1),
        (0, "high", 1),
        (2, "high", 1),
        (3, "medium", 2),
        (7, "medium", 2),
        (8, "low", 1),
        (60, "low", 1),
    ],
)
def test_rule_based_bands(days, priority, hours) -> None:
    analysis = rule_based_analysis(_due_in(days), today=TODAY)
    assert (analysis.priority, analysis.estimated_hours) == (priority, hours)
    assert analysis.reasoning == RULE_BASED_REASONING
    assert analysis.source == "rules"


def test_rule_based_without_due_date() -> None:
    analysis = rule_based_analysis(None)
    assert (analysis.priority, analysis.estimated_hours) == ("low", 1)


def test_fallback_when_upstream_fails(store, user, llm_client_factory) -> None:
    client, provider = llm_client_factory(httpx.ConnectError("connection refused"))
    tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()

    analysis = asyncio.run(TaskAnalyzer(client, store).analyze("Pay rent", tomorrow, user.id))

    assert analysis.model_dump() == {
        "priority": "high",
        "estimated_hours": 1,
        "reasoning": RULE_BASED_REASONING,
    }
    assert len(provider.calls) == 1


def test_fallback_on_http_error_status(store, user, llm_client_factory) -> None:
    request = httpx.Request("POST", "https://llm.invalid/v1/chat/completions")
    response = httpx.Response(500, request=request, text="upstream down")
    client, _ = llm_client_factory(httpx.HTTPStatusError("500", request=request, response=response))

    analysis = asyncio.run(TaskAnalyzer(client, store).analyze("Pay rent", None, user.id))

    assert analysis.source == "rules"
    assert analysis.priority == "low"


def test_fallback_on_unparseable_output(store, user, llm_client_factory) -> None:
    client, _ = llm_client_factory("I think this is pretty important!")

    analysis = asyncio.run(TaskAnalyzer(client, store).analyze("Pay rent", None, user.id))

    assert analysis.source == "rules"


def test_model_answer_is_used(store, user, llm_client_factory) -> None:
    client, provider = llm_client_factory(
        '```json\n{"priority": "HIGH", "estimated_hours": 5, "reasoning": "Big job"}\n```'
    )

    analysis = asyncio.run(TaskAnalyzer(client, store).analyze("Move house", None, user.id))

    assert (analysis.priority, analysis.estimated_hours, analysis.reasoning) == ("high", 5, "Big job")
    assert analysis.source == "ai"
    assert provider.calls[0]["timeout"] == 30
    assert provider.calls[0]["max_tokens"] == 500


def test_prompt_includes_workload_and_due(store, user, llm_client_factory) -> None:
    async def seed():
        await store.create_task(user.id, TaskCreate(title="a"))
        await store.create_task(user.id, TaskCreate(title="b", is_completed=True))
    asyncio.run(seed())
    client, provider = llm_client_factory('{"priority": "low", "estimated_hours": 1}')
    due = (utcnow() + timedelta(days=5)).date().isoformat()

    asyncio.run(TaskAnalyzer(client, store).analyze("Read\nbook", due, user.id))

    prompt = provider.calls[0]["messages"][1]["content"]
    assert "TASK: Read book" in prompt
    assert "DUE: 5 days" in prompt
    assert "WORKLOAD: 1 pending tasks" in prompt


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"priority": "urgent", "estimated_hours": 3}, ("medium", 3)),
        ({"priority": "low", "estimated_hours": 0}, ("low", 1)),
        ({"priority": "low", "estimated_hours": 2.2}, ("low", 3)),
        ({"priority": "low", "estimated_hours": "lots"}, ("low", 2)),
        ({"priority": "high", "estimated_hours": 5e9}, ("high", 40)),
        ({"priority": "high", "estimated_hours": "39.5"}, ("high", 40)),
        ({}, ("medium", 2)),
    ],
)
def test_normalize_analysis(data, expected) -> None:
    analysis = normalize_analysis(data)
    assert (analysis.priority, analysis.estimated_hours) == expected
    assert analysis.reasoning
