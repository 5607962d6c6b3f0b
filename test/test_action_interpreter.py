import asyncio

from assistant.actions import NO_MATCH_MESSAGE, NO_TASKS_MESSAGE, ActionInterpreter
from llm.schemas import parse_intent
from task_assistant.models import TaskAnalysis, TaskCreate


class StubAnalyzer:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    async def analyze(self, title, due_date, user_id, description=None):
        self.calls.append((title, due_date, user_id))
        if title in self.fail_on:
            raise RuntimeError("analysis exploded")
        return TaskAnalysis(priority="high", estimated_hours=3, reasoning="stub reasoning")


def _seed(store, user, titles, completed=()):
    async def go():
        return [
            await store.create_task(user.id, TaskCreate(title=t, is_completed=t in completed))
            for t in titles
        ]
    return asyncio.run(go())


def _execute(store, user, data, analyzer=None, raw_text="raw completion"):
    interpreter = ActionInterpreter(store, analyzer or StubAnalyzer())

    async def go():
        snapshot = await store.list_tasks(user.id)
        return await interpreter.execute(parse_intent(data), snapshot, user.id, raw_text=raw_text)
    return asyncio.run(go())


def _titles(store, user):
    return sorted(t.title for t in asyncio.run(store.list_tasks(user.id)))


def test_delete_task_matches_title_case_insensitively(store, user) -> None:
    _seed(store, user, ["praying", "Jogging"])

    result = _execute(store, user, {"action": "delete_task", "task_title": "Praying", "response": "ok"})

    assert _titles(store, user) == ["Jogging"]
    assert result.message == "I've deleted 'praying' from your tasks!"
    assert result.actions == ["Deleted task: praying"]


def test_delete_task_without_match_names_the_term(store, user) -> None:
    _seed(store, user, ["Jogging"])

    result = _execute(store, user, {"action": "delete_task", "task_title": "Praying"})

    assert _titles(store, user) == ["Jogging"]
    assert result.message == "I couldn't find a task matching 'Praying'. Could you be more specific?"
    assert result.actions == []


def test_delete_task_prefers_id_then_falls_back_to_title(store, user) -> None:
    _seed(store, user, ["Jogging", "Reading"])

    result = _execute(
        store, user, {"action": "delete_task", "task_id": 999, "task_title": "reading"}
    )

    assert _titles(store, user) == ["Jogging"]
    assert "Reading" in result.message


def test_delete_task_never_touches_other_users(store, user) -> None:
    other = store.add_user("Bob")
    (foreign,) = _seed(store, other, ["Praying"])

    result = _execute(store, user, {"action": "delete_task", "task_id": foreign.id})
    assert "couldn't find" in result.message
    result = _execute(store, user, {"action": "delete_task", "task_title": "Praying"})
    assert "couldn't find" in result.message

    assert _titles(store, other) == ["Praying"]


def test_create_task_smart_uses_analysis(store, user) -> None:
    analyzer = StubAnalyzer()

    result = _execute(
        store,
        user,
        {"action": "create_task_smart", "task_title": "Jogging", "due_date": "2026-03-01"},
        analyzer=analyzer,
    )

    (task,) = asyncio.run(store.list_tasks(user.id))
    assert task.title == "Jogging"
    assert task.priority == "high"
    assert task.estimated_hours == 3
    assert task.due_date.date().isoformat() == "2026-03-01"
    assert analyzer.calls == [("Jogging", "2026-03-01", user.id)]
    assert result.message.startswith("✅ I've added 'Jogging' to your tasks!")
    assert "- Priority: HIGH" in result.message
    assert "- Estimated: 3 hours" in result.message
    assert result.actions == ["Created task: Jogging"]


def test_create_task_smart_without_title_is_a_no_op(store, user) -> None:
    result = _execute(
        store, user, {"action": "create_task_smart", "response": "What should I call it?"}
    )

    assert _titles(store, user) == []
    assert result.message == "What should I call it?"


def test_create_multiple_tasks_skips_items_without_title(store, user) -> None:
    result = _execute(
        store,
        user,
        {
            "action": "create_multiple_tasks",
            "tasks": [{"title": "Market Research", "due_date": "2026-03-01"}, {"due_date": "2026-03-02"}],
        },
    )

    assert _titles(store, user) == ["Market Research"]
    assert result.message.startswith("🎉 I've created 1 tasks with AI analysis!")
    assert "✅ Market Research (🔴 HIGH, 3h)" in result.message
    assert result.actions == ["Created 1 tasks"]


def test_create_multiple_tasks_survives_a_failing_item(store, user) -> None:
    analyzer = StubAnalyzer(fail_on={"Boom"})

    result = _execute(
        store,
        user,
        {"action": "create_multiple_tasks", "tasks": [{"title": "Boom"}, {"title": "Fine"}, "junk"]},
        analyzer=analyzer,
    )

    assert _titles(store, user) == ["Fine"]
    assert len(result.created) == 1


def test_list_tasks_empty(store, user) -> None:
    result = _execute(store, user, {"action": "list_tasks", "response": "Here they are"})
    assert result.message == NO_TASKS_MESSAGE


def test_list_tasks_renders_snapshot(store, user) -> None:
    _seed(store, user, ["Jogging", "Reading"], completed={"Reading"})

    result = _execute(store, user, {"action": "list_tasks"})

    assert result.message.startswith("Here are your tasks:")
    assert "⬜ 🟡 MEDIUM - Jogging" in result.message
    assert "✅ 🟡 MEDIUM - Reading" in result.message
    assert result.message.endswith("Total: 2 tasks (1 pending, 1 completed)")
    assert result.actions == ["Listed all tasks"]


def test_complete_task(store, user) -> None:
    (task,) = _seed(store, user, ["Jogging"])

    result = _execute(store, user, {"action": "complete_task", "task_id": task.id})

    assert asyncio.run(store.get_task(user.id, task.id)).is_completed is True
    assert result.actions == ["Completed task: Jogging"]


def test_complete_task_not_found(store, user) -> None:
    result = _execute(store, user, {"action": "complete_task", "task_id": 999})
    assert result.message == "I couldn't find task ID 999."
    assert result.actions == []


def test_complete_task_never_touches_other_users(store, user) -> None:
    other = store.add_user("Bob")
    (foreign,) = _seed(store, other, ["Jogging"])

    result = _execute(store, user, {"action": "complete_task", "task_id": foreign.id})

    assert result.message == f"I couldn't find task ID {foreign.id}."
    assert result.actions == []
    assert asyncio.run(store.get_task(other.id, foreign.id)).is_completed is False


def test_delete_multiple_by_criteria(store, user) -> None:
    _seed(store, user, ["a", "b", "c"], completed={"a", "c"})

    result = _execute(store, user, {"action": "delete_multiple", "delete_criteria": "completed"})

    assert _titles(store, user) == ["b"]
    assert result.message.startswith("I've deleted 2 tasks: ")
    assert "a" in result.message and "c" in result.message


def test_delete_multiple_all(store, user) -> None:
    _seed(store, user, ["a", "b"], completed={"a"})
    _execute(store, user, {"action": "delete_multiple", "delete_criteria": "all"})
    assert _titles(store, user) == []


def test_delete_multiple_by_ids(store, user) -> None:
    a, b = _seed(store, user, ["a", "b"])

    result = _execute(store, user, {"action": "delete_multiple", "task_ids": [a.id]})

    assert _titles(store, user) == ["b"]
    assert result.message == "I've deleted 1 task: a"


def test_delete_multiple_criteria_wins_over_ids(store, user) -> None:
    a, b = _seed(store, user, ["a", "b"], completed={"a"})

    _execute(
        store, user, {"action": "delete_multiple", "delete_criteria": "pending", "task_ids": [a.id]}
    )

    assert _titles(store, user) == ["a"]


def test_delete_multiple_with_nothing_to_match(store, user) -> None:
    _seed(store, user, ["a"])

    for data in (
        {"action": "delete_multiple"},
        {"action": "delete_multiple", "task_ids": []},
        {"action": "delete_multiple", "delete_criteria": "everything"},
    ):
        result = _execute(store, user, data)
        assert result.message == NO_MATCH_MESSAGE

    assert _titles(store, user) == ["a"]


def test_delete_multiple_ignores_foreign_ids(store, user) -> None:
    other = store.add_user("Bob")
    (foreign,) = _seed(store, other, ["theirs"])

    result = _execute(store, user, {"action": "delete_multiple", "task_ids": [foreign.id]})

    assert result.message == NO_MATCH_MESSAGE
    assert _titles(store, other) == ["theirs"]


def test_unknown_action_surfaces_model_response(store, user) -> None:
    _seed(store, user, ["a"])

    result = _execute(store, user, {"action": "rename_everything", "response": "Done!"})

    assert result.message == "Done!"
    assert result.actions == []
    assert _titles(store, user) == ["a"]


def test_missing_response_falls_back_to_raw_text(store, user) -> None:
    result = _execute(store, user, {"action": "none"}, raw_text='{"action": "none"}')
    assert result.message == '{"action": "none"}'
