from llm.json_extraction import extract_json_object, strip_code_fences


def test_bare_object_is_returned_as_is() -> None:
    assert extract_json_object('{"a":1}') == {"a": 1}


def test_fenced_block_is_unwrapped() -> None:
    data = extract_json_object('```json\n{"action":"list_tasks"}\n```')
    assert data == {"action": "list_tasks"}


def test_fence_match_is_case_insensitive() -> None:
    assert extract_json_object('```JSON\n{"a": 2}\n```') == {"a": 2}


def test_plain_text_is_not_structured() -> None:
    assert extract_json_object("Sure, I can help!") is None


def test_object_surrounded_by_prose() -> None:
    text = 'Here you go: {"action": "none", "response": "hi"} Hope that helps.'
    assert extract_json_object(text) == {"action": "none", "response": "hi"}


def test_braces_inside_strings_do_not_truncate() -> None:
    text = 'Result: {"response": "use {curly} braces }", "action": "none"} trailing }'
    assert extract_json_object(text) == {"response": "use {curly} braces }", "action": "none"}


def test_nested_objects_survive() -> None:
    text = '{"final_tasks": [{"title": "A"}, {"title": "B"}], "meta": {"n": 2}}'
    data = extract_json_object(text)
    assert [t["title"] for t in data["final_tasks"]] == ["A", "B"]
    assert data["meta"] == {"n": 2}


def test_non_object_json_is_rejected() -> None:
    assert extract_json_object("[1, 2, 3]") is None
    assert extract_json_object('"just a string"') is None


def test_empty_and_none_input() -> None:
    assert extract_json_object("") is None
    assert extract_json_object(None) is None


def test_broken_json_does_not_raise() -> None:
    assert extract_json_object('{"action": "list_tasks",') is None


def test_strip_code_fences() -> None:
    assert strip_code_fences("```json\nhello\n```") == "hello"
    assert strip_code_fences("  plain  ") == "plain"
