"""Tests for tolerant model-reply parsing."""

import json

import pytest

from atr.ai.interpreter import EmptyExtraction, Extraction, parse, strip_fences

PAYLOAD = {"tasks": [{"title": "Buy milk"}], "references": ["fridge"]}


def test_plain_json() -> None:
    result = parse(json.dumps(PAYLOAD))
    assert isinstance(result, Extraction)
    assert result.to_dict() == PAYLOAD
    assert result.tasks == [{"title": "Buy milk"}]


@pytest.mark.parametrize(
    "wrapped",
    [
        "```json\n{body}\n```",
        "```\n{body}\n```",
        "  ```JSON\n{body}\n```  \n",
    ],
)
def test_fenced_json_matches_unwrapped(wrapped: str) -> None:
    body = json.dumps(PAYLOAD, indent=2)
    fenced = parse(wrapped.format(body=body))
    plain = parse(body)
    assert isinstance(fenced, Extraction)
    assert fenced.to_dict() == plain.to_dict()


def test_strip_fences_leaves_unfenced_text() -> None:
    assert strip_fences('  {"a": 1}  ') == '{"a": 1}'


@pytest.mark.parametrize(
    "raw",
    [
        "Sure! Here are your tasks.",
        "",
        "[1, 2, 3]",
        '"just a string"',
        "42",
        '{"tasks": [',
    ],
)
def test_malformed_reply_falls_back(raw: str) -> None:
    result = parse(raw)
    assert isinstance(result, EmptyExtraction)
    assert result.to_dict() == {"tasks": [], "references": []}
    assert result.tasks == []


def test_fallback_dict_is_fresh_each_call() -> None:
    result = parse("nope")
    result.to_dict()["tasks"].append("x")
    assert parse("nope").to_dict() == {"tasks": [], "references": []}


def test_non_list_tasks_yield_no_tasks() -> None:
    result = parse('{"tasks": "Buy milk", "references": []}')
    assert isinstance(result, Extraction)
    assert result.tasks == []


def test_non_object_task_entries_are_skipped() -> None:
    result = parse('{"tasks": ["Buy milk", {"title": "Walk dog"}, 3]}')
    assert result.tasks == [{"title": "Walk dog"}]


@pytest.mark.parametrize("depth", [1000, 5000])
def test_deeply_nested_reply_falls_back(depth: int) -> None:
    result = parse("[" * depth)
    assert isinstance(result, EmptyExtraction)
    assert result.to_dict() == {"tasks": [], "references": []}


def test_prose_before_fence_is_tolerated() -> None:
    body = json.dumps(PAYLOAD, indent=2)
    result = parse(f"Here are your tasks:\n```json\n{body}\n```")
    assert isinstance(result, Extraction)
    assert result.to_dict() == PAYLOAD


def test_prose_around_bare_object_is_tolerated() -> None:
    result = parse('Sure thing! {"tasks": [{"title": "Walk dog"}]} Let me know.')
    assert result.tasks == [{"title": "Walk dog"}]


def test_unbalanced_braces_in_prose_fall_back() -> None:
    result = parse("Tasks: {title: Walk dog}")
    assert isinstance(result, EmptyExtraction)
