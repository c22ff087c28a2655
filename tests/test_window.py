"""Tests for building LLM context windows from stored history."""

import json
from unittest.mock import AsyncMock

import pytest

from src.context.models import ConversationMessage, HistoryFormatError
from src.context.selector import ContextSelector, TimeBasedContextSelector
from src.context.window import build_context_window, to_api_messages


def _history_json(*turns: tuple[str, str]) -> str:
    return json.dumps(
        [
            {"role": role, "content": content, "timestamp": f"2025-01-01T10:0{i}:00+00:00"}
            for i, (role, content) in enumerate(turns)
        ]
    )


def test_to_api_messages() -> None:
    messages = [
        ConversationMessage(role="user", content="hello"),
        ConversationMessage(role="assistant", content="hi there"),
    ]
    assert to_api_messages(messages) == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
    ]


def test_to_api_messages_maps_other_roles_to_assistant() -> None:
    messages = [ConversationMessage(role="system", content="note")]
    assert to_api_messages(messages) == [{"role": "assistant", "content": "note"}]


@pytest.mark.parametrize("raw", [None, "", "[]"])
async def test_no_history_returns_empty(raw) -> None:
    selector = AsyncMock(spec=ContextSelector)
    assert await build_context_window(selector, "query", raw) == []
    selector.select.assert_not_called()


async def test_builds_window_from_selection() -> None:
    raw = _history_json(("user", "q1"), ("assistant", "a1"), ("user", "q2"), ("assistant", "a2"))

    result = await build_context_window(TimeBasedContextSelector(2), "status?", raw)

    assert result == [
        {"role": "user", "content": "q2"},
        {"role": "assistant", "content": "a2"},
    ]


async def test_passes_query_and_parsed_history_to_selector() -> None:
    raw = _history_json(("user", "q1"))
    selector = AsyncMock(spec=ContextSelector)
    selector.select.return_value = []

    await build_context_window(selector, "status?", raw)

    query, history = selector.select.call_args.args
    assert query == "status?"
    assert [m.content for m in history] == ["q1"]


async def test_malformed_history_raises() -> None:
    with pytest.raises(HistoryFormatError):
        await build_context_window(TimeBasedContextSelector(2), "q", "not json")


async def test_corrupt_stored_embedding_raises_format_error() -> None:
    raw = json.dumps([{"role": "user", "content": "q1", "embedding": [None]}])
    with pytest.raises(HistoryFormatError):
        await build_context_window(TimeBasedContextSelector(2), "q", raw)
