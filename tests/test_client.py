"""Tests for the model gateway."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from atr.llm.client import GatewayResponse, _split_system, chat
from atr.llm.models import MODEL_MAP


def _mock_client(text: str = "hello world") -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = [MagicMock(type="text", text=text)]
    mock_response.stop_reason = "end_turn"
    mock_response.model_dump.return_value = {"id": "msg_123", "stop_reason": "end_turn"}

    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(return_value=mock_response)
    return mock_client


def test_split_system_joins_system_segments() -> None:
    system, rest = _split_system([
        {"role": "system", "content": "rules"},
        {"role": "system", "content": "CONTEXT:\n..."},
        {"role": "user", "content": "INPUT:\nBuy milk"},
    ])
    assert system == "rules\n\nCONTEXT:\n..."
    assert rest == [{"role": "user", "content": "INPUT:\nBuy milk"}]


def test_split_system_without_system() -> None:
    system, rest = _split_system([{"role": "user", "content": "hi"}])
    assert system is None
    assert rest == [{"role": "user", "content": "hi"}]


async def test_chat_defaults() -> None:
    mock_client = _mock_client()

    with (
        patch("atr.llm.client._get_client", return_value=mock_client),
        patch("atr.llm.client.settings") as mock_settings,
    ):
        mock_settings.extraction_model = "sonnet"
        mock_settings.gateway_temperature = 0.2
        mock_settings.gateway_max_tokens = 800
        result = await chat([{"role": "user", "content": "hi"}])

    assert result == GatewayResponse(
        content="hello world", raw={"id": "msg_123", "stop_reason": "end_turn"}
    )
    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["model"] == MODEL_MAP["sonnet"]
    assert call_kwargs["temperature"] == 0.2
    assert call_kwargs["max_tokens"] == 800
    assert "system" not in call_kwargs


async def test_chat_overrides_and_system() -> None:
    mock_client = _mock_client()

    with patch("atr.llm.client._get_client", return_value=mock_client):
        await chat(
            [
                {"role": "system", "content": "rules"},
                {"role": "user", "content": "hi"},
            ],
            model="haiku",
            temperature=0.1,
            max_tokens=1400,
        )

    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["model"] == MODEL_MAP["haiku"]
    assert call_kwargs["temperature"] == 0.1
    assert call_kwargs["max_tokens"] == 1400
    assert call_kwargs["system"] == "rules"
    assert call_kwargs["messages"] == [{"role": "user", "content": "hi"}]


async def test_chat_ignores_non_text_blocks() -> None:
    mock_client = _mock_client()
    mock_client.messages.create.return_value.content = [
        MagicMock(type="thinking", text="ignored"),
        MagicMock(type="text", text="kept"),
    ]

    with patch("atr.llm.client._get_client", return_value=mock_client):
        result = await chat([{"role": "user", "content": "hi"}])

    assert result.content == "kept"


async def test_chat_propagates_provider_errors() -> None:
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(side_effect=RuntimeError("network down"))

    with patch("atr.llm.client._get_client", return_value=mock_client):
        with pytest.raises(RuntimeError, match="network down"):
            await chat([{"role": "user", "content": "hi"}])
