"""Model gateway: role-tagged messages in, generated text out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import anthropic

from atr.config import settings
from atr.llm.models import resolve_model

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


@dataclass
class GatewayResponse:
    """Generated text plus the provider's raw response metadata."""

    content: str
    raw: dict[str, Any] = field(default_factory=dict)


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def _split_system(
    messages: list[dict[str, str]],
) -> tuple[str | None, list[dict[str, str]]]:
    """Pull system-role messages out into a single system string.

    The Messages API takes system instructions as a separate parameter, so
    system segments are joined in order and the rest are passed through.
    """
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    conversation = [
        {"role": m["role"], "content": m["content"]}
        for m in messages
        if m["role"] != "system"
    ]
    system = "\n\n".join(system_parts) if system_parts else None
    return system, conversation


async def chat(
    messages: list[dict[str, str]],
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> GatewayResponse:
    """Single-shot model call with no tools and no streaming.

    Errors from the provider (network, auth, rate limits) are not caught;
    they propagate as ``anthropic.APIError`` subclasses.
    """
    client = _get_client()
    system, conversation = _split_system(messages)
    kwargs: dict[str, Any] = {
        "model": resolve_model(model or settings.extraction_model),
        "max_tokens": max_tokens if max_tokens is not None else settings.gateway_max_tokens,
        "temperature": (
            temperature if temperature is not None else settings.gateway_temperature
        ),
        "messages": conversation,
    }
    if system is not None:
        kwargs["system"] = system

    response = await client.messages.create(**kwargs)
    text = "".join(block.text for block in response.content if block.type == "text")
    logger.debug(
        "Gateway call: model=%s, stop_reason=%s, chars=%d",
        kwargs["model"],
        getattr(response, "stop_reason", None),
        len(text),
    )
    return GatewayResponse(content=text, raw=response.model_dump(mode="json"))
