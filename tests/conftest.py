"""Shared test fixtures."""

from pathlib import Path
from typing import Any

import pytest

from atr.llm.client import GatewayResponse
from atr.store import ConversationStore


@pytest.fixture
def store(tmp_path: Path) -> ConversationStore:
    """Create a ConversationStore backed by a temp database."""
    return ConversationStore(db_path=tmp_path / "test.db")


class FakeGateway:
    """Records calls and replies with canned content."""

    def __init__(self, *replies: str) -> None:
        self._replies = list(replies) or ['{"tasks": [], "references": []}']
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, messages: list[dict[str, str]], **options: Any) -> GatewayResponse:
        self.calls.append({"messages": messages, **options})
        content = self._replies[0] if len(self._replies) == 1 else self._replies.pop(0)
        return GatewayResponse(content=content, raw={"id": f"msg_{len(self.calls)}"})


@pytest.fixture
def fake_gateway():
    """Factory for a FakeGateway with the given replies."""
    return FakeGateway
