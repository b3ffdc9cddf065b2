"""Rolling summary compression.

Appends a rendering of the latest message window to the stored summary and
keeps only the newest characters. Consecutive calls re-include messages that
were already folded in, so the summary is a bounded digest rather than an
exact log.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from atr.ai import budget
from atr.config import settings

if TYPE_CHECKING:
    from atr.store import Conversation, ConversationStore

logger = logging.getLogger(__name__)


class SummaryCompressor:
    """Owns writes to ``Conversation.running_summary``."""

    def __init__(
        self,
        store: ConversationStore,
        window: int | None = None,
        max_chars: int | None = None,
    ) -> None:
        self._store = store
        self._window = settings.summary_window if window is None else window
        self._max_chars = settings.summary_max_chars if max_chars is None else max_chars

    async def update(self, conversation: Conversation) -> str:
        """Fold the latest window into the summary, persist and return it."""
        messages = await self._store.recent_messages(conversation.id, self._window)
        block = "\n".join(m.render() for m in messages)

        previous = conversation.running_summary or ""
        combined = "\n".join(part for part in (previous, block) if part)
        summary = budget.keep_tail(combined, self._max_chars)

        await self._store.update_summary(conversation.id, summary)
        conversation.running_summary = summary
        logger.debug(
            "Summary for conversation %d: %d -> %d chars",
            conversation.id,
            len(previous),
            len(summary),
        )
        return summary
