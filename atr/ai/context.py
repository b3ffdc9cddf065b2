"""Bounded context assembly for the extraction call.

The model sees two system segments: the static extraction instruction and a
``CONTEXT`` block built from four labelled sections, in this order:

1. the conversation's rolling summary (verbatim),
2. ``TASKS_SNAPSHOT``: one line per recently updated task,
3. ``SEMANTIC_RECALL``: reserved, currently always empty,
4. ``RECENT``: the tail of the conversation's message log.

Each section has its own character budget, applied before the sections are
joined. The joined payload is then cut to the global budget; because the
recent tail comes last it is what gets clipped first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from atr.ai import budget
from atr.config import settings
from atr.llm.prompt import EXTRACTION_PROMPT

if TYPE_CHECKING:
    from atr.store import Conversation, ConversationStore

logger = logging.getLogger(__name__)


@dataclass
class ContextBudget:
    """Character budgets for the context payload and its sections."""

    total: int = 12000
    recent_tail: int = 6000
    task_snapshot: int = 4000
    semantic_recall: int = 2000
    recent_messages: int = 30
    snapshot_tasks: int = 300

    @classmethod
    def from_settings(cls) -> ContextBudget:
        return cls(
            total=settings.context_budget_chars,
            recent_tail=settings.recent_tail_chars,
            task_snapshot=settings.task_snapshot_chars,
            semantic_recall=settings.semantic_recall_chars,
            recent_messages=settings.recent_message_limit,
            snapshot_tasks=settings.task_snapshot_limit,
        )


class ContextAssembler:
    """Builds the role-tagged prompt segments for one conversation."""

    def __init__(self, store: ConversationStore, limits: ContextBudget | None = None) -> None:
        self._store = store
        self._limits = limits or ContextBudget.from_settings()

    async def assemble(self, conversation: Conversation) -> list[dict[str, str]]:
        """Return ``[instruction, context]`` as ``{"role", "content"}`` dicts."""
        payload = await self.build_payload(conversation)
        return [
            {"role": "system", "content": EXTRACTION_PROMPT},
            {"role": "system", "content": "CONTEXT:\n" + payload},
        ]

    async def build_payload(self, conversation: Conversation) -> str:
        """Join the four sections and enforce the global budget."""
        tasks = await self.task_snapshot()
        recall = await self.semantic_recall(conversation)
        recent = await self.recent_tail(conversation)

        sections = [
            conversation.running_summary or "",
            "TASKS_SNAPSHOT:\n" + tasks,
            "SEMANTIC_RECALL:\n" + recall,
            "RECENT:\n" + recent,
        ]
        payload = "\n\n".join(sections).strip()
        if budget.measure(payload) > self._limits.total:
            logger.debug(
                "Context payload %d chars over budget %d; clipping",
                budget.measure(payload),
                self._limits.total,
            )
            payload = budget.clip(payload, self._limits.total)
        return payload

    async def recent_tail(self, conversation: Conversation) -> str:
        """Render the newest messages that fit the recent-tail budget.

        Only whole ``ROLE: content`` lines are kept and the newest lines win
        when the window does not fit.
        """
        messages = await self._store.recent_messages(
            conversation.id, self._limits.recent_messages
        )
        lines = [m.render(strip=True) + "\n" for m in messages]
        kept = budget.fit_newest_lines(lines, self._limits.recent_tail)
        if len(kept) < len(lines):
            logger.debug("Recent tail dropped %d oldest message(s)", len(lines) - len(kept))
        return "".join(kept)

    async def task_snapshot(self) -> str:
        """One line per recently updated task, cut at a line boundary."""
        tasks = await self._store.recent_tasks(self._limits.snapshot_tasks)
        joined = "\n".join(task.snapshot_line() for task in tasks)
        return budget.clip_at_line(joined, self._limits.task_snapshot)

    async def semantic_recall(self, conversation: Conversation) -> str:
        # Extension point for embedding-similarity retrieval; nothing is indexed yet.
        chunks: list[str] = []
        return budget.clip("\n".join(chunks), self._limits.semantic_recall)
