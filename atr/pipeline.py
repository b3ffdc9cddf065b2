"""Ingestion pipeline: raw text in, reconciled tasks and parsed result out.

Stages run strictly in order::

    RECORD_INPUT -> ASSEMBLE_CONTEXT -> INVOKE_MODEL -> RECORD_OUTPUT
        -> RECONCILE_TASKS -> COMPRESS_SUMMARY

Input is recorded before the model is called and the raw reply is recorded
before it is parsed, so neither is lost if a later stage fails. Gateway and
store errors are not caught here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from atr.ai import interpreter
from atr.ai.context import ContextAssembler
from atr.ai.reconciler import reconcile
from atr.ai.summary import SummaryCompressor
from atr.config import settings
from atr.llm import client
from atr.store import ConversationStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from atr.llm.client import GatewayResponse

    Gateway = Callable[..., Awaitable[GatewayResponse]]

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """What the caller gets back from one ingestion."""

    conversation_id: int
    result: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"conversation_id": self.conversation_id, "result": self.result}


class IngestPipeline:
    """Sequences store, context assembly, gateway, reconciliation and summary."""

    def __init__(
        self,
        store: ConversationStore | None = None,
        gateway: Gateway | None = None,
        assembler: ContextAssembler | None = None,
        compressor: SummaryCompressor | None = None,
    ) -> None:
        self._store = store or ConversationStore.get()
        self._gateway = gateway or client.chat
        self._assembler = assembler or ContextAssembler(self._store)
        self._compressor = compressor or SummaryCompressor(self._store)

    async def ingest(self, text: str, conversation_id: int | None = None) -> IngestResult:
        """Run one brain dump through the full pipeline.

        Args:
            text: The raw user input.
            conversation_id: Existing conversation to continue; None starts a
                new one.

        Returns:
            The conversation id and the parsed model record.

        Raises:
            ConversationNotFoundError: *conversation_id* does not exist.
        """
        if conversation_id is None:
            conversation = await self._store.create_conversation()
        else:
            conversation = await self._store.get_conversation(conversation_id)

        # RECORD_INPUT
        await self._store.add_note(text, note_type="brain_dump", conversation_id=conversation.id)
        await self._store.add_message(conversation.id, "user", text)

        # ASSEMBLE_CONTEXT
        messages = await self._assembler.assemble(conversation)
        messages.append({"role": "user", "content": "INPUT:\n" + text})

        # INVOKE_MODEL
        logger.info("Conversation %d: calling model", conversation.id)
        response = await self._gateway(
            messages,
            temperature=settings.extraction_temperature,
            max_tokens=settings.extraction_max_tokens,
        )

        # RECORD_OUTPUT
        await self._store.add_message(
            conversation.id, "assistant", response.content, meta={"raw": response.raw}
        )

        # RECONCILE_TASKS
        parsed = interpreter.parse(response.content)
        report = await reconcile(self._store, parsed.tasks)

        # COMPRESS_SUMMARY
        await self._compressor.update(conversation)

        logger.info(
            "Conversation %d ingested: %d task(s) created, %d updated",
            conversation.id,
            len(report.created),
            len(report.updated),
        )
        return IngestResult(conversation_id=conversation.id, result=parsed.to_dict())
