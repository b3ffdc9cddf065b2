"""Tolerant parsing of the model's JSON reply.

This is the only place model output errors are absorbed: anything that does
not decode to a JSON object becomes an ``EmptyExtraction`` instead of an
exception, so a garbled reply never fails the ingestion.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"\A```[\w-]*[ \t]*(?:\n|\Z)")
_CLOSING_FENCE = re.compile(r"(?:\A|\n)[ \t]*```\Z")


def _task_records(record: dict[str, Any]) -> list[dict[str, Any]]:
    tasks = record.get("tasks")
    if not isinstance(tasks, list):
        return []
    return [t for t in tasks if isinstance(t, dict)]


@dataclass(frozen=True)
class Extraction:
    """A reply that decoded to a JSON object."""

    record: dict[str, Any]

    @property
    def tasks(self) -> list[dict[str, Any]]:
        return _task_records(self.record)

    def to_dict(self) -> dict[str, Any]:
        return self.record


@dataclass(frozen=True)
class EmptyExtraction:
    """Fallback for replies that were not a JSON object."""

    reason: str = ""

    @property
    def tasks(self) -> list[dict[str, Any]]:
        return []

    def to_dict(self) -> dict[str, Any]:
        return {"tasks": [], "references": []}


ParseResult = Extraction | EmptyExtraction


def strip_fences(text: str) -> str:
    """Remove a leading ```` ```lang ```` line and a trailing ```` ``` ```` line."""
    text = text.strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _decode(body: str) -> Any:
    """Strict decode, then retry on the outermost ``{...}`` span.

    Raises ``ValueError`` or ``RecursionError`` when neither decodes.
    """
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        start = body.find("{")
        end = body.rfind("}") + 1
        if start < 0 or end <= start:
            raise
        return json.loads(body[start:end])


def parse(raw_text: str) -> ParseResult:
    """Decode the model's reply into a structured record. Never raises."""
    body = strip_fences(raw_text or "")
    try:
        data = _decode(body)
    except (ValueError, RecursionError) as exc:
        logger.warning("Model reply is not valid JSON (%s); using empty extraction", exc)
        return EmptyExtraction(reason="invalid_json")

    if not isinstance(data, dict):
        logger.warning(
            "Model reply decoded to %s, not an object; using empty extraction",
            type(data).__name__,
        )
        return EmptyExtraction(reason="not_an_object")

    return Extraction(record=data)
