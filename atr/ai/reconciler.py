"""Merge extracted task records into the stored task list.

A task's identity here is its match key, not its row id: exact title, plus
the due date when the extraction suggests one. A match is updated in place
and reset to ``New``; anything else is created, and records without a title
are always created. The whole batch runs in one
transaction.

Titles are compared exactly. Case or whitespace variants are distinct tasks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

from atr.store.models import (
    DEFAULT_DIFFICULTY,
    DEFAULT_DURATION_MINUTES,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    PRIORITIES,
    TaskFields,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from atr.store import ConversationStore

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


def _as_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


class ExtractedTask(BaseModel):
    """One task object as the model emitted it, coerced to storable values."""

    model_config = ConfigDict(extra="ignore")

    title: str = UNTITLED
    description: str | None = None
    difficulty: int = DEFAULT_DIFFICULTY
    ideal_duration: int = DEFAULT_DURATION_MINUTES
    priority: str = DEFAULT_PRIORITY
    suggested_due_date: date | None = None
    dependencies: list[Any] = []

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        if value is None:
            return UNTITLED
        text = str(value)
        return text if text else UNTITLED

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, value: Any) -> int:
        return min(5, max(1, _as_int(value, DEFAULT_DIFFICULTY)))

    @field_validator("ideal_duration", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> int:
        return _as_int(value, DEFAULT_DURATION_MINUTES)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> str:
        normalized = str(value).strip().lower() if value is not None else ""
        return normalized if normalized in PRIORITIES else DEFAULT_PRIORITY

    @field_validator("suggested_due_date", mode="before")
    @classmethod
    def _due_date(cls, value: Any) -> date | None:
        if value in (None, ""):
            return None
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            logger.warning("Ignoring unparseable due date: %r", value)
            return None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dependencies(cls, value: Any) -> list[Any]:
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return value
        return [value]


class MatchKey(NamedTuple):
    """Lookup key for an existing task. ``due_date=None`` leaves the date unconstrained."""

    title: str
    due_date: date | None


def coerce_task(raw: dict[str, Any]) -> TaskFields:
    """Turn a raw extracted task into storable fields.

    Status is always ``New``: every extraction treats the task as freshly
    surfaced.
    """
    extracted = ExtractedTask.model_validate(raw)
    return TaskFields(
        title=extracted.title,
        description=extracted.description,
        difficulty=extracted.difficulty,
        duration_minutes=extracted.ideal_duration,
        priority=extracted.priority,
        due_date=extracted.suggested_due_date,
        status=DEFAULT_STATUS,
        dependencies=list(extracted.dependencies),
    )


def match_key(raw: dict[str, Any], fields: TaskFields) -> MatchKey | None:
    """Return the lookup key for *raw*, or None when it must always be created.

    Records without a title never match: each becomes its own ``Untitled``
    task, even if that leaves several of them.
    """
    if raw.get("title") in (None, ""):
        return None
    return MatchKey(title=fields.title, due_date=fields.due_date)


@dataclass
class ReconcileReport:
    """Task ids touched by one reconciliation batch."""

    created: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)


async def reconcile(
    store: ConversationStore, extracted: Iterable[dict[str, Any]]
) -> ReconcileReport:
    """Create or update a task for every extracted record, atomically.

    If any write fails the transaction is rolled back and the error
    propagates; no task from the batch is kept.
    """
    report = ReconcileReport()
    batch = [(raw, coerce_task(raw)) for raw in extracted]
    if not batch:
        return report

    async with store.transaction() as tx:
        for raw, fields in batch:
            key = match_key(raw, fields)
            existing = None
            if key is not None:
                existing = await tx.find_task(key.title, key.due_date)
            if existing is not None:
                await tx.update_task(existing.id, fields)
                report.updated.append(existing.id)
            else:
                task = await tx.create_task(fields)
                report.created.append(task.id)

    logger.info(
        "Reconciled %d task(s): %d created, %d updated",
        len(batch),
        len(report.created),
        len(report.updated),
    )
    return report
