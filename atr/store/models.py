"""Conversation, Message, Task and Note data models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

ROLES = ("system", "user", "assistant", "tool")
PRIORITIES = ("low", "medium", "high", "urgent")
STATUSES = ("New", "In Progress", "Blocked", "Done")
NOTE_TYPES = ("brain_dump", "pdf", "url", "structured")

DEFAULT_DIFFICULTY = 2
DEFAULT_DURATION_MINUTES = 30
DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "New"


def utc_now() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


def _load_json(value: str | None) -> Any:
    return json.loads(value) if value else None


@dataclass
class Conversation:
    """A thread of ingestions sharing one rolling summary."""

    id: int
    topic: str | None = None
    running_summary: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row: tuple) -> Conversation:
        return cls(
            id=row[0],
            topic=row[1],
            running_summary=row[2] or "",
            created_at=row[3],
            updated_at=row[4],
        )


@dataclass
class Message:
    """One immutable entry in a conversation's append-only log.

    Attributes:
        id: Autoincrement row id; also the creation order.
        conversation_id: Owning conversation.
        role: One of ``system``, ``user``, ``assistant`` or ``tool``.
        content: Message text.
        meta: Optional JSON metadata, e.g. ``{"raw": <gateway response>}``.
        created_at: ISO 8601 timestamp.
    """

    id: int
    conversation_id: int
    role: str
    content: str
    meta: dict[str, Any] | None = None
    created_at: str = ""

    def render(self, *, strip: bool = False) -> str:
        """Render as ``ROLE: content``."""
        content = self.content.strip() if strip else self.content
        return f"{self.role.upper()}: {content}"

    @classmethod
    def from_row(cls, row: tuple) -> Message:
        return cls(
            id=row[0],
            conversation_id=row[1],
            role=row[2],
            content=row[3],
            meta=_load_json(row[4]),
            created_at=row[5],
        )


@dataclass
class TaskFields:
    """The writable columns of a task, as produced by reconciliation."""

    title: str
    description: str | None = None
    difficulty: int = DEFAULT_DIFFICULTY
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    priority: str = DEFAULT_PRIORITY
    due_date: date | None = None
    status: str = DEFAULT_STATUS
    dependencies: list[Any] = field(default_factory=list)

    def to_params(self) -> tuple:
        """Serialize the writable columns for the task INSERT and UPDATE.

        Order: title, description, difficulty, duration_minutes, priority,
        due_date, status, dependencies.
        """
        return (
            self.title,
            self.description,
            self.difficulty,
            self.duration_minutes,
            self.priority,
            self.due_date.isoformat() if self.due_date else None,
            self.status,
            json.dumps(self.dependencies),
        )


@dataclass
class Task:
    """A stored task. Identity for reconciliation is (title, due_date), not ``id``."""

    id: int
    title: str
    description: str | None = None
    difficulty: int = DEFAULT_DIFFICULTY
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    priority: str = DEFAULT_PRIORITY
    due_date: date | None = None
    status: str = DEFAULT_STATUS
    dependencies: list[Any] = field(default_factory=list)
    project_id: int | None = None
    created_at: str = ""
    updated_at: str = ""

    def snapshot_line(self) -> str:
        """One-line projection used in the model's task snapshot."""
        due = self.due_date.isoformat() if self.due_date else "-"
        return (
            f"#{self.id} [{self.status}/{self.priority}] {self.title} "
            f"(due:{due}, {self.duration_minutes}min)"
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        return cls(
            id=row[0],
            title=row[1],
            description=row[2],
            difficulty=row[3],
            duration_minutes=row[4],
            priority=row[5],
            due_date=date.fromisoformat(row[6]) if row[6] else None,
            status=row[7],
            dependencies=_load_json(row[8]) or [],
            project_id=row[9],
            created_at=row[10],
            updated_at=row[11],
        )


@dataclass
class Note:
    """Audit record of raw input. Written once, never read back by the pipeline."""

    id: int
    type: str
    content: str
    conversation_id: int | None = None
    meta: dict[str, Any] | None = None
    created_at: str = ""

    @classmethod
    def from_row(cls, row: tuple) -> Note:
        return cls(
            id=row[0],
            conversation_id=row[1],
            type=row[2],
            content=row[3],
            meta=_load_json(row[4]),
            created_at=row[5],
        )
