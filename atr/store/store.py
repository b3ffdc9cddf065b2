"""ConversationStore — aiosqlite persistence for conversations, messages, tasks and notes."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import aiosqlite

from atr.config import settings
from atr.store.models import ROLES, Conversation, Message, Note, Task, TaskFields, utc_now

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import date
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        topic TEXT,
        running_summary TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id INTEGER NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
        role TEXT NOT NULL CHECK (role IN ('system', 'user', 'assistant', 'tool')),
        content TEXT NOT NULL,
        meta TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages (conversation_id, created_at)",
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        difficulty INTEGER NOT NULL DEFAULT 2,
        duration_minutes INTEGER NOT NULL DEFAULT 30,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        due_date TEXT,
        status TEXT NOT NULL DEFAULT 'New'
            CHECK (status IN ('New', 'In Progress', 'Blocked', 'Done')),
        dependencies TEXT,
        project_id INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status, priority, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_title ON tasks (title)",
    """
    CREATE TABLE IF NOT EXISTS notes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id INTEGER REFERENCES conversations(id) ON DELETE SET NULL,
        type TEXT NOT NULL CHECK (type IN ('brain_dump', 'pdf', 'url', 'structured')),
        content TEXT NOT NULL,
        meta TEXT,
        created_at TEXT NOT NULL
    )
    """,
)

_CONVERSATION_COLUMNS = "id, topic, running_summary, created_at, updated_at"
_MESSAGE_COLUMNS = "id, conversation_id, role, content, meta, created_at"
_NOTE_COLUMNS = "id, conversation_id, type, content, meta, created_at"
_TASK_COLUMNS = (
    "id, title, description, difficulty, duration_minutes, priority, due_date, "
    "status, dependencies, project_id, created_at, updated_at"
)


class ConversationNotFoundError(LookupError):
    """Raised when a conversation id does not exist."""

    def __init__(self, conversation_id: int) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


async def _fetch_task(db: aiosqlite.Connection, task_id: int) -> Task | None:
    cursor = await db.execute(f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,))
    row = await cursor.fetchone()
    return Task.from_row(row) if row else None


class TaskTransaction:
    """Task reads and writes bound to one open transaction.

    Obtained from ``ConversationStore.transaction()``; nothing written here is
    visible to other connections until the context manager exits cleanly.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def find_task(self, title: str, due_date: date | None = None) -> Task | None:
        """Return the oldest task with exactly *title*.

        When *due_date* is given the task's due date must equal it; when it is
        None the due date is not constrained.
        """
        sql = f"SELECT {_TASK_COLUMNS} FROM tasks WHERE title = ?"
        params: tuple = (title,)
        if due_date is not None:
            sql += " AND due_date = ?"
            params += (due_date.isoformat(),)
        cursor = await self._db.execute(sql + " ORDER BY id LIMIT 1", params)
        row = await cursor.fetchone()
        return Task.from_row(row) if row else None

    async def create_task(self, fields: TaskFields) -> Task:
        now = utc_now()
        cursor = await self._db.execute(
            """
            INSERT INTO tasks
                (title, description, difficulty, duration_minutes, priority,
                 due_date, status, dependencies, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (*fields.to_params(), now, now),
        )
        task = await _fetch_task(self._db, cursor.lastrowid)
        logger.debug("Created task #%s: %s", task.id, task.title)
        return task

    async def update_task(self, task_id: int, fields: TaskFields) -> Task:
        await self._db.execute(
            """
            UPDATE tasks SET
                title = ?, description = ?, difficulty = ?, duration_minutes = ?,
                priority = ?, due_date = ?, status = ?, dependencies = ?, updated_at = ?
            WHERE id = ?
            """,
            (*fields.to_params(), utc_now(), task_id),
        )
        task = await _fetch_task(self._db, task_id)
        logger.debug("Updated task #%s: %s", task_id, fields.title)
        return task


class ConversationStore:
    """Persists conversations, messages, tasks and notes in SQLite.

    Singleton accessed via ``ConversationStore.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: ConversationStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @classmethod
    def get(cls) -> ConversationStore:
        """Return the shared ConversationStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        await db.execute("PRAGMA foreign_keys = ON")
        if not self._initialised:
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db

    # -- Conversations ---------------------------------------------------------

    async def create_conversation(self, topic: str | None = None) -> Conversation:
        """Insert a new conversation with an empty rolling summary."""
        now = utc_now()
        db = await self._connect()
        try:
            cursor = await db.execute(
                "INSERT INTO conversations (topic, running_summary, created_at, updated_at) "
                "VALUES (?, '', ?, ?)",
                (topic, now, now),
            )
            await db.commit()
            conversation = Conversation(
                id=cursor.lastrowid, topic=topic, created_at=now, updated_at=now
            )
            logger.info("Created conversation %d", conversation.id)
            return conversation
        finally:
            await db.close()

    async def get_conversation(self, conversation_id: int) -> Conversation:
        """Fetch a conversation by ID.

        Raises ``ConversationNotFoundError`` if it does not exist.
        """
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            raise ConversationNotFoundError(conversation_id)
        return Conversation.from_row(row)

    async def update_summary(self, conversation_id: int, summary: str) -> None:
        """Replace the conversation's rolling summary."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE conversations SET running_summary = ?, updated_at = ? WHERE id = ?",
                (summary, utc_now(), conversation_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise ConversationNotFoundError(conversation_id)
        finally:
            await db.close()

    # -- Messages --------------------------------------------------------------

    async def add_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        meta: dict[str, Any] | None = None,
    ) -> Message:
        """Append a message to a conversation's log."""
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        now = utc_now()
        db = await self._connect()
        try:
            cursor = await db.execute(
                "INSERT INTO messages (conversation_id, role, content, meta, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (conversation_id, role, content, json.dumps(meta) if meta else None, now),
            )
            await db.commit()
            return Message(
                id=cursor.lastrowid,
                conversation_id=conversation_id,
                role=role,
                content=content,
                meta=meta,
                created_at=now,
            )
        finally:
            await db.close()

    async def recent_messages(self, conversation_id: int, limit: int) -> list[Message]:
        """Return the newest *limit* messages, oldest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE conversation_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (conversation_id, limit),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()
        return [Message.from_row(row) for row in reversed(rows)]

    # -- Notes -----------------------------------------------------------------

    async def add_note(
        self,
        content: str,
        note_type: str = "brain_dump",
        conversation_id: int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Note:
        """Record raw input for the audit trail."""
        now = utc_now()
        db = await self._connect()
        try:
            cursor = await db.execute(
                "INSERT INTO notes (conversation_id, type, content, meta, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (conversation_id, note_type, content, json.dumps(meta) if meta else None, now),
            )
            await db.commit()
            return Note(
                id=cursor.lastrowid,
                type=note_type,
                content=content,
                conversation_id=conversation_id,
                meta=meta,
                created_at=now,
            )
        finally:
            await db.close()

    async def list_notes(self, conversation_id: int) -> list[Note]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_NOTE_COLUMNS} FROM notes WHERE conversation_id = ? ORDER BY id",
                (conversation_id,),
            )
            rows = await cursor.fetchall()
            return [Note.from_row(row) for row in rows]
        finally:
            await db.close()

    # -- Tasks -----------------------------------------------------------------

    async def get_task(self, task_id: int) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            return await _fetch_task(db, task_id)
        finally:
            await db.close()

    async def list_tasks(self) -> list[Task]:
        """Return every task in creation order."""
        db = await self._connect()
        try:
            cursor = await db.execute(f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY id")
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def recent_tasks(self, limit: int) -> list[Task]:
        """Return up to *limit* tasks, most recently updated first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY updated_at DESC, id DESC LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TaskTransaction]:
        """Open one all-or-nothing transaction for a batch of task writes.

        Commits when the block exits normally; any exception rolls back every
        write made through the yielded ``TaskTransaction`` and is re-raised.
        """
        db = await self._connect()
        try:
            await db.execute("BEGIN")
            try:
                yield TaskTransaction(db)
            except BaseException:
                await db.rollback()
                logger.warning("Task transaction rolled back")
                raise
            await db.commit()
        finally:
            await db.close()
