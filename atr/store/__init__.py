"""Persistent record of conversations, messages, tasks and notes."""

from atr.store.models import Conversation, Message, Note, Task, TaskFields
from atr.store.store import ConversationNotFoundError, ConversationStore, TaskTransaction

__all__ = [
    "Conversation",
    "ConversationNotFoundError",
    "ConversationStore",
    "Message",
    "Note",
    "Task",
    "TaskFields",
    "TaskTransaction",
]
