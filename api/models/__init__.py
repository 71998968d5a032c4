"""
API data models. Single import surface for the records kept in the key-value store.

Records (api.models.models):
- Message, QuizState, QuizQuestion, ChatSession, Space, QuizHistoryEntry
"""

from api.models.models import (
    ChatSession,
    Message,
    QuizHistoryEntry,
    QuizQuestion,
    QuizScope,
    QuizState,
    Role,
    Space,
)

__all__ = [
    "ChatSession",
    "Message",
    "QuizHistoryEntry",
    "QuizQuestion",
    "QuizScope",
    "QuizState",
    "Role",
    "Space",
]
