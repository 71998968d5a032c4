"""
Domain records stored in the key-value store.

Attributes are snake_case; the stored/wire form is camelCase (correctAnswer, isComplete,
updatedAt, ...). Models accept either spelling and dump with `by_alias=True`.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant"]
QuizScope = Literal["message", "session"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class QuizQuestion(CamelModel):
    question: str
    options: List[str]
    correct_answer: int
    user_answer: Optional[int] = None
    explanation: Optional[str] = None
    difficulty: Optional[str] = None
    topic: Optional[str] = None

    @model_validator(mode="after")
    def _answer_in_range(self) -> "QuizQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(f"correctAnswer {self.correct_answer} is not an index into options")
        return self

    @property
    def is_correct(self) -> bool:
        return self.user_answer is not None and self.user_answer == self.correct_answer


class QuizState(CamelModel):
    """Live, inline quiz attached to a chat message."""

    id: Optional[str] = None
    questions: List[QuizQuestion]
    current_question: int = 0
    is_complete: bool = False
    score: Optional[int] = None
    type: Optional[QuizScope] = None


class Message(CamelModel):
    # Client-side extras (attachments, tool calls) ride along untouched.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    role: Role
    content: str
    quiz: Optional[QuizState] = None
    created_at: Optional[str] = None


class ChatSession(CamelModel):
    id: str
    title: str
    messages: List[Message] = Field(default_factory=list)
    updated_at: str
    pinned_title: bool = False
    # assistant-turn count when the last session quiz was generated
    session_quiz_turn: Optional[int] = None


class QuizHistoryEntry(CamelModel):
    id: str
    questions: List[QuizQuestion]
    score: Optional[int] = None
    taken_at: str
    type: QuizScope = "message"


class Space(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    chats: List[ChatSession] = Field(default_factory=list)
    quizzes: List[QuizHistoryEntry] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @property
    def main_chat(self) -> Optional[ChatSession]:
        return self.chats[0] if self.chats else None
