"""
Workspace schemas: requests against the guest's live workspace and its snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Literal, Optional

from pydantic import Field

from api.models.models import CamelModel, ChatSession, Message, QuizScope, QuizState, Space

if TYPE_CHECKING:
    from api.services.conversation_service import ConversationController


class SubmitRequest(CamelModel):
    input: Optional[str] = None


class DraftRequest(CamelModel):
    input: str = ""


class RenameChatRequest(CamelModel):
    title: Optional[str] = None


class NewSpaceRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None


class GenerateQuizRequest(CamelModel):
    scope: QuizScope
    message_id: Optional[str] = None


class AnswerQuizRequest(CamelModel):
    question_index: int
    option_index: int


class NotificationResponse(CamelModel):
    level: Literal["info", "error"]
    message: str
    created_at: str


class QuizAnswerResponse(CamelModel):
    quiz: QuizState


class WorkspaceSnapshot(CamelModel):
    user_id: str
    chats: List[ChatSession] = Field(default_factory=list)
    spaces: List[Space] = Field(default_factory=list)
    active_chat_id: Optional[str] = None
    active_space_id: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    draft: str = ""
    is_generating: bool = False
    quiz_update_available: bool = False
    pending_notifications: int = 0

    @classmethod
    def from_controller(cls, controller: "ConversationController") -> "WorkspaceSnapshot":
        return cls(
            user_id=controller.user_id,
            chats=controller.chats,
            spaces=controller.spaces,
            active_chat_id=controller.active_chat_id,
            active_space_id=controller.active_space_id,
            messages=controller.messages,
            draft=controller.draft,
            is_generating=controller.is_generating,
            quiz_update_available=controller.quiz_update_available,
            pending_notifications=len(controller.notifications),
        )
