"""
Chat schemas: stateless inference, chat records and the first-version transcript.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from api.models.models import CamelModel, Message


class ChatRequest(BaseModel):
    input: Optional[str] = None


class ChatResponse(BaseModel):
    text: str


class SaveChatRequest(CamelModel):
    """Body for POST /api/chat/save. Identifiers are checked by the route (400, not 422)."""
    user_id: Optional[str] = None
    chat_id: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    title: Optional[str] = None


class SaveTranscriptRequest(CamelModel):
    user_id: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool
