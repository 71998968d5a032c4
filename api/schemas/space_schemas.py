"""
Space schemas.
"""

from typing import List, Optional

from pydantic import Field

from api.models.models import CamelModel, ChatSession, QuizHistoryEntry, Space
from api.utils.common import new_id, utc_now_iso


class CreateSpaceRequest(CamelModel):
    """A client-built Space; missing id and timestamps are filled in on create."""
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    chats: List[ChatSession] = Field(default_factory=list)
    quizzes: List[QuizHistoryEntry] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_space(self) -> Space:
        now = utc_now_iso()
        return Space(
            id=self.id or new_id(),
            name=(self.name or "").strip(),
            description=self.description,
            chats=self.chats,
            quizzes=self.quizzes,
            created_at=self.created_at or now,
            updated_at=self.updated_at or now,
        )


class SyncSpacesRequest(CamelModel):
    spaces: List[Space] = Field(default_factory=list)
