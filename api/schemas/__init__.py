"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import SaveChatRequest, WorkspaceSnapshot
    from api.schemas.space_schemas import SyncSpacesRequest
"""

from api.schemas.chat_schemas import (
    ChatRequest,
    ChatResponse,
    SaveChatRequest,
    SaveTranscriptRequest,
    SuccessResponse,
)
from api.schemas.space_schemas import (
    CreateSpaceRequest,
    SyncSpacesRequest,
)
from api.schemas.workspace_schemas import (
    AnswerQuizRequest,
    DraftRequest,
    GenerateQuizRequest,
    NewSpaceRequest,
    NotificationResponse,
    QuizAnswerResponse,
    RenameChatRequest,
    SubmitRequest,
    WorkspaceSnapshot,
)

__all__ = [
    # chat
    "ChatRequest",
    "ChatResponse",
    "SaveChatRequest",
    "SaveTranscriptRequest",
    "SuccessResponse",
    # spaces
    "CreateSpaceRequest",
    "SyncSpacesRequest",
    # workspace
    "AnswerQuizRequest",
    "DraftRequest",
    "GenerateQuizRequest",
    "NewSpaceRequest",
    "NotificationResponse",
    "QuizAnswerResponse",
    "RenameChatRequest",
    "SubmitRequest",
    "WorkspaceSnapshot",
]
