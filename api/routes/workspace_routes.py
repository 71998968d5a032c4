"""
Workspace routes: drive the guest's live workspace (active chat/space, quizzes, notifications).

Every mutating route answers with the fresh snapshot unless it has a more specific result.
Store and inference failures inside the workspace become notifications, fetched from
GET /notifications; only illegal requests (unknown ids, bad quiz answers) are HTTP errors.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.bootstrap import get_controller
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
from api.services.conversation_service import ConversationController
from api.utils.errors import ValidationError

workspace_routes = APIRouter()


def _snapshot(controller: ConversationController) -> dict:
    return WorkspaceSnapshot.from_controller(controller).to_json_dict()


def _message_result(message) -> dict:
    """`message` is None when the operation failed softly (see notifications)."""
    return {"message": message.to_json_dict() if message is not None else None}


@workspace_routes.get("")
async def get_workspace(controller: ConversationController = Depends(get_controller)) -> dict:
    return _snapshot(controller)


@workspace_routes.post("/refresh")
async def refresh(controller: ConversationController = Depends(get_controller)) -> dict:
    await controller.refresh()
    return _snapshot(controller)


@workspace_routes.put("/draft")
async def set_draft(body: DraftRequest, controller: ConversationController = Depends(get_controller)) -> dict:
    controller.set_draft(body.input)
    return _snapshot(controller)


@workspace_routes.post("/messages")
async def submit_message(body: SubmitRequest, controller: ConversationController = Depends(get_controller)) -> dict:
    return _message_result(await controller.submit(body.input or ""))


# ---- Chats ----

@workspace_routes.post("/chats")
async def new_chat(controller: ConversationController = Depends(get_controller)) -> dict:
    await controller.new_chat()
    return _snapshot(controller)


@workspace_routes.post("/chats/{chat_id}/select")
async def select_chat(chat_id: str, controller: ConversationController = Depends(get_controller)) -> dict:
    controller.select_chat(chat_id)
    return _snapshot(controller)


@workspace_routes.patch("/chats/{chat_id}")
async def rename_chat(
    chat_id: str,
    body: RenameChatRequest,
    controller: ConversationController = Depends(get_controller),
) -> dict:
    controller.rename_chat(chat_id, body.title or "")
    return _snapshot(controller)


@workspace_routes.delete("/chats/{chat_id}")
async def delete_chat(chat_id: str, controller: ConversationController = Depends(get_controller)) -> dict:
    await controller.delete_chat(chat_id)
    return _snapshot(controller)


# ---- Spaces ----

@workspace_routes.post("/spaces")
async def new_space(body: NewSpaceRequest, controller: ConversationController = Depends(get_controller)) -> dict:
    await controller.new_space(body.name or "", body.description)
    return _snapshot(controller)


@workspace_routes.post("/spaces/{space_id}/select")
async def select_space(space_id: str, controller: ConversationController = Depends(get_controller)) -> dict:
    controller.select_space(space_id)
    return _snapshot(controller)


@workspace_routes.delete("/spaces/{space_id}")
async def delete_space(space_id: str, controller: ConversationController = Depends(get_controller)) -> dict:
    await controller.delete_space(space_id)
    return _snapshot(controller)


# ---- Quizzes ----

@workspace_routes.post("/quizzes")
async def generate_quiz(
    body: GenerateQuizRequest,
    controller: ConversationController = Depends(get_controller),
) -> dict:
    if body.scope == "message":
        if not body.message_id:
            raise ValidationError("messageId is required for a message quiz")
        return _message_result(await controller.generate_message_quiz(body.message_id))
    return _message_result(await controller.generate_session_quiz())


@workspace_routes.post("/quizzes/{quiz_id}/answers")
async def answer_quiz(
    quiz_id: str,
    body: AnswerQuizRequest,
    controller: ConversationController = Depends(get_controller),
) -> dict:
    quiz = controller.answer_quiz(quiz_id, body.question_index, body.option_index)
    return QuizAnswerResponse(quiz=quiz).to_json_dict()


@workspace_routes.post("/quizzes/{quiz_id}/retake")
async def retake_quiz(quiz_id: str, controller: ConversationController = Depends(get_controller)) -> dict:
    return _message_result(controller.retake_quiz(quiz_id))


@workspace_routes.get("/notifications")
async def drain_notifications(controller: ConversationController = Depends(get_controller)) -> List[dict]:
    return [
        NotificationResponse(level=n.level, message=n.message, created_at=n.created_at).to_json_dict()
        for n in controller.drain_notifications()
    ]
