"""
Chat routes: stateless inference plus chat-record persistence keyed by userId.
Chat records live in one hash per user; the single transcript is the first-version layout.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.bootstrap import get_chat_store, get_llm
from api.schemas.chat_schemas import (
    ChatRequest,
    ChatResponse,
    SaveChatRequest,
    SaveTranscriptRequest,
    SuccessResponse,
)
from api.services.chat_store import ChatRecordStore
from api.utils.errors import ValidationError
from infra.llm.base import LLM

chat_routes = APIRouter()


def _require(value: Optional[str], name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{name} is required")
    return value


# ---- Inference ----

@chat_routes.post("", response_model=ChatResponse)
async def chat(body: ChatRequest, llm: LLM = Depends(get_llm)) -> ChatResponse:
    """One-shot completion: no history, no persistence."""
    text = _require(body.input, "input")
    return ChatResponse(text=await llm.generate_text(text))


# ---- Chat records ----

@chat_routes.get("/load")
async def load_chats(
    user_id: Optional[str] = Query(None, alias="userId"),
    chat_id: Optional[str] = Query(None, alias="chatId"),
    store: ChatRecordStore = Depends(get_chat_store),
) -> dict:
    """One chat when chatId is given (empty messages if unknown), else every chat newest first."""
    user_id = _require(user_id, "userId")
    if chat_id:
        chat = await store.load(user_id, chat_id)
        if chat is None:
            return {"messages": []}
        return chat.to_json_dict()
    chats = await store.load_all(user_id)
    return {"chats": [c.to_json_dict() for c in chats]}


@chat_routes.post("/save")
async def save_chat(body: SaveChatRequest, store: ChatRecordStore = Depends(get_chat_store)) -> dict:
    """
    Upsert a chat. A given title is pinned; a later untitled save keeps it.

    Without a title (and nothing pinned) the title comes from the first user message,
    not from messages[0], so a seeded welcome message never becomes the title.
    """
    user_id = _require(body.user_id, "userId")
    chat_id = _require(body.chat_id, "chatId")
    title = (body.title or "").strip() or None
    chat = await store.save(user_id, chat_id, body.messages, title, pinned_title=title is not None)
    return {"success": True, "chat": chat.to_json_dict()}


@chat_routes.delete("/delete", response_model=SuccessResponse)
async def delete_chat(
    user_id: Optional[str] = Query(None, alias="userId"),
    chat_id: Optional[str] = Query(None, alias="chatId"),
    store: ChatRecordStore = Depends(get_chat_store),
) -> SuccessResponse:
    await store.delete(_require(user_id, "userId"), _require(chat_id, "chatId"))
    return SuccessResponse(success=True)


# ---- First-version transcript ----

@chat_routes.get("/transcript")
async def load_transcript(
    user_id: Optional[str] = Query(None, alias="userId"),
    store: ChatRecordStore = Depends(get_chat_store),
) -> dict:
    messages = await store.load_transcript(_require(user_id, "userId"))
    return {"messages": [m.to_json_dict() for m in messages]}


@chat_routes.post("/transcript", response_model=SuccessResponse)
async def save_transcript(
    body: SaveTranscriptRequest,
    store: ChatRecordStore = Depends(get_chat_store),
) -> SuccessResponse:
    await store.save_transcript(_require(body.user_id, "userId"), body.messages)
    return SuccessResponse(success=True)
