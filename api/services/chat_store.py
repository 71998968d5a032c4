"""
Chat record store: a user's chat sessions, one hash field per chat.

Key layout:
    user:{userId}:chats  -> hash of chatId -> chat object
    chat:{userId}        -> single serialized message list (first-version transcript)
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from api.models.models import ChatSession, Message
from api.utils.common import derive_title, latest_iso, parse_iso, utc_now_iso
from api.utils.logger import configure_logging
from infra.kv.store import KeyValueStore

logger = configure_logging()


def chats_key(user_id: str) -> str:
    return f"user:{user_id}:chats"


def transcript_key(user_id: str) -> str:
    return f"chat:{user_id}"


class ChatRecordStore:
    """Upsert/list/delete chat sessions for a user. Store failures raise UpstreamError."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def load_all(self, user_id: str) -> List[ChatSession]:
        """All chats for the user, most recently updated first."""
        raw = await self.kv.hgetall(chats_key(user_id))
        chats: List[ChatSession] = []
        for chat_id, value in raw.items():
            if not isinstance(value, dict):
                logger.warning("skipping malformed chat user=%s chat=%s", user_id, chat_id)
                continue
            try:
                chats.append(ChatSession.model_validate({**value, "id": chat_id}))
            except PydanticValidationError as e:
                logger.warning("skipping invalid chat user=%s chat=%s error=%s", user_id, chat_id, e)
        chats.sort(key=lambda c: parse_iso(c.updated_at), reverse=True)
        return chats

    async def load(self, user_id: str, chat_id: str) -> Optional[ChatSession]:
        value = await self.kv.hget(chats_key(user_id), chat_id)
        if not isinstance(value, dict):
            return None
        return ChatSession.model_validate({**value, "id": chat_id})

    async def save(
        self,
        user_id: str,
        chat_id: str,
        messages: Sequence[Message],
        title: Optional[str] = None,
        *,
        pinned_title: bool = False,
        session_quiz_turn: Optional[int] = None,
    ) -> ChatSession:
        """
        Upsert one chat. Re-saving the same content only refreshes updatedAt, and
        updatedAt never goes backwards for a chat id even if the clock does.

        A save without a title keeps a pinned stored title; a save without
        `session_quiz_turn` keeps the stored marker.
        """
        key = chats_key(user_id)
        previous = await self.kv.hget(key, chat_id)
        if not isinstance(previous, dict):
            previous = {}

        if not title and previous.get("pinnedTitle") and previous.get("title"):
            title, pinned_title = previous["title"], True
        if session_quiz_turn is None:
            session_quiz_turn = previous.get("sessionQuizTurn")

        chat = ChatSession(
            id=chat_id,
            title=title or derive_title(messages),
            messages=list(messages),
            updated_at=latest_iso(utc_now_iso(), previous.get("updatedAt")),
            pinned_title=bool(title) and pinned_title,
            session_quiz_turn=session_quiz_turn,
        )
        await self.kv.hset(key, chat_id, chat.to_json_dict())
        logger.debug("chat saved user=%s chat=%s messages=%s", user_id, chat_id, len(chat.messages))
        return chat

    async def delete(self, user_id: str, chat_id: str) -> None:
        """Remove one chat. Deleting an unknown id succeeds."""
        removed = await self.kv.hdel(chats_key(user_id), chat_id)
        logger.info("chat deleted user=%s chat=%s removed=%s", user_id, chat_id, removed)

    async def load_transcript(self, user_id: str) -> List[Message]:
        raw = await self.kv.get(transcript_key(user_id))
        if not isinstance(raw, list):
            return []
        return [Message.model_validate(m) for m in raw if isinstance(m, dict)]

    async def save_transcript(self, user_id: str, messages: Sequence[Message]) -> None:
        await self.kv.set(transcript_key(user_id), [m.to_json_dict() for m in messages])
