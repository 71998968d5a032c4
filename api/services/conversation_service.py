"""
Conversation controller: the guest's in-process workspace.

Holds the working copy of chats and spaces, turns input into inference calls, drives
quizzes, and pushes every mutation to the record stores through an ordered
write-behind queue. Local state is authoritative for the running session: writes are
not awaited, failures become notifications, and nothing is rolled back.

A chat either stands alone (Chat Record Store) or is the main chat of a space
(Space Record Store, whole-collection sync).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from api.models.models import ChatSession, Message, QuizScope, QuizState, Space
from api.services.chat_store import ChatRecordStore
from api.services.quiz_service import (
    QUIZ_MESSAGE_PREFIX,
    QuizEngine,
    assistant_turns,
    context_turns,
    reset_for_retake,
    session_quiz_eligible,
    submit_answer,
    to_history_entry,
)
from api.services.space_store import SpaceRecordStore, upsert_quiz
from api.utils.background import PersistenceQueue
from api.utils.common import (
    derive_title,
    latest_iso,
    new_id,
    new_message_id,
    parse_iso,
    utc_now_iso,
    welcome_message,
)
from api.utils.errors import AppError, NotFoundError, ValidationError
from api.utils.logger import configure_logging
from infra.llm.base import LLM

logger = configure_logging()

NotificationLevel = Literal["info", "error"]

SESSION_QUIZ_CONTENT = "Here's a quiz on our conversation so far."
RETAKE_QUIZ_CONTENT = "Let's retake this quiz."


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    created_at: str = field(default_factory=utc_now_iso)


class ConversationController:
    def __init__(
        self,
        *,
        user_id: str,
        llm: LLM,
        chat_store: ChatRecordStore,
        space_store: SpaceRecordStore,
        quiz_engine: Optional[QuizEngine] = None,
    ):
        self.user_id = user_id
        self.llm = llm
        self.chat_store = chat_store
        self.space_store = space_store
        self.quiz_engine = quiz_engine or QuizEngine(llm)
        self.persistence = PersistenceQueue(on_error=self._persist_failed)

        self.chats: List[ChatSession] = []
        self.spaces: List[Space] = []
        self.active_chat_id: Optional[str] = None
        self.active_space_id: Optional[str] = None
        self.draft: str = ""
        self.is_generating = False
        self.quiz_update_available = False
        self.notifications: List[Notification] = []

    # ---- Views ----

    @property
    def active_space(self) -> Optional[Space]:
        if self.active_space_id is None:
            return None
        return next((s for s in self.spaces if s.id == self.active_space_id), None)

    @property
    def active_chat(self) -> Optional[ChatSession]:
        space = self.active_space
        if space is not None:
            return space.main_chat
        return next((c for c in self.chats if c.id == self.active_chat_id), None)

    @property
    def messages(self) -> List[Message]:
        chat = self.active_chat
        return chat.messages if chat is not None else []

    def _space_of(self, chat: ChatSession) -> Optional[Space]:
        return next((s for s in self.spaces if any(c is chat for c in s.chats)), None)

    def _require_active_chat(self) -> ChatSession:
        chat = self.active_chat
        if chat is None:
            raise ValidationError("No active chat")
        return chat

    # ---- Notifications ----

    def notify(self, level: NotificationLevel, message: str) -> None:
        log = logger.error if level == "error" else logger.info
        log("notify level=%s message=%s", level, message)
        self.notifications.append(Notification(level=level, message=message))

    def drain_notifications(self) -> List[Notification]:
        drained, self.notifications = self.notifications, []
        return drained

    def _persist_failed(self, description: str, exc: BaseException) -> None:
        detail = exc.message if isinstance(exc, AppError) else str(exc)
        self.notify("error", f"Could not save {description}: {detail}")

    # ---- Persistence (write-behind) ----

    def _touch(self, chat: ChatSession) -> None:
        chat.updated_at = latest_iso(utc_now_iso(), chat.updated_at)

    def _persist_chat(self, chat: ChatSession) -> None:
        space = self._space_of(chat)
        if space is not None:
            space.updated_at = latest_iso(utc_now_iso(), space.updated_at)
            self._queue_space_sync()
            return

        if not chat.pinned_title:
            chat.title = derive_title(chat.messages)
        chat_id = chat.id
        messages = [m.model_copy(deep=True) for m in chat.messages]
        title = chat.title if chat.pinned_title else None
        pinned = chat.pinned_title
        quiz_turn = chat.session_quiz_turn
        self.persistence.submit(
            f"chat {chat_id}",
            lambda: self.chat_store.save(
                self.user_id, chat_id, messages, title, pinned_title=pinned, session_quiz_turn=quiz_turn
            ),
        )

    def _queue_space_sync(self) -> None:
        snapshot = [s.model_copy(deep=True) for s in self.spaces]
        self.persistence.submit("spaces", lambda: self.space_store.sync(snapshot))

    async def drain(self) -> None:
        """Wait for queued writes (used at shutdown and by tests)."""
        await self.persistence.drain()

    async def close(self) -> None:
        await self.persistence.close()

    # ---- Loading ----

    async def refresh(self) -> None:
        """Reload chats and spaces from the stores. Failures leave an empty list and a notification."""
        try:
            self.chats = await self.chat_store.load_all(self.user_id)
        except AppError as e:
            self.notify("error", f"Could not load chats: {e.message}")
            self.chats = []
        try:
            spaces = await self.space_store.list_all()
        except AppError as e:
            self.notify("error", f"Could not load spaces: {e.message}")
            spaces = []
        self.spaces = sorted(spaces, key=lambda s: parse_iso(s.updated_at), reverse=True)

        if self.active_space_id and self.active_space is None:
            self.active_space_id = None
        if self.active_chat is None:
            if self.chats:
                self.active_chat_id = self.chats[0].id
            elif await self.new_chat() is None:
                self._new_local_chat()
        self._refresh_quiz_flag()

    # ---- Chats & spaces ----

    def _seed_chat(self, *, title: Optional[str] = None, context: Optional[str] = None) -> ChatSession:
        welcome = Message(
            id=new_message_id(),
            role="assistant",
            content=welcome_message(context=context),
            created_at=utc_now_iso(),
        )
        messages = [welcome]
        return ChatSession(
            id=new_id(),
            title=title or derive_title(messages),
            messages=messages,
            updated_at=utc_now_iso(),
        )

    def _activate_chat(self, chat: ChatSession) -> None:
        self.active_space_id = None
        self.active_chat_id = chat.id
        self._refresh_quiz_flag()

    def _activate_space(self, space: Space) -> None:
        self.active_space_id = space.id
        main = space.main_chat
        self.active_chat_id = main.id if main is not None else None
        self._refresh_quiz_flag()

    async def new_chat(self) -> Optional[ChatSession]:
        """Create a chat seeded with a welcome message; it becomes active once stored."""
        chat = self._seed_chat()
        try:
            saved = await self.chat_store.save(self.user_id, chat.id, chat.messages)
        except AppError as e:
            self.notify("error", f"Could not create chat: {e.message}")
            return None
        self.chats.insert(0, saved)
        self._activate_chat(saved)
        logger.info("chat created chat=%s", saved.id)
        return saved

    def _new_local_chat(self) -> ChatSession:
        """Fallback when the store is down: keep an active chat and let the queue retry the write."""
        chat = self._seed_chat()
        self.chats.insert(0, chat)
        self._activate_chat(chat)
        self._persist_chat(chat)
        return chat

    async def new_space(self, name: str, description: Optional[str] = None) -> Optional[Space]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Space name is required")
        now = utc_now_iso()
        space = Space(
            id=new_id(),
            name=name,
            description=description,
            chats=[self._seed_chat(title=name, context=name)],
            quizzes=[],
            created_at=now,
            updated_at=now,
        )
        try:
            await self.space_store.create(space)
        except AppError as e:
            self.notify("error", f"Could not create space: {e.message}")
            return None
        self.spaces.insert(0, space)
        self._activate_space(space)
        return space

    def select_chat(self, chat_id: str) -> ChatSession:
        chat = next((c for c in self.chats if c.id == chat_id), None)
        if chat is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        self._activate_chat(chat)
        return chat

    def select_space(self, space_id: str) -> Space:
        space = next((s for s in self.spaces if s.id == space_id), None)
        if space is None:
            raise NotFoundError(f"Space {space_id} not found")
        if space.main_chat is None:
            space.chats.append(self._seed_chat(title=space.name, context=space.name))
            self._persist_chat(space.chats[0])
        self._activate_space(space)
        return space

    def rename_chat(self, chat_id: str, title: str) -> ChatSession:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        chat = next((c for c in self.chats if c.id == chat_id), None)
        if chat is None:
            chat = next((c for s in self.spaces for c in s.chats if c.id == chat_id), None)
        if chat is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        chat.title = title
        chat.pinned_title = True
        self._touch(chat)
        self._persist_chat(chat)
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        chat = next((c for c in self.chats if c.id == chat_id), None)
        if chat is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        was_active = self.active_space_id is None and self.active_chat_id == chat_id
        self.chats.remove(chat)
        self.persistence.submit(f"chat {chat_id} delete", lambda: self.chat_store.delete(self.user_id, chat_id))
        if was_active and await self.new_chat() is None:
            self._new_local_chat()

    async def delete_space(self, space_id: str) -> None:
        space = next((s for s in self.spaces if s.id == space_id), None)
        if space is None:
            raise NotFoundError(f"Space {space_id} not found")
        self.spaces.remove(space)
        self.persistence.submit(f"space {space_id} delete", lambda: self.space_store.delete(space_id))
        if self.active_space_id == space_id:
            self.active_space_id = None
            if self.chats:
                self._activate_chat(self.chats[0])
            elif await self.new_chat() is None:
                self._new_local_chat()

    # ---- Conversation ----

    def set_draft(self, text: str) -> None:
        self.draft = text or ""

    async def submit(self, input_text: str) -> Optional[Message]:
        """
        Send user input. The user message is appended and saved before the model is called;
        on inference failure it stays in the transcript and an error notification is raised.
        """
        text = (input_text or "").strip()
        if not text:
            return None
        chat = self.active_chat
        if chat is None:
            chat = await self.new_chat() or self._new_local_chat()

        chat.messages.append(
            Message(id=new_message_id(), role="user", content=text, created_at=utc_now_iso())
        )
        self.draft = ""
        self._touch(chat)
        self._persist_chat(chat)

        self.is_generating = True
        try:
            reply = await self.llm.generate(context_turns(chat.messages))
        except AppError as e:
            self.notify("error", e.message)
            return None
        finally:
            self.is_generating = False

        # Appended to the chat that asked, even if the user switched away meanwhile.
        assistant = Message(id=new_message_id(), role="assistant", content=reply, created_at=utc_now_iso())
        chat.messages.append(assistant)
        self._touch(chat)
        self._persist_chat(chat)
        self._refresh_quiz_flag()
        return assistant

    # ---- Quizzes ----

    def _refresh_quiz_flag(self) -> None:
        chat = self.active_chat
        marker = chat.session_quiz_turn if chat is not None else None
        self.quiz_update_available = marker is not None and session_quiz_eligible(chat.messages, marker)

    def _quiz_history(self, chat: ChatSession):
        space = self._space_of(chat)
        return space.quizzes if space is not None else []

    async def _generate(self, scope: QuizScope, chat: ChatSession, target: Optional[Message] = None) -> Optional[QuizState]:
        try:
            return await self.quiz_engine.generate(
                scope, chat.messages, history=self._quiz_history(chat), target=target
            )
        except AppError as e:
            self.notify("error", f"Quiz generation failed: {e.message}")
            return None

    async def generate_message_quiz(self, message_id: str) -> Optional[Message]:
        chat = self._require_active_chat()
        message = next((m for m in chat.messages if m.id == message_id), None)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        if message.role != "assistant":
            raise ValidationError("Quizzes can only be generated from assistant messages")
        if message.quiz is not None:
            raise ValidationError("This message already has a quiz")

        quiz = await self._generate("message", chat, target=message)
        if quiz is None:
            return None
        message.quiz = quiz
        self._persist_chat(chat)
        return message

    async def generate_session_quiz(self) -> Optional[Message]:
        chat = self._require_active_chat()
        if not session_quiz_eligible(chat.messages, chat.session_quiz_turn):
            self.notify("info", "Keep chatting a little longer before the next session quiz.")
            return None

        quiz = await self._generate("session", chat)
        if quiz is None:
            return None
        message = Message(
            id=new_message_id(QUIZ_MESSAGE_PREFIX),
            role="assistant",
            content=SESSION_QUIZ_CONTENT,
            quiz=quiz,
            created_at=utc_now_iso(),
        )
        chat.messages.append(message)
        chat.session_quiz_turn = len(assistant_turns(chat.messages))
        self.quiz_update_available = False
        self._touch(chat)
        self._persist_chat(chat)
        return message

    def _find_live_quiz(self, chat: ChatSession, quiz_id: str) -> Message:
        candidates = [m for m in chat.messages if m.quiz is not None and m.quiz.id == quiz_id]
        if not candidates:
            raise NotFoundError(f"Quiz {quiz_id} not found in the active chat")
        in_progress = [m for m in candidates if not m.quiz.is_complete]
        return (in_progress or candidates)[-1]

    def answer_quiz(self, quiz_id: str, question_index: int, option_index: int) -> QuizState:
        """Answer the current question; on the last answer, score and record the quiz."""
        chat = self._require_active_chat()
        message = self._find_live_quiz(chat, quiz_id)
        quiz = message.quiz
        if not submit_answer(quiz, question_index, option_index):
            self._persist_chat(chat)
            return quiz

        self.notify("info", f"Quiz complete: {quiz.score} of {len(quiz.questions)} correct.")
        space = self._space_of(chat)
        if space is None:
            # No space to hold history: the finished quiz stays inline.
            logger.info("quiz completed outside a space quiz=%s score=%s", quiz.id, quiz.score)
            self._persist_chat(chat)
            return quiz

        entry = to_history_entry(quiz)
        upsert_quiz(space.quizzes, entry)
        space_id = space.id
        recorded = entry.model_copy(deep=True)
        self.persistence.submit(f"quiz {entry.id}", lambda: self.space_store.append_quiz(space_id, recorded))
        if quiz.type == "session":
            chat.messages.remove(message)
        self._touch(chat)
        self._persist_chat(chat)
        return quiz

    def retake_quiz(self, quiz_id: str) -> Message:
        space = self.active_space
        if space is None:
            raise ValidationError("Select a space to retake its quizzes")
        entry = next((q for q in space.quizzes if q.id == quiz_id), None)
        if entry is None:
            raise NotFoundError(f"Quiz {quiz_id} not found in this space")
        chat = self._require_active_chat()

        state = reset_for_retake(entry)
        message = Message(
            id=new_message_id(QUIZ_MESSAGE_PREFIX),
            role="assistant",
            content=RETAKE_QUIZ_CONTENT,
            quiz=state,
            created_at=utc_now_iso(),
        )
        chat.messages.append(message)
        self._touch(chat)
        self._persist_chat(chat)
        return message
