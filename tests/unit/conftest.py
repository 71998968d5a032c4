"""
Unit test fixtures. In-memory store and scripted LLM; no network.
"""
import pytest

from api.services.chat_store import ChatRecordStore
from api.services.conversation_service import ConversationController
from api.services.space_store import SpaceRecordStore


@pytest.fixture
def chat_store(kv) -> ChatRecordStore:
    return ChatRecordStore(kv)


@pytest.fixture
def space_store(kv) -> SpaceRecordStore:
    return SpaceRecordStore(kv)


@pytest.fixture
def controller(fake_llm, chat_store, space_store) -> ConversationController:
    """Workspace controller for the guest user, not yet refreshed."""
    return ConversationController(
        user_id="guest",
        llm=fake_llm,
        chat_store=chat_store,
        space_store=space_store,
    )
