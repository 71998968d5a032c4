from fastapi import Request

from api.config import Settings
from api.services.chat_store import ChatRecordStore
from api.services.conversation_service import ConversationController
from api.services.space_store import SpaceRecordStore
from api.utils.logger import configure_logging
from infra.kv.memory_store import InMemoryStore
from infra.kv.store import KeyValueStore
from infra.llm.base import LLM
from infra.llm.gemini import GeminiLLM

logger = configure_logging()


def build_kv_store(settings: Settings) -> KeyValueStore:
    if settings.kv_url:
        from infra.kv.redis_store import RedisStore

        return RedisStore(settings.kv_url)
    logger.warning("KV_URL is not set; using the in-memory store (data is lost on restart)")
    return InMemoryStore()


def build_llm(settings: Settings) -> LLM:
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; inference calls will fail")
    return GeminiLLM(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout,
    )


def build_controller(settings: Settings, kv: KeyValueStore, llm: LLM) -> ConversationController:
    return ConversationController(
        user_id=settings.guest_user_id,
        llm=llm,
        chat_store=ChatRecordStore(kv),
        space_store=SpaceRecordStore(kv),
    )


# ---- Request dependencies (everything lives on app.state, set up in the lifespan) ----

def get_llm(request: Request) -> LLM:
    return request.app.state.llm


def get_chat_store(request: Request) -> ChatRecordStore:
    return request.app.state.chat_store


def get_space_store(request: Request) -> SpaceRecordStore:
    return request.app.state.space_store


def get_controller(request: Request) -> ConversationController:
    return request.app.state.controller
