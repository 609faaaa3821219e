from typing import Iterator, Optional

import redis
from fastapi import Depends, Request

from relay.config import settings
from relay.database import SessionLocal
from relay.services.ai_gate import AIGate
from relay.services.capability_cache import GroupCapabilityCache
from relay.services.directory import DirectoryStore, RedisDirectoryStore, SqlDirectoryStore
from relay.services.llm import GeminiProvider, LLMProvider
from relay.services.message_router import MessageRouter
from relay.services.telegram_service import TelegramService
from relay.services.whatsapp_service import WhatsAppService

_redis_client = None
_redis_url = None


def get_redis_client():
    global _redis_client, _redis_url
    if _redis_client is None or _redis_url != settings.redis_url:
        _redis_url = settings.redis_url
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    return _redis_client


def get_directory_store() -> Iterator[DirectoryStore]:
    """Directory store for the backend chosen by STORAGE_BACKEND."""
    if settings.storage_backend == "redis":
        yield RedisDirectoryStore(get_redis_client())
        return

    db = SessionLocal()
    try:
        yield SqlDirectoryStore(db)
    finally:
        db.close()


def get_telegram_service() -> TelegramService:
    return TelegramService(settings.telegram_bot_token, timeout=settings.http_timeout_seconds)


def get_whatsapp_service() -> WhatsAppService:
    return WhatsAppService(
        access_token=settings.whatsapp_access_token,
        phone_number_id=settings.whatsapp_phone_number_id,
        api_version=settings.whatsapp_api_version,
        timeout=settings.http_timeout_seconds,
    )


def get_llm_provider() -> Optional[LLMProvider]:
    if not settings.gemini_api_key:
        return None
    return GeminiProvider(api_key=settings.gemini_api_key, default_model=settings.gemini_model)


def get_capability_cache(request: Request) -> GroupCapabilityCache:
    return request.app.state.capability_cache


def get_message_router(
    store: DirectoryStore = Depends(get_directory_store),
    telegram: TelegramService = Depends(get_telegram_service),
    whatsapp: WhatsAppService = Depends(get_whatsapp_service),
    capabilities: GroupCapabilityCache = Depends(get_capability_cache),
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
) -> MessageRouter:
    return MessageRouter(
        store=store,
        telegram=telegram,
        whatsapp=whatsapp,
        capabilities=capabilities,
        ai_gate=AIGate(store, provider),
        admin_chat_id=settings.telegram_admin_group_id,
        display_timezone=settings.display_timezone,
    )
