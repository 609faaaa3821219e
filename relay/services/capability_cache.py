from relay.logging_config import get_logger
from relay.services.telegram_service import TelegramService

logger = get_logger("capability_cache")


class GroupCapabilityCache:
    """Whether the admin chat is a forum (supports topics), checked once per process.

    Concurrent cold starts may each run the check; ``getChat`` is read-only so
    the only cost is a duplicate request.
    """

    def __init__(self):
        self.initialized = False
        self.supports_sub_threads = False

    def ensure_initialized(self, telegram: TelegramService, chat_id: str) -> bool:
        """Return ``supports_sub_threads``, querying Telegram on first use.

        A failed check raises and leaves the cache uninitialized so the next
        message retries it.
        """
        if not self.initialized:
            chat = telegram.get_chat(chat_id) or {}
            self.supports_sub_threads = chat.get("is_forum") is True
            self.initialized = True
            logger.info(
                f"Admin chat is {'forum' if self.supports_sub_threads else 'regular'} type",
                extra={"context": {"chat_id": chat_id}},
            )
        return self.supports_sub_threads

    def reset(self) -> None:
        self.initialized = False
        self.supports_sub_threads = False
