import re
from typing import Optional

from relay.logging_config import get_logger
from relay.schemas.telegram import TelegramMessage
from relay.services.capability_cache import GroupCapabilityCache
from relay.services.directory import DirectoryStore
from relay.services.telegram_service import (
    TelegramAPIError,
    TelegramService,
    build_topic_name,
    format_thread_intro,
)

logger = get_logger("thread_resolver")

TOPIC_CONTACT_PATTERN = re.compile(r"\((\d+)\)$")


def contact_from_topic_name(name: Optional[str]) -> Optional[str]:
    """Extract the number from a topic title such as ``"Budi (6281234)"``."""
    if not name:
        return None
    match = TOPIC_CONTACT_PATTERN.search(name.strip())
    return match.group(1) if match else None


class ThreadResolver:
    """Maps WhatsApp contacts to forum topics in the admin chat."""

    def __init__(
        self,
        store: DirectoryStore,
        telegram: TelegramService,
        capabilities: GroupCapabilityCache,
        chat_id: str,
    ):
        self.store = store
        self.telegram = telegram
        self.capabilities = capabilities
        self.chat_id = chat_id

    def resolve_or_create(self, wa_id: str, display_name: str) -> Optional[int]:
        """Topic for the contact, created on first use. None when the chat has no topics."""
        if not self.capabilities.ensure_initialized(self.telegram, self.chat_id):
            return None

        thread_id = self.store.resolve_thread_for_contact(wa_id)
        if thread_id:
            return thread_id

        return self.create_thread(wa_id, display_name)

    def create_thread(self, wa_id: str, display_name: str) -> int:
        thread_id = self.telegram.create_forum_topic(self.chat_id, build_topic_name(display_name, wa_id))
        self.store.bind_thread(thread_id, wa_id)
        logger.info(
            "Thread created",
            extra={"context": {"wa_id": wa_id, "thread_id": thread_id}},
        )

        self.telegram.send_message(
            chat_id=self.chat_id,
            text=format_thread_intro(display_name, wa_id),
            message_thread_id=thread_id,
        )
        return thread_id

    def send_to_thread(
        self,
        wa_id: str,
        display_name: str,
        text: str,
        thread_id: Optional[int],
    ) -> Optional[int]:
        """Send into the contact's topic, recreating it once if Telegram lost it.

        Returns the thread id the message finally went to. A failure on the
        retry propagates.
        """
        try:
            self.telegram.send_message(chat_id=self.chat_id, text=text, message_thread_id=thread_id)
            return thread_id
        except TelegramAPIError as e:
            if thread_id is None or not e.is_stale_thread:
                raise
            logger.warning(
                "Thread is gone, recreating",
                extra={"context": {"wa_id": wa_id, "thread_id": thread_id, "error": e.description}},
            )

        new_thread_id = self.create_thread(wa_id, display_name)
        self.telegram.send_message(chat_id=self.chat_id, text=text, message_thread_id=new_thread_id)
        return new_thread_id

    def recover_contact(self, thread_id: int, reply_to_message: Optional[TelegramMessage]) -> Optional[str]:
        """Rebind an orphaned topic using the number in its title, if it has one."""
        created = reply_to_message.forum_topic_created if reply_to_message else None
        wa_id = contact_from_topic_name(created.name if created else None)
        if not wa_id:
            logger.warning(
                "Thread has no contact and none could be recovered",
                extra={"context": {"thread_id": thread_id}},
            )
            return None

        self.store.bind_thread(thread_id, wa_id)
        logger.info(
            "Recovered contact from topic name",
            extra={"context": {"wa_id": wa_id, "thread_id": thread_id}},
        )
        return wa_id
