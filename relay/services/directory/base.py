from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

GLOBAL_INSTRUCTION_KEY = "global_instruction"

CONTACT_FIELDS = frozenset({"thread_id", "last_message_id", "ai_enabled"})

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ContactRecord:
    wa_id: str
    thread_id: Optional[int] = None
    last_message_id: Optional[str] = None
    ai_enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def check_contact_fields(fields: dict) -> None:
    unknown = set(fields) - CONTACT_FIELDS
    if unknown:
        raise ValueError(f"Unknown contact fields: {sorted(unknown)}")


class DirectoryStore(ABC):
    """Persistence of contacts, contact<->thread bindings and settings.

    Every mutating operation must be safe to apply twice: webhooks are
    delivered at least once and there is no transaction spanning a request.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    @abstractmethod
    def get_contact(self, wa_id: str) -> Optional[ContactRecord]:
        pass

    @abstractmethod
    def upsert_contact(self, wa_id: str, **fields) -> None:
        """Create the contact or merge only the given fields; always touches updated_at."""
        pass

    @abstractmethod
    def bind_thread(self, thread_id: int, wa_id: str) -> None:
        """Bind thread and contact one-to-one, dropping any previous partner of either side."""
        pass

    @abstractmethod
    def resolve_thread_for_contact(self, wa_id: str) -> Optional[int]:
        pass

    @abstractmethod
    def resolve_contact_for_thread(self, thread_id: int) -> Optional[str]:
        pass

    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_setting(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def list_contacts(self) -> List[ContactRecord]:
        """All contacts, most recently updated first."""
        pass

    def is_ai_enabled(self, wa_id: str) -> bool:
        contact = self.get_contact(wa_id)
        return contact.ai_enabled if contact else True

    def set_ai_status(self, wa_id: str, enabled: bool) -> None:
        self.upsert_contact(wa_id, ai_enabled=enabled)
