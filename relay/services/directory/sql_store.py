from typing import List, Optional

from sqlalchemy.orm import Session

from relay.logging_config import get_logger
from relay.models import Contact, Setting, ThreadBinding
from relay.services.directory.base import (
    Clock,
    ContactRecord,
    DirectoryStore,
    check_contact_fields,
)

logger = get_logger("directory.sql")


def _to_record(contact: Contact) -> ContactRecord:
    return ContactRecord(
        wa_id=contact.wa_id,
        thread_id=contact.thread_id,
        last_message_id=contact.last_message_id,
        ai_enabled=bool(contact.ai_enabled),
        created_at=contact.created_at,
        updated_at=contact.updated_at,
    )


class SqlDirectoryStore(DirectoryStore):
    """Directory store on the relational tables ``contacts``, ``threads`` and ``settings``."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.db = db

    def _get(self, wa_id: str) -> Optional[Contact]:
        return self.db.query(Contact).filter(Contact.wa_id == wa_id).first()

    def _apply_contact(self, wa_id: str, fields: dict) -> Contact:
        now = self.clock()
        contact = self._get(wa_id)
        if contact is None:
            contact = Contact(
                wa_id=wa_id,
                thread_id=fields.get("thread_id"),
                last_message_id=fields.get("last_message_id"),
                ai_enabled=fields.get("ai_enabled", True),
                created_at=now,
                updated_at=now,
            )
            self.db.add(contact)
        else:
            for name, value in fields.items():
                setattr(contact, name, value)
            contact.updated_at = now
        self.db.flush()
        return contact

    def get_contact(self, wa_id: str) -> Optional[ContactRecord]:
        contact = self._get(wa_id)
        return _to_record(contact) if contact else None

    def upsert_contact(self, wa_id: str, **fields) -> None:
        check_contact_fields(fields)
        self._apply_contact(wa_id, fields)
        self.db.commit()

    def bind_thread(self, thread_id: int, wa_id: str) -> None:
        now = self.clock()

        # Contacts other than wa_id that still point at this thread lose it.
        (
            self.db.query(Contact)
            .filter(Contact.thread_id == thread_id, Contact.wa_id != wa_id)
            .update({Contact.thread_id: None}, synchronize_session=False)
        )
        # Older threads of wa_id are no longer live.
        (
            self.db.query(ThreadBinding)
            .filter(ThreadBinding.wa_id == wa_id, ThreadBinding.thread_id != thread_id)
            .delete(synchronize_session=False)
        )

        self._apply_contact(wa_id, {"thread_id": thread_id})

        binding = self.db.query(ThreadBinding).filter(ThreadBinding.thread_id == thread_id).first()
        if binding is None:
            self.db.add(ThreadBinding(thread_id=thread_id, wa_id=wa_id, created_at=now))
        else:
            binding.wa_id = wa_id

        self.db.commit()
        logger.info(f"Bound thread {thread_id} to contact {wa_id}")

    def resolve_thread_for_contact(self, wa_id: str) -> Optional[int]:
        contact = self._get(wa_id)
        return contact.thread_id if contact else None

    def resolve_contact_for_thread(self, thread_id: int) -> Optional[str]:
        binding = self.db.query(ThreadBinding).filter(ThreadBinding.thread_id == thread_id).first()
        return binding.wa_id if binding else None

    def get_setting(self, key: str) -> Optional[str]:
        setting = self.db.query(Setting).filter(Setting.key == key).first()
        return setting.value if setting else None

    def set_setting(self, key: str, value: str) -> None:
        setting = self.db.query(Setting).filter(Setting.key == key).first()
        if setting is None:
            self.db.add(Setting(key=key, value=value, updated_at=self.clock()))
        else:
            setting.value = value
            setting.updated_at = self.clock()
        self.db.commit()

    def list_contacts(self) -> List[ContactRecord]:
        contacts = self.db.query(Contact).order_by(Contact.updated_at.desc()).all()
        return [_to_record(contact) for contact in contacts]
