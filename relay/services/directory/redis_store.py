from datetime import datetime
from typing import List, Optional

from relay.logging_config import get_logger
from relay.services.directory.base import (
    Clock,
    ContactRecord,
    DirectoryStore,
    check_contact_fields,
)

logger = get_logger("directory.redis")

KEY_PREFIX = "relay"
CONTACTS_BY_UPDATE_KEY = f"{KEY_PREFIX}:contacts:by_update"


def _contact_key(wa_id: str) -> str:
    return f"{KEY_PREFIX}:contact:{wa_id}"


def _thread_key(thread_id: int) -> str:
    return f"{KEY_PREFIX}:thread:{thread_id}"


def _setting_key(key: str) -> str:
    return f"{KEY_PREFIX}:setting:{key}"


def _encode_field(name: str, value) -> str:
    if name == "ai_enabled":
        return "1" if value else "0"
    if value is None:
        return ""
    return str(value)


def _to_record(wa_id: str, data: dict) -> ContactRecord:
    thread_id = data.get("thread_id") or None
    created_at = data.get("created_at")
    updated_at = data.get("updated_at")
    return ContactRecord(
        wa_id=wa_id,
        thread_id=int(thread_id) if thread_id else None,
        last_message_id=data.get("last_message_id") or None,
        ai_enabled=data.get("ai_enabled", "1") == "1",
        created_at=datetime.fromisoformat(created_at) if created_at else None,
        updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
    )


class RedisDirectoryStore(DirectoryStore):
    """Directory store on plain Redis keys.

    Layout:
        relay:contact:<wa_id>      hash of contact fields
        relay:thread:<thread_id>   string holding the bound wa_id
        relay:setting:<key>        string
        relay:contacts:by_update   sorted set of wa_id scored by updated_at

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, client, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.client = client

    def _contact_mapping(self, wa_id: str, fields: dict, now: datetime) -> dict:
        mapping = {name: _encode_field(name, value) for name, value in fields.items()}
        mapping["updated_at"] = now.isoformat()
        if not self.client.exists(_contact_key(wa_id)):
            mapping.setdefault("ai_enabled", "1")
            mapping["created_at"] = now.isoformat()
        return mapping

    def get_contact(self, wa_id: str) -> Optional[ContactRecord]:
        data = self.client.hgetall(_contact_key(wa_id))
        return _to_record(wa_id, data) if data else None

    def upsert_contact(self, wa_id: str, **fields) -> None:
        check_contact_fields(fields)
        now = self.clock()
        mapping = self._contact_mapping(wa_id, fields, now)

        pipe = self.client.pipeline(transaction=True)
        pipe.hset(_contact_key(wa_id), mapping=mapping)
        pipe.zadd(CONTACTS_BY_UPDATE_KEY, {wa_id: now.timestamp()})
        pipe.execute()

    def bind_thread(self, thread_id: int, wa_id: str) -> None:
        now = self.clock()
        previous_contact = self.client.get(_thread_key(thread_id))
        previous_thread = self.client.hget(_contact_key(wa_id), "thread_id")
        mapping = self._contact_mapping(wa_id, {"thread_id": thread_id}, now)

        pipe = self.client.pipeline(transaction=True)
        if previous_thread and previous_thread != str(thread_id):
            pipe.delete(_thread_key(int(previous_thread)))
        if previous_contact and previous_contact != wa_id:
            pipe.hset(_contact_key(previous_contact), "thread_id", "")
        pipe.set(_thread_key(thread_id), wa_id)
        pipe.hset(_contact_key(wa_id), mapping=mapping)
        pipe.zadd(CONTACTS_BY_UPDATE_KEY, {wa_id: now.timestamp()})
        pipe.execute()
        logger.info(f"Bound thread {thread_id} to contact {wa_id}")

    def resolve_thread_for_contact(self, wa_id: str) -> Optional[int]:
        thread_id = self.client.hget(_contact_key(wa_id), "thread_id")
        return int(thread_id) if thread_id else None

    def resolve_contact_for_thread(self, thread_id: int) -> Optional[str]:
        return self.client.get(_thread_key(thread_id)) or None

    def get_setting(self, key: str) -> Optional[str]:
        return self.client.get(_setting_key(key))

    def set_setting(self, key: str, value: str) -> None:
        self.client.set(_setting_key(key), value)

    def list_contacts(self) -> List[ContactRecord]:
        records = []
        for wa_id in self.client.zrevrange(CONTACTS_BY_UPDATE_KEY, 0, -1):
            data = self.client.hgetall(_contact_key(wa_id))
            if data:
                records.append(_to_record(wa_id, data))
        return records
