from relay.services.directory.base import (
    GLOBAL_INSTRUCTION_KEY,
    ContactRecord,
    DirectoryStore,
)
from relay.services.directory.redis_store import RedisDirectoryStore
from relay.services.directory.sql_store import SqlDirectoryStore

__all__ = [
    "GLOBAL_INSTRUCTION_KEY",
    "ContactRecord",
    "DirectoryStore",
    "RedisDirectoryStore",
    "SqlDirectoryStore",
]
