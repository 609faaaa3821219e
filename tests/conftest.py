from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from relay.database import init_db
from relay.services.capability_cache import GroupCapabilityCache
from relay.services.directory import RedisDirectoryStore, SqlDirectoryStore

ADMIN_CHAT_ID = "-1001234567890"


class StepClock:
    """Each call returns a time one second later than the previous one."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeRedisPipeline:
    def __init__(self, client):
        self._client = client
        self._calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self._calls.append((name, args, kwargs))
            return self

        return record

    def execute(self):
        results = [getattr(self._client, name)(*args, **kwargs) for name, args, kwargs in self._calls]
        self._calls = []
        return results


class FakeRedis:
    """Dict-backed stand-in for the subset of redis.Redis the directory store uses."""

    def __init__(self):
        self.strings = {}
        self.hashes = {}
        self.zsets = {}

    def get(self, key):
        return self.strings.get(key)

    def set(self, key, value):
        self.strings[key] = str(value)
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            for bucket in (self.strings, self.hashes, self.zsets):
                if key in bucket:
                    del bucket[key]
                    removed += 1
        return removed

    def exists(self, key):
        return int(key in self.strings or key in self.hashes or key in self.zsets)

    def hget(self, name, key):
        return self.hashes.get(name, {}).get(key)

    def hset(self, name, key=None, value=None, mapping=None):
        values = dict(mapping or {})
        if key is not None:
            values[key] = value
        self.hashes.setdefault(name, {}).update({k: str(v) for k, v in values.items()})
        return len(values)

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def zadd(self, name, mapping):
        self.zsets.setdefault(name, {}).update(mapping)
        return len(mapping)

    def zrevrange(self, name, start, end):
        members = sorted(self.zsets.get(name, {}).items(), key=lambda item: (item[1], item[0]), reverse=True)
        names = [member for member, _ in members]
        return names[start:] if end == -1 else names[start : end + 1]

    def pipeline(self, transaction=True):
        return FakeRedisPipeline(self)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def sql_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def sql_store(sql_session, clock):
    return SqlDirectoryStore(sql_session, clock=clock)


@pytest.fixture
def redis_store(clock):
    return RedisDirectoryStore(FakeRedis(), clock=clock)


@pytest.fixture(params=["sql", "redis"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def telegram():
    """Mock Telegram client: topics get id 555, sends succeed."""
    mock = Mock()
    mock.create_forum_topic.return_value = 555
    mock.send_message.return_value = {"message_id": 1}
    mock.get_chat.return_value = {"id": int(ADMIN_CHAT_ID), "is_forum": False}
    return mock


@pytest.fixture
def whatsapp():
    mock = Mock()
    mock.send_text.return_value = {"messages": [{"id": "wamid.out"}]}
    mock.mark_read.return_value = {"success": True}
    return mock


def make_cache(forum: bool) -> GroupCapabilityCache:
    cache = GroupCapabilityCache()
    cache.initialized = True
    cache.supports_sub_threads = forum
    return cache
