from dataclasses import replace

import pytest

from relay.services.directory import GLOBAL_INSTRUCTION_KEY


def _without_timestamps(record):
    return replace(record, created_at=None, updated_at=None)


class TestUpsertContact:
    def test_creates_contact_with_defaults(self, store):
        store.upsert_contact("6281234", last_message_id="wamid.1")

        contact = store.get_contact("6281234")
        assert contact.wa_id == "6281234"
        assert contact.last_message_id == "wamid.1"
        assert contact.thread_id is None
        assert contact.ai_enabled is True
        assert contact.updated_at is not None

    def test_merges_only_given_fields(self, store):
        store.upsert_contact("6281234", last_message_id="wamid.1", ai_enabled=False)
        store.upsert_contact("6281234", last_message_id="wamid.2")

        contact = store.get_contact("6281234")
        assert contact.last_message_id == "wamid.2"
        assert contact.ai_enabled is False

    def test_is_idempotent(self, store):
        store.upsert_contact("6281234", last_message_id="wamid.1")
        first = store.get_contact("6281234")
        store.upsert_contact("6281234", last_message_id="wamid.1")
        second = store.get_contact("6281234")

        assert _without_timestamps(first) == _without_timestamps(second)

    def test_always_refreshes_updated_at(self, store):
        store.upsert_contact("6281234", last_message_id="wamid.1")
        first = store.get_contact("6281234")
        store.upsert_contact("6281234")
        second = store.get_contact("6281234")

        assert second.updated_at > first.updated_at

    def test_rejects_unknown_fields(self, store):
        with pytest.raises(ValueError):
            store.upsert_contact("6281234", nickname="Budi")

    def test_missing_contact_is_none(self, store):
        assert store.get_contact("000") is None


class TestBindThread:
    def test_binds_both_directions(self, store):
        store.bind_thread(10, "6281234")

        assert store.resolve_thread_for_contact("6281234") == 10
        assert store.resolve_contact_for_thread(10) == "6281234"

    def test_rebinding_contact_drops_old_thread(self, store):
        store.bind_thread(10, "6281234")
        store.bind_thread(20, "6281234")

        assert store.resolve_thread_for_contact("6281234") == 20
        assert store.resolve_contact_for_thread(10) is None
        assert store.resolve_contact_for_thread(20) == "6281234"

    def test_rebinding_thread_drops_old_contact(self, store):
        store.bind_thread(10, "111")
        store.bind_thread(10, "222")

        assert store.resolve_contact_for_thread(10) == "222"
        assert store.resolve_thread_for_contact("222") == 10
        assert store.resolve_thread_for_contact("111") is None

    def test_replay_is_harmless(self, store):
        store.bind_thread(10, "6281234")
        store.bind_thread(10, "6281234")

        assert store.resolve_thread_for_contact("6281234") == 10
        assert store.resolve_contact_for_thread(10) == "6281234"

    def test_keeps_existing_contact_fields(self, store):
        store.upsert_contact("6281234", last_message_id="wamid.1", ai_enabled=False)
        store.bind_thread(10, "6281234")

        contact = store.get_contact("6281234")
        assert contact.thread_id == 10
        assert contact.last_message_id == "wamid.1"
        assert contact.ai_enabled is False

    def test_unknown_thread_resolves_to_none(self, store):
        assert store.resolve_contact_for_thread(999) is None
        assert store.resolve_thread_for_contact("nobody") is None


class TestAiStatus:
    def test_defaults_to_enabled_for_unknown_contact(self, store):
        assert store.is_ai_enabled("6281234") is True

    def test_toggle_off_and_on(self, store):
        store.set_ai_status("6281234", False)
        assert store.is_ai_enabled("6281234") is False

        store.set_ai_status("6281234", True)
        assert store.is_ai_enabled("6281234") is True


class TestSettings:
    def test_missing_setting_is_none(self, store):
        assert store.get_setting(GLOBAL_INSTRUCTION_KEY) is None

    def test_last_write_wins(self, store):
        store.set_setting(GLOBAL_INSTRUCTION_KEY, "Be polite")
        store.set_setting(GLOBAL_INSTRUCTION_KEY, "Answer in Indonesian")

        assert store.get_setting(GLOBAL_INSTRUCTION_KEY) == "Answer in Indonesian"


class TestListContacts:
    def test_most_recently_updated_first(self, store):
        store.upsert_contact("111")
        store.upsert_contact("222")
        store.upsert_contact("333")
        store.upsert_contact("111", last_message_id="wamid.9")

        assert [c.wa_id for c in store.list_contacts()] == ["111", "333", "222"]

    def test_empty(self, store):
        assert store.list_contacts() == []
