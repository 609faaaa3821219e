import pytest

from relay.services.commands import (
    AI_USAGE,
    AI_USAGE_FORUM,
    REPLY_USAGE,
    STATUS_USAGE,
    MalformedCommand,
    Reply,
    SetInstruction,
    Status,
    ToggleAi,
    Unrecognized,
    parse_admin_text,
    usage_for,
)


class TestAiCommand:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("/ai 6281234 off", ToggleAi(target="6281234", enabled=False)),
            ("/ai 6281234 on", ToggleAi(target="6281234", enabled=True)),
            ("/AI 6281234 ON", ToggleAi(target="6281234", enabled=True)),
            ("/ai@RelayBot 6281234 off", ToggleAi(target="6281234", enabled=False)),
            ("/ai off", ToggleAi(target=None, enabled=False)),
            ("  /ai   on  ", ToggleAi(target=None, enabled=True)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_admin_text(text) == expected

    @pytest.mark.parametrize("text", ["/ai", "/ai maybe", "/ai 6281234", "/ai budi off", "/ai 6281234 off now"])
    def test_malformed(self, text):
        assert parse_admin_text(text) == MalformedCommand("ai")


class TestInstructionCommand:
    def test_set_keeps_multiline_text(self):
        assert parse_admin_text("/instruction Be polite.\nAnswer in Indonesian.") == SetInstruction(
            text="Be polite.\nAnswer in Indonesian."
        )

    def test_without_text_shows_current(self):
        assert parse_admin_text("/instruction") == SetInstruction(text=None)


class TestStatusCommand:
    def test_all_contacts(self):
        assert parse_admin_text("/status") == Status()

    def test_single_contact(self):
        assert parse_admin_text("/status 6281234") == Status(target="6281234")

    def test_malformed(self):
        assert parse_admin_text("/status budi") == MalformedCommand("status")


class TestReplyForms:
    def test_reply_command(self):
        assert parse_admin_text("/reply 6281234 hi there") == Reply(target="6281234", body="hi there")

    def test_reply_command_keeps_newlines(self):
        assert parse_admin_text("/reply 6281234 line one\nline two") == Reply(
            target="6281234", body="line one\nline two"
        )

    def test_mention(self):
        assert parse_admin_text("@6281234 hello") == Reply(target="6281234", body="hello")

    def test_reply_without_body(self):
        assert parse_admin_text("/reply 6281234") == MalformedCommand("reply")

    def test_mention_of_username_is_plain_text(self):
        assert parse_admin_text("@budi hello") == Unrecognized(text="@budi hello")


class TestUnrecognized:
    def test_plain_text(self):
        assert parse_admin_text("thanks, noted") == Unrecognized(text="thanks, noted")

    def test_unknown_command(self):
        result = parse_admin_text("/start")
        assert isinstance(result, Unrecognized)
        assert result.is_command is True

    def test_empty(self):
        assert parse_admin_text("") == Unrecognized(text="")


class TestUsage:
    def test_ai_usage_depends_on_chat_mode(self):
        assert usage_for("ai", forum_mode=False) == AI_USAGE
        assert usage_for("ai", forum_mode=True) == AI_USAGE_FORUM

    def test_status_and_reply(self):
        assert usage_for("status", forum_mode=False) == STATUS_USAGE
        assert usage_for("reply", forum_mode=True) == REPLY_USAGE
