import pytest
from relay.services.state_machine import (
    InvalidTransitionError,
    MessageStage,
    can_transition,
    is_terminal,
    transition,
)


class TestValidTransitions:
    def test_received_to_contact_resolved(self):
        result = transition(MessageStage.RECEIVED, MessageStage.CONTACT_RESOLVED)
        assert result == MessageStage.CONTACT_RESOLVED

    def test_thread_resolved_to_forwarded(self):
        result = transition(MessageStage.THREAD_RESOLVED, MessageStage.FORWARDED)
        assert result == MessageStage.FORWARDED

    def test_forwarded_to_ai_forwarded(self):
        result = transition(MessageStage.FORWARDED, MessageStage.AI_FORWARDED)
        assert result == MessageStage.AI_FORWARDED

    def test_forwarded_to_read_marked(self):
        result = transition(MessageStage.FORWARDED, MessageStage.READ_MARKED)
        assert result == MessageStage.READ_MARKED

    def test_ai_forwarded_to_read_marked(self):
        result = transition(MessageStage.AI_FORWARDED, MessageStage.READ_MARKED)
        assert result == MessageStage.READ_MARKED

    def test_reported_from_any_open_stage(self):
        for stage in (MessageStage.RECEIVED, MessageStage.FORWARDED, MessageStage.AI_FORWARDED):
            assert transition(stage, MessageStage.REPORTED) == MessageStage.REPORTED


class TestInvalidTransitions:
    def test_skip_thread_resolution(self):
        with pytest.raises(InvalidTransitionError):
            transition(MessageStage.CONTACT_RESOLVED, MessageStage.FORWARDED)

    def test_backwards(self):
        with pytest.raises(InvalidTransitionError):
            transition(MessageStage.FORWARDED, MessageStage.RECEIVED)

    def test_same_stage(self):
        with pytest.raises(InvalidTransitionError):
            transition(MessageStage.FORWARDED, MessageStage.FORWARDED)

    def test_nothing_leaves_terminal_stages(self):
        with pytest.raises(InvalidTransitionError):
            transition(MessageStage.READ_MARKED, MessageStage.REPORTED)
        with pytest.raises(InvalidTransitionError):
            transition(MessageStage.REPORTED, MessageStage.READ_MARKED)

    def test_error_names_both_stages(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(MessageStage.RECEIVED, MessageStage.READ_MARKED)
        assert "received -> read_marked" in str(exc_info.value)


class TestCanTransition:
    def test_valid_returns_true(self):
        assert can_transition(MessageStage.RECEIVED, MessageStage.CONTACT_RESOLVED) is True

    def test_invalid_returns_false(self):
        assert can_transition(MessageStage.RECEIVED, MessageStage.FORWARDED) is False

    def test_terminal_stages(self):
        assert is_terminal(MessageStage.READ_MARKED) is True
        assert is_terminal(MessageStage.REPORTED) is True
        assert is_terminal(MessageStage.FORWARDED) is False
