from enum import Enum


class MessageStage(str, Enum):
    RECEIVED = "received"
    CONTACT_RESOLVED = "contact_resolved"
    THREAD_RESOLVED = "thread_resolved"
    FORWARDED = "forwarded"
    AI_FORWARDED = "ai_forwarded"
    READ_MARKED = "read_marked"
    REPORTED = "reported"


# REPORTED is reachable from every non-terminal stage.
VALID_TRANSITIONS = {
    MessageStage.RECEIVED: [MessageStage.CONTACT_RESOLVED],
    MessageStage.CONTACT_RESOLVED: [MessageStage.THREAD_RESOLVED],
    MessageStage.THREAD_RESOLVED: [MessageStage.FORWARDED],
    MessageStage.FORWARDED: [MessageStage.AI_FORWARDED, MessageStage.READ_MARKED],
    MessageStage.AI_FORWARDED: [MessageStage.READ_MARKED],
    MessageStage.READ_MARKED: [],
    MessageStage.REPORTED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_stage: MessageStage, to_stage: MessageStage):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(f"Invalid transition: {from_stage.value} -> {to_stage.value}")


def is_terminal(stage: MessageStage) -> bool:
    return not VALID_TRANSITIONS.get(stage)


def can_transition(from_stage: MessageStage, to_stage: MessageStage) -> bool:
    """Check if transition is valid."""
    if to_stage == MessageStage.REPORTED:
        return not is_terminal(from_stage)
    return to_stage in VALID_TRANSITIONS.get(from_stage, [])


def transition(from_stage: MessageStage, to_stage: MessageStage) -> MessageStage:
    """Perform stage transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_stage, to_stage):
        raise InvalidTransitionError(from_stage, to_stage)
    return to_stage
