from relay.services.state_machine import (
    InvalidTransitionError,
    MessageStage,
    can_transition,
    transition,
)

__all__ = ["MessageStage", "InvalidTransitionError", "can_transition", "transition"]
