from src.conversation.session_store import ConversationSession, SessionStore
from src.conversation.state_machine import (
    BookingStateMachine,
    DialogueState,
    InvalidTransitionError,
    TransitionTrigger,
)

__all__ = [
    "BookingStateMachine",
    "DialogueState",
    "TransitionTrigger",
    "InvalidTransitionError",
    "ConversationSession",
    "SessionStore",
]
