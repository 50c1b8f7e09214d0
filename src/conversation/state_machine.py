"""
Finite state machine for the chat booking dialogue.

A booking walks date -> time -> party size -> name -> [phone] -> commit,
one step per menu selection or text message. Back events return to the
date or time picker. The phone step only exists when the reservation
store has phone/email columns, so that transition is guarded on the
schema capabilities rather than checked at each call site.

Usage:
    sm = BookingStateMachine(capabilities)
    sm.transition(TransitionTrigger.START_BOOKING)
    assert sm.current_state == DialogueState.AWAITING_DATE
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from src.integrations.store import SchemaCapabilities

logger = logging.getLogger(__name__)


class DialogueState(str, Enum):
    """All possible states of one user's dialogue."""
    IDLE = "idle"
    AWAITING_DATE = "awaiting_date"
    AWAITING_TIME = "awaiting_time"
    AWAITING_PARTY_SIZE = "awaiting_party_size"
    AWAITING_NAME = "awaiting_name"
    AWAITING_PHONE = "awaiting_phone"
    COMMITTING = "committing"
    AWAITING_CAPACITY = "awaiting_capacity"


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    START_BOOKING = "start_booking"
    DATE_SELECTED = "date_selected"
    TIME_SELECTED = "time_selected"
    PARTY_SELECTED = "party_selected"
    NAME_ENTERED = "name_entered"
    PHONE_ENTERED = "phone_entered"
    BACK_TO_DATE = "back_to_date"
    BACK_TO_TIME = "back_to_time"
    COMMIT_FINISHED = "commit_finished"
    EDIT_CAPACITY = "edit_capacity"
    CAPACITY_ENTERED = "capacity_entered"
    CANCEL = "cancel"


def _collects_phone(capabilities: SchemaCapabilities) -> bool:
    return capabilities.has_phone_email


def _skips_phone(capabilities: SchemaCapabilities) -> bool:
    return not capabilities.has_phone_email


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: DialogueState
    to_state: DialogueState
    trigger: TransitionTrigger
    guard: Optional[Callable[[SchemaCapabilities], bool]] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


_CANCELLABLE = [
    DialogueState.AWAITING_DATE,
    DialogueState.AWAITING_TIME,
    DialogueState.AWAITING_PARTY_SIZE,
    DialogueState.AWAITING_NAME,
    DialogueState.AWAITING_PHONE,
    DialogueState.AWAITING_CAPACITY,
]


class BookingStateMachine:
    """
    Deterministic state machine controlling one user's dialogue.

    Every transition must be explicitly defined. An event that arrives in
    the wrong state (a stale button, a double tap) is rejected with an
    error listing what is allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Booking flow ---
        Transition(DialogueState.IDLE, DialogueState.AWAITING_DATE,
                   TransitionTrigger.START_BOOKING),
        Transition(DialogueState.AWAITING_DATE, DialogueState.AWAITING_TIME,
                   TransitionTrigger.DATE_SELECTED),
        Transition(DialogueState.AWAITING_TIME, DialogueState.AWAITING_PARTY_SIZE,
                   TransitionTrigger.TIME_SELECTED),
        Transition(DialogueState.AWAITING_PARTY_SIZE, DialogueState.AWAITING_NAME,
                   TransitionTrigger.PARTY_SELECTED),

        # --- Phone step only when the store has contact columns ---
        Transition(DialogueState.AWAITING_NAME, DialogueState.AWAITING_PHONE,
                   TransitionTrigger.NAME_ENTERED, guard=_collects_phone),
        Transition(DialogueState.AWAITING_NAME, DialogueState.COMMITTING,
                   TransitionTrigger.NAME_ENTERED, guard=_skips_phone),
        Transition(DialogueState.AWAITING_PHONE, DialogueState.COMMITTING,
                   TransitionTrigger.PHONE_ENTERED),

        # --- Back navigation ---
        Transition(DialogueState.AWAITING_TIME, DialogueState.AWAITING_DATE,
                   TransitionTrigger.BACK_TO_DATE),
        Transition(DialogueState.AWAITING_PARTY_SIZE, DialogueState.AWAITING_DATE,
                   TransitionTrigger.BACK_TO_DATE),
        Transition(DialogueState.AWAITING_PARTY_SIZE, DialogueState.AWAITING_TIME,
                   TransitionTrigger.BACK_TO_TIME),

        # --- Commit always ends the dialogue ---
        Transition(DialogueState.COMMITTING, DialogueState.IDLE,
                   TransitionTrigger.COMMIT_FINISHED),

        # --- Operator capacity edit ---
        Transition(DialogueState.IDLE, DialogueState.AWAITING_CAPACITY,
                   TransitionTrigger.EDIT_CAPACITY),
        Transition(DialogueState.AWAITING_CAPACITY, DialogueState.IDLE,
                   TransitionTrigger.CAPACITY_ENTERED),
    ] + [
        Transition(state, DialogueState.IDLE, TransitionTrigger.CANCEL)
        for state in _CANCELLABLE
    ]

    def __init__(self, capabilities: Optional[SchemaCapabilities] = None) -> None:
        self.capabilities = capabilities or SchemaCapabilities()
        self._current_state = DialogueState.IDLE

    @property
    def current_state(self) -> DialogueState:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> DialogueState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new dialogue state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        target = self.target_of(trigger)
        if target is None:
            valid = [t.value for t in self.get_valid_triggers()]
            raise InvalidTransitionError(
                f"No valid transition from '{self._current_state.value}' "
                f"with trigger '{trigger.value}'. Valid triggers: {valid}"
            )

        old_state = self._current_state
        self._current_state = target
        logger.debug(
            "State transition: %s -> %s (trigger: %s)",
            old_state.value, target.value, trigger.value,
        )
        return target

    def target_of(self, trigger: TransitionTrigger) -> Optional[DialogueState]:
        """State ``trigger`` would lead to from here, or None if it is not allowed."""
        for t in self.TRANSITIONS:
            if t.from_state != self._current_state or t.trigger != trigger:
                continue
            if t.guard is None or t.guard(self.capabilities):
                return t.to_state
        return None

    def can_transition(self, trigger: TransitionTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [
            t.trigger for t in self.TRANSITIONS
            if t.from_state == self._current_state
            and (t.guard is None or t.guard(self.capabilities))
        ]
