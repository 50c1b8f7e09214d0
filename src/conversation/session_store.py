"""
Per-user dialogue sessions with an inactivity expiry.

A session pairs a BookingStateMachine with the payload for its current
state. Sessions are dropped after a successful or failed commit, when a
new booking attempt overwrites them, or once they sit idle past the TTL.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Hashable, Optional

from src.config import settings
from src.conversation.state_machine import (
    BookingStateMachine,
    DialogueState,
    InvalidTransitionError,
    TransitionTrigger,
)
from src.integrations.store import SchemaCapabilities
from src.schemas.session_schema import (
    AwaitingCapacity,
    AwaitingDate,
    AwaitingName,
    AwaitingPartySize,
    AwaitingPhone,
    AwaitingTime,
    Committing,
    Idle,
    SessionPayload,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

STATE_PAYLOADS: dict[DialogueState, type] = {
    DialogueState.IDLE: Idle,
    DialogueState.AWAITING_DATE: AwaitingDate,
    DialogueState.AWAITING_TIME: AwaitingTime,
    DialogueState.AWAITING_PARTY_SIZE: AwaitingPartySize,
    DialogueState.AWAITING_NAME: AwaitingName,
    DialogueState.AWAITING_PHONE: AwaitingPhone,
    DialogueState.COMMITTING: Committing,
    DialogueState.AWAITING_CAPACITY: AwaitingCapacity,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationSession:
    """One user's in-progress dialogue."""

    user_id: Hashable
    machine: BookingStateMachine
    payload: SessionPayload = field(default_factory=Idle)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def state(self) -> DialogueState:
        return self.machine.current_state

    def advance(self, trigger: TransitionTrigger, payload: SessionPayload) -> DialogueState:
        """Fire ``trigger`` and store the payload for the state it leads to.

        Raises InvalidTransitionError if the trigger is not allowed, or if
        the payload does not match the resulting state.
        """
        target = self.machine.target_of(trigger)
        if target is not None:
            expected = STATE_PAYLOADS[target]
            if not isinstance(payload, expected):
                raise InvalidTransitionError(
                    f"State '{target.value}' needs a {expected.__name__} payload, "
                    f"got {type(payload).__name__}"
                )
        new_state = self.machine.transition(trigger)
        self.payload = payload
        return new_state


class SessionStore:
    """Sessions keyed by user identity, expiring after ``ttl`` of inactivity."""

    def __init__(self, ttl: Optional[timedelta] = None, clock: Optional[Clock] = None) -> None:
        self.ttl = ttl or timedelta(minutes=settings.policy.session_ttl_minutes)
        self._clock = clock or _utcnow
        self._sessions: dict[Hashable, ConversationSession] = {}
        self._expired: dict[Hashable, datetime] = {}
        self._lock = threading.Lock()

    def start(
        self, user_id: Hashable, capabilities: SchemaCapabilities
    ) -> ConversationSession:
        """Open a fresh session, replacing any previous one for this user."""
        session = ConversationSession(
            user_id=user_id,
            machine=BookingStateMachine(capabilities),
            updated_at=self._clock(),
        )
        with self._lock:
            self._sessions[user_id] = session
            self._expired.pop(user_id, None)
        return session

    def get(self, user_id: Hashable) -> Optional[ConversationSession]:
        """Return the live session, or None if absent or expired.

        Expired sessions are discarded on access.
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            if self._clock() - session.updated_at > self.ttl:
                del self._sessions[user_id]
                self._expired[user_id] = self._clock()
                logger.info("Session for %s expired", user_id)
                return None
            return session

    def pop_expired(self, user_id: Hashable) -> bool:
        """True once if this user's last session was dropped for inactivity."""
        with self._lock:
            if user_id in self._expired:
                del self._expired[user_id]
                return True
            return False

    def touch(self, session: ConversationSession) -> None:
        session.updated_at = self._clock()

    def discard(self, user_id: Hashable) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)
            self._expired.pop(user_id, None)

    def purge_expired(self) -> int:
        """Drop every expired session. Returns how many were removed.

        Expiry notices older than one TTL are forgotten as well.
        """
        now = self._clock()
        with self._lock:
            for uid in [u for u, at in self._expired.items() if now - at > self.ttl]:
                del self._expired[uid]
            stale = [uid for uid, s in self._sessions.items() if now - s.updated_at > self.ttl]
            for uid in stale:
                del self._sessions[uid]
                self._expired[uid] = now
        return len(stale)

    def pending_notices(self) -> int:
        return len(self._expired)

    def __len__(self) -> int:
        return len(self._sessions)
