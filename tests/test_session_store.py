"""Tests for per-user dialogue sessions and their expiry."""

from datetime import date, time, timedelta

import pytest

from src.conversation.session_store import SessionStore
from src.conversation.state_machine import DialogueState, InvalidTransitionError, TransitionTrigger
from src.integrations.store import SchemaCapabilities
from src.schemas.session_schema import AwaitingDate, AwaitingTime, Committing, Idle
from tests.conftest import FakeClock, at

CAPS = SchemaCapabilities(has_phone_email=True, has_arrival_tracking=True)


@pytest.fixture
def sessions(clock):
    return SessionStore(ttl=timedelta(minutes=30), clock=clock)


class TestSessionLifecycle:
    def test_start_and_get(self, sessions):
        session = sessions.start(42, CAPS)
        assert sessions.get(42) is session
        assert session.state == DialogueState.IDLE
        assert isinstance(session.payload, Idle)

    def test_unknown_user(self, sessions):
        assert sessions.get(99) is None
        assert sessions.pop_expired(99) is False

    def test_start_replaces_existing(self, sessions):
        first = sessions.start(42, CAPS)
        second = sessions.start(42, CAPS)
        assert first is not second
        assert sessions.get(42) is second
        assert len(sessions) == 1

    def test_discard(self, sessions):
        sessions.start(42, CAPS)
        sessions.discard(42)
        assert sessions.get(42) is None


class TestExpiry:
    def test_expires_after_ttl(self, sessions, clock):
        sessions.start(42, CAPS)
        clock.advance(minutes=31)
        assert sessions.get(42) is None
        assert len(sessions) == 0

    def test_expiry_reported_once(self, sessions, clock):
        sessions.start(42, CAPS)
        clock.advance(minutes=31)
        sessions.get(42)
        assert sessions.pop_expired(42) is True
        assert sessions.pop_expired(42) is False

    def test_alive_at_ttl_boundary(self, sessions, clock):
        sessions.start(42, CAPS)
        clock.advance(minutes=30)
        assert sessions.get(42) is not None

    def test_touch_extends_lifetime(self, sessions, clock):
        session = sessions.start(42, CAPS)
        clock.advance(minutes=20)
        sessions.touch(session)
        clock.advance(minutes=20)
        assert sessions.get(42) is session

    def test_purge_expired(self, clock):
        sessions = SessionStore(ttl=timedelta(minutes=30), clock=clock)
        sessions.start(1, CAPS)
        clock.advance(minutes=40)
        sessions.start(2, CAPS)
        assert sessions.purge_expired() == 1
        assert sessions.get(2) is not None
        assert sessions.pop_expired(1) is True

    def test_purge_forgets_old_expiry_notices(self, clock):
        sessions = SessionStore(ttl=timedelta(minutes=30), clock=clock)
        sessions.start(1, CAPS)
        clock.advance(minutes=40)
        sessions.purge_expired()
        assert sessions.pending_notices() == 1

        clock.advance(minutes=20)
        sessions.purge_expired()
        assert sessions.pending_notices() == 1
        clock.advance(minutes=11)
        sessions.purge_expired()
        assert sessions.pending_notices() == 0
        assert sessions.pop_expired(1) is False

    def test_new_session_clears_expiry_flag(self, sessions, clock):
        sessions.start(42, CAPS)
        clock.advance(minutes=31)
        sessions.get(42)
        sessions.start(42, CAPS)
        assert sessions.pop_expired(42) is False


class TestPayloads:
    def test_advance_stores_payload(self, sessions):
        session = sessions.start(42, CAPS)
        session.advance(TransitionTrigger.START_BOOKING, AwaitingDate())
        session.advance(TransitionTrigger.DATE_SELECTED, AwaitingTime(date=date(2025, 6, 12)))
        assert session.state == DialogueState.AWAITING_TIME
        assert session.payload.date == date(2025, 6, 12)

    def test_payload_must_match_state(self, sessions):
        session = sessions.start(42, CAPS)
        with pytest.raises(InvalidTransitionError, match="AwaitingDate"):
            session.advance(TransitionTrigger.START_BOOKING, Idle())
        assert session.state == DialogueState.IDLE

    def test_committing_payload_combines_date_and_time(self):
        payload = Committing(date=date(2025, 6, 12), time=time(19, 30), party_size=4, name="Dupont")
        assert payload.scheduled_for.hour == 19
        assert payload.scheduled_for.tzinfo is None

    def test_independent_users(self):
        sessions = SessionStore(ttl=timedelta(minutes=30), clock=FakeClock(at(10, 0)))
        a = sessions.start("a", CAPS)
        sessions.start("b", CAPS)
        a.advance(TransitionTrigger.START_BOOKING, AwaitingDate())
        assert sessions.get("b").state == DialogueState.IDLE
