"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from src.app_context import AppContext
from src.conversation.controller import ChatController
from src.conversation.session_store import SessionStore
from src.conversation.state_machine import BookingStateMachine
from src.errors import CalendarError, StoreUnavailableError
from src.integrations.calendar import InMemoryCalendar
from src.integrations.store import (
    REQUIRED_COLUMNS,
    InMemoryReservationStore,
    SchemaCapabilities,
    detect_capabilities,
)
from src.tools.booking import ReservationWriter
from src.tools.records import format_instant
from src.tools.services import RestaurantState, ServiceWindow
from src.tools.waitlist import WaitlistRegister

PARIS = ZoneInfo("Europe/Paris")
SERVICE_DAY = date(2025, 6, 11)  # a Wednesday
NEXT_DAY = date(2025, 6, 12)


def at(hour: int, minute: int = 0, day: date = SERVICE_DAY) -> datetime:
    """Restaurant-local aware datetime."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=PARIS)


def seed(
    store,
    name: str,
    party_size,
    instant: datetime,
    source: str = "Phone",
    arrived: str = "No",
) -> int:
    """Append a raw reservation row, as an operator editing the sheet would."""
    return store.append_row({
        "Timestamp": "2025-06-01T09:00:00+00:00",
        "Name": name,
        "PartySize": str(party_size),
        "DateTime": format_instant(instant),
        "Source": source,
        "Arrived": arrived,
    })


def make_state(capabilities: Optional[SchemaCapabilities] = None) -> RestaurantState:
    return RestaurantState(
        windows=[
            ServiceWindow("lunch", "lunch", 12, 14, 60),
            ServiceWindow("dinner", "dinner", 19, 22, 70),
        ],
        tz=PARIS,
        capabilities=capabilities or SchemaCapabilities(True, True),
    )


class FakeClock:
    """Settable clock shared by the controller and the session store."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FailingStore:
    """Reservation store whose every call fails."""

    def header(self):
        raise StoreUnavailableError("sheet offline")

    def rows(self):
        raise StoreUnavailableError("sheet offline")

    def append_row(self, values):
        raise StoreUnavailableError("sheet offline")

    def update_row(self, index, values):
        raise StoreUnavailableError("sheet offline")


class FailingCalendar:
    def create_event(self, calendar_id, event):
        raise CalendarError("calendar quota exceeded")

    def list_events(self, calendar_id, start, end):
        raise CalendarError("calendar quota exceeded")


@pytest.fixture
def store():
    return InMemoryReservationStore()


@pytest.fixture
def basic_store():
    """Store with only the required columns (compatible mode)."""
    return InMemoryReservationStore(headers=list(REQUIRED_COLUMNS))


@pytest.fixture
def calendar():
    return InMemoryCalendar()


@pytest.fixture
def state(store):
    return make_state(detect_capabilities(store))


@pytest.fixture
def writer(store, calendar, state):
    return ReservationWriter(store, calendar, state, calendar_id="test-cal", duration_hours=2)


@pytest.fixture
def waitlist():
    return WaitlistRegister()


@pytest.fixture
def clock():
    return FakeClock(at(10, 0))


@pytest.fixture
def context(state, store, calendar, writer, waitlist, clock):
    return AppContext(
        state=state,
        store=store,
        calendar=calendar,
        writer=writer,
        waitlist=waitlist,
        sessions=SessionStore(ttl=timedelta(minutes=30), clock=clock),
    )


@pytest.fixture
def controller(context, clock):
    return ChatController(context, clock=clock, almost_full_threshold=10, closed_weekdays=(6, 0))


@pytest.fixture
def state_machine():
    return BookingStateMachine(SchemaCapabilities(has_phone_email=True, has_arrival_tracking=True))
