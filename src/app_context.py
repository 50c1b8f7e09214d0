"""
Wiring of the booking core shared by the chat bot and the web endpoint.

Both channels operate on one AppContext so that they see the same
restaurant state, reservation store and waitlist.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from src.config import AppConfig, settings
from src.conversation.session_store import SessionStore
from src.errors import ConfigurationError, StoreUnavailableError
from src.integrations.calendar import CalendarClient, InMemoryCalendar
from src.integrations.store import (
    CsvReservationStore,
    InMemoryReservationStore,
    ReservationStore,
    detect_capabilities,
)
from src.tools.booking import ReservationWriter
from src.tools.services import RestaurantState
from src.tools.waitlist import WaitlistRegister

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    state: RestaurantState
    store: ReservationStore
    calendar: CalendarClient
    writer: ReservationWriter
    waitlist: WaitlistRegister = field(default_factory=WaitlistRegister)
    sessions: SessionStore = field(default_factory=SessionStore)


def _default_store(config: AppConfig) -> ReservationStore:
    path = config.integrations.store_path
    if path:
        logger.info("Using CSV reservation store at %s", path)
        return CsvReservationStore(path)
    logger.warning("RESERVATION_STORE_PATH not set, reservations are kept in memory only")
    return InMemoryReservationStore()


def build_context(
    store: Optional[ReservationStore] = None,
    calendar: Optional[CalendarClient] = None,
    config: Optional[AppConfig] = None,
) -> AppContext:
    """
    Build the shared context and detect the store schema once.

    Raises:
        ConfigurationError: If the reservation store cannot be reached.
    """
    config = config or settings
    try:
        store = store if store is not None else _default_store(config)
        state = RestaurantState.from_config(config.restaurant)
        state.capabilities = detect_capabilities(store)
    except StoreUnavailableError as exc:
        raise ConfigurationError(f"Reservation store unreachable at startup: {exc}") from exc

    calendar = calendar if calendar is not None else InMemoryCalendar()
    writer = ReservationWriter(
        store,
        calendar,
        state,
        calendar_id=config.integrations.calendar_id,
        duration_hours=config.restaurant.reservation_duration_hours,
    )
    return AppContext(state=state, store=store, calendar=calendar, writer=writer)
