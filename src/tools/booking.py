"""
Reservation writer and the per-channel booking policy.

The store row is the durable source of truth. The calendar event is a
best-effort projection written afterwards: its failure is logged and
counted but never undoes or fails the booking.
"""

import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.config import settings
from src.errors import BookingRejected, CalendarError
from src.integrations.calendar import CalendarClient, CalendarEvent
from src.integrations.store import ReservationStore
from src.logging_context import get_request_logger
from src.schemas.reservation_schema import (
    AvailabilityResult,
    Channel,
    ReservationRecord,
)
from src.tools.availability import check_availability
from src.tools.records import format_instant
from src.tools.services import RestaurantState, classify
from src.tools.waitlist import WaitlistRegister
from src.utils import to_local

logger = get_request_logger(__name__)

MirrorFailureListener = Callable[[ReservationRecord, Exception], None]


def build_calendar_event(
    record: ReservationRecord, duration: timedelta
) -> CalendarEvent:
    """Calendar projection of a reservation."""
    contact = []
    if record.phone:
        contact.append(f"Phone: {record.phone}")
    if record.email:
        contact.append(f"Email: {record.email}")
    description = (
        f"Reservation for {record.party_size} guest(s)\n"
        f"Name: {record.customer_name}\n"
        f"Source: {record.source}\n\n"
        + ("\n".join(contact) if contact else "Contact: restaurant")
    )
    return CalendarEvent(
        summary=f"Reservation: {record.customer_name} ({record.party_size} ppl)",
        description=description,
        start=record.scheduled_at,
        end=record.scheduled_at + duration,
    )


class ReservationWriter:
    """Appends reservation rows and mirrors them into the calendar.

    Performs no admission check: callers that want capacity enforcement
    go through ``book_with_capacity_check``.
    """

    def __init__(
        self,
        store: ReservationStore,
        calendar: CalendarClient,
        state: RestaurantState,
        calendar_id: Optional[str] = None,
        duration_hours: Optional[int] = None,
    ) -> None:
        self.store = store
        self.calendar = calendar
        self.state = state
        self.calendar_id = calendar_id or settings.integrations.calendar_id
        self.duration = timedelta(
            hours=duration_hours or settings.restaurant.reservation_duration_hours
        )
        self.mirror_failures = 0
        self._failure_listeners: list[MirrorFailureListener] = []

    def add_failure_listener(self, listener: MirrorFailureListener) -> None:
        """Register a callback invoked when the calendar mirror fails."""
        self._failure_listeners.append(listener)

    def commit(
        self,
        name: str,
        party_size: int,
        instant: datetime,
        source: Channel,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> ReservationRecord:
        """Write the reservation row, then attempt the calendar mirror."""
        capabilities = self.state.capabilities
        scheduled = to_local(instant, self.state.tz)
        row = {
            "Timestamp": datetime.now(timezone.utc).isoformat(),
            "Name": name,
            "PartySize": str(party_size),
            "DateTime": format_instant(scheduled),
            "Source": source.value,
        }
        if capabilities.has_phone_email:
            row["PhoneNumber"] = phone or ""
            row["Email"] = email or ""
        if capabilities.has_arrival_tracking:
            row["Arrived"] = "No"

        index = self.store.append_row(row)
        record = ReservationRecord(
            row_index=index,
            timestamp_created=row["Timestamp"],
            customer_name=name,
            party_size=party_size,
            scheduled_at=scheduled,
            source=source.value,
            phone=(phone or None) if capabilities.has_phone_email else None,
            email=(email or None) if capabilities.has_phone_email else None,
        )
        logger.info(
            "Reservation row %d: %s, %d ppl, %s via %s",
            index, name, party_size, row["DateTime"], source.value,
        )
        self._mirror(record, phone, email)
        return record

    def _mirror(
        self, record: ReservationRecord, phone: Optional[str], email: Optional[str]
    ) -> None:
        # Contact details go to the calendar even when the store lacks the columns.
        projected = record.model_copy(update={"phone": phone or None, "email": email or None})
        try:
            event_id = self.calendar.create_event(
                self.calendar_id, build_calendar_event(projected, self.duration)
            )
            logger.info("Calendar event %s created for row %d", event_id, record.row_index)
        except CalendarError as exc:
            self.mirror_failures += 1
            logger.error("Calendar mirror failed for row %d: %s", record.row_index, exc)
            for listener in self._failure_listeners:
                listener(record, exc)


@dataclass
class BookingConfirmation:
    record: ReservationRecord
    availability: AvailabilityResult


def book_with_capacity_check(
    writer: ReservationWriter,
    waitlist: WaitlistRegister,
    name: str,
    party_size: int,
    instant: datetime,
    channel: Channel,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    serialize: Optional[bool] = None,
) -> BookingConfirmation:
    """
    Admit and write a reservation, applying the channel's rejection policy.

    Web form rejections fail hard. Chat rejections are parked on the
    waitlist and still fail. Either way no store row is written.

    With ``serialize`` on (the default) the admission check and the row
    write run under one lock per (date, window), so two concurrent
    requests cannot both take the last seats.
    """
    state = writer.state
    serialize = settings.policy.serialize_admissions if serialize is None else serialize
    instant = to_local(instant, state.tz)
    window = classify(instant, state)
    guard: contextlib.AbstractContextManager = contextlib.nullcontext()
    if serialize and window is not None:
        guard = state.admission_lock(instant.date(), window.name)

    with guard:
        availability = check_availability(instant, party_size, state, writer.store)
        if availability.available:
            record = writer.commit(name, party_size, instant, channel, phone, email)
            return BookingConfirmation(record=record, availability=availability)

    logger.info(
        "Booking refused for %s (%d ppl) via %s: %s",
        name, party_size, channel.value, availability.reason.value,
    )
    if channel == Channel.CHAT:
        waitlist_id = waitlist.add(name, party_size, instant, channel, phone, email)
        raise BookingRejected(
            availability,
            f"{availability.message} Added to the waitlist.",
            waitlist_id=waitlist_id,
        )
    raise BookingRejected(availability, availability.message)
