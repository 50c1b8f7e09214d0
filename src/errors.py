"""Exception types shared by the booking core, integrations and channels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from src.schemas.reservation_schema import AvailabilityResult


class ConfigurationError(Exception):
    """Startup configuration or connectivity problem. Fatal."""


class StoreUnavailableError(Exception):
    """The reservation store could not be read or written."""


class CalendarError(Exception):
    """The calendar service rejected or failed an operation."""


class ArrivalTrackingUnavailableError(Exception):
    """The reservation store has no ``Arrived`` column."""


class ReservationNotFoundError(Exception):
    """No reservation row exists at the requested position."""


class BookingRejected(Exception):
    """A booking request was refused by the admission controller.

    ``waitlist_id`` is set when the request was parked on the waitlist
    instead of being dropped.
    """

    def __init__(
        self,
        result: AvailabilityResult,
        message: str,
        waitlist_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.result = result
        self.waitlist_id = waitlist_id
