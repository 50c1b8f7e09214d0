"""Reservation, waitlist and capacity data models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    """Booking source. Values are what the store's ``Source`` column holds."""
    WEB_FORM = "Webflow"
    CHAT = "Phone"


class RejectionReason(str, Enum):
    OUTSIDE_HOURS = "outside-hours"
    SERVICE_BLOCKED = "service-blocked"
    INSUFFICIENT_CAPACITY = "insufficient-capacity"
    CAPACITY_UNKNOWN = "capacity-unknown"


class AvailabilityResult(BaseModel):
    """Admission decision for one requested instant and party size."""
    available: bool
    service: Optional[str] = None
    reason: Optional[RejectionReason] = None
    remaining: Optional[int] = None
    needed: Optional[int] = None

    @property
    def message(self) -> str:
        if self.available:
            return f"Available for {self.service}, {self.remaining} seats left after booking."
        if self.reason == RejectionReason.OUTSIDE_HOURS:
            return "Outside service hours."
        if self.reason == RejectionReason.SERVICE_BLOCKED:
            return f"The {self.service} service is temporarily closed."
        if self.reason == RejectionReason.CAPACITY_UNKNOWN:
            return f"Cannot confirm seats for {self.service} right now."
        return (
            f"Not enough seats for {self.service}: "
            f"{self.remaining} left, {self.needed} requested."
        )


class ReservationRecord(BaseModel):
    """One row of the reservation store."""
    row_index: int
    timestamp_created: Optional[str] = None
    customer_name: str
    party_size: int
    scheduled_at: datetime
    source: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    arrived: bool = False


class WaitlistEntry(BaseModel):
    """A rejected chat request parked for manual follow-up."""
    id: str
    customer_name: str
    party_size: int
    requested_at: datetime
    source: Channel
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime


class CapacitySnapshot(BaseModel):
    """Seat usage for one service window on one date. Never cached."""
    service: str
    date: date
    used: int
    max: int
    remaining: int
    percentage: int
    blocked: bool = False


class ArrivalStats(BaseModel):
    """Check-in progress for a service window today."""
    total_reservations: int = 0
    arrived_reservations: int = 0
    total_people: int = 0
    arrived_people: int = 0
    reservation_rate: int = 0
    people_rate: int = 0


class WebBookingRequest(BaseModel):
    """Body of a web form submission. Validated by the endpoint, not here."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    party_size: Optional[Union[int, float, str]] = Field(default=None, alias="partySize")
    date_time: Optional[str] = Field(default=None, alias="dateTime")
    email: Optional[str] = None
