"""Per-state dialogue payloads.

Each variant carries only the fields that are known in that state, so a
half-finished booking can never be committed with a missing party size.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingDate:
    pass


@dataclass(frozen=True)
class AwaitingTime:
    date: date


@dataclass(frozen=True)
class AwaitingPartySize:
    date: date
    time: time


@dataclass(frozen=True)
class AwaitingName:
    date: date
    time: time
    party_size: int


@dataclass(frozen=True)
class AwaitingPhone:
    date: date
    time: time
    party_size: int
    name: str


@dataclass(frozen=True)
class Committing:
    date: date
    time: time
    party_size: int
    name: str
    phone: Optional[str] = None

    @property
    def scheduled_for(self) -> datetime:
        """Naive local datetime; the booking core attaches the timezone."""
        return datetime.combine(self.date, self.time)


@dataclass(frozen=True)
class AwaitingCapacity:
    window: str


SessionPayload = Union[
    Idle,
    AwaitingDate,
    AwaitingTime,
    AwaitingPartySize,
    AwaitingName,
    AwaitingPhone,
    Committing,
    AwaitingCapacity,
]
