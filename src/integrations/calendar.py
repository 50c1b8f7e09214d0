"""
Calendar mirror for reservations.

In production this is a shared calendar service scoped by calendar id.
The reservation writer only needs ``create_event`` and the operator views
only need ``list_events``.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel

from src.errors import CalendarError

logger = logging.getLogger(__name__)


class CalendarEvent(BaseModel):
    """A calendar entry. ``start`` and ``end`` are timezone-qualified."""
    summary: str
    description: str = ""
    start: datetime
    end: datetime
    event_id: str = ""


class CalendarClient(Protocol):
    """Event create/list scoped by calendar id. May raise ``CalendarError``."""

    def create_event(self, calendar_id: str, event: CalendarEvent) -> str: ...

    def list_events(
        self, calendar_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]: ...


class InMemoryCalendar:
    """Process-local calendar keyed by calendar id."""

    def __init__(self) -> None:
        self._events: dict[str, list[CalendarEvent]] = {}
        self._lock = threading.Lock()

    def create_event(self, calendar_id: str, event: CalendarEvent) -> str:
        if event.start.tzinfo is None or event.end.tzinfo is None:
            raise CalendarError("Event start and end must carry a timezone")
        if event.end <= event.start:
            raise CalendarError("Event end must be after its start")
        stored = event.model_copy(update={"event_id": uuid.uuid4().hex[:12]})
        with self._lock:
            self._events.setdefault(calendar_id, []).append(stored)
        logger.debug("Calendar event %s created in %s", stored.event_id, calendar_id)
        return stored.event_id

    def list_events(
        self, calendar_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]:
        with self._lock:
            events = list(self._events.get(calendar_id, []))
        selected = [e for e in events if start <= e.start < end]
        return sorted(selected, key=lambda e: e.start)
