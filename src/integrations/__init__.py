from src.integrations.calendar import CalendarClient, CalendarEvent, InMemoryCalendar
from src.integrations.notifications import LogNotifier, StaffNotifier
from src.integrations.store import (
    CsvReservationStore,
    InMemoryReservationStore,
    ReservationStore,
    SchemaCapabilities,
    detect_capabilities,
)

__all__ = [
    "CalendarClient",
    "CalendarEvent",
    "InMemoryCalendar",
    "LogNotifier",
    "StaffNotifier",
    "ReservationStore",
    "InMemoryReservationStore",
    "CsvReservationStore",
    "SchemaCapabilities",
    "detect_capabilities",
]
