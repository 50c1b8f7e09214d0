"""Conversion between store rows and ReservationRecord models."""

import logging
from datetime import date, datetime, tzinfo
from typing import Optional

from src.integrations.store import ReservationStore
from src.schemas.reservation_schema import ReservationRecord
from src.utils import parse_instant, seats_from_cell, to_local

logger = logging.getLogger(__name__)

ARRIVED_VALUES = frozenset({"yes", "true"})


def is_arrived(cell: Optional[str]) -> bool:
    return (cell or "").strip().lower() in ARRIVED_VALUES


def row_to_record(index: int, row: dict[str, str], tz: tzinfo) -> Optional[ReservationRecord]:
    """Build a record from a raw row. Returns None when DateTime does not parse."""
    scheduled = parse_instant(row.get("DateTime"), tz)
    if scheduled is None:
        return None
    return ReservationRecord(
        row_index=index,
        timestamp_created=row.get("Timestamp") or None,
        customer_name=row.get("Name") or "N/A",
        party_size=seats_from_cell(row.get("PartySize")),
        scheduled_at=scheduled,
        source=row.get("Source") or "",
        phone=row.get("PhoneNumber") or None,
        email=row.get("Email") or None,
        arrived=is_arrived(row.get("Arrived")),
    )


def load_records(store: ReservationStore, tz: tzinfo) -> list[ReservationRecord]:
    """Read every row with a usable DateTime. Raises StoreUnavailableError."""
    records = []
    for index, row in enumerate(store.rows()):
        record = row_to_record(index, row, tz)
        if record is None:
            logger.debug("Skipping row %d with unparseable DateTime %r", index, row.get("DateTime"))
            continue
        records.append(record)
    return records


def records_on(
    records: list[ReservationRecord],
    day: date,
    start_hour: int,
    end_hour: int,
    tz: tzinfo,
) -> list[ReservationRecord]:
    """Records on a local date whose local hour falls in ``[start_hour, end_hour]``."""
    selected = []
    for record in records:
        local = to_local(record.scheduled_at, tz)
        if local.date() == day and start_hour <= local.hour <= end_hour:
            selected.append(record)
    return selected


def format_instant(instant: datetime) -> str:
    """Canonical stored form of ``DateTime``: local ISO-8601 with offset."""
    return instant.replace(microsecond=0).isoformat()
