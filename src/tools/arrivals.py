"""Same-day arrival tracking per service window."""

import logging
from datetime import datetime
from typing import Optional

from src.errors import ArrivalTrackingUnavailableError, ReservationNotFoundError
from src.integrations.store import ARRIVAL_COLUMN, ReservationStore
from src.schemas.reservation_schema import ArrivalStats, ReservationRecord
from src.tools.records import is_arrived, load_records, records_on
from src.tools.services import RestaurantState
from src.utils import to_local

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> int:
    return round(100 * part / whole) if whole > 0 else 0


def list_today(
    store: ReservationStore,
    state: RestaurantState,
    window_name: str,
    now: Optional[datetime] = None,
) -> list[ReservationRecord]:
    """Today's reservations inside the window, earliest first."""
    window = state.get_window(window_name)
    today = to_local(now or datetime.now(state.tz), state.tz).date()
    records = records_on(
        load_records(store, state.tz), today, window.start_hour, window.end_hour, state.tz
    )
    if not state.capabilities.has_arrival_tracking:
        records = [r.model_copy(update={"arrived": False}) for r in records]
    return sorted(records, key=lambda r: r.scheduled_at)


def toggle(store: ReservationStore, state: RestaurantState, row_index: int) -> bool:
    """Flip the Arrived flag of one row and persist it. Returns the new value.

    Not atomic against a concurrent toggle of the same row: last write wins.
    """
    if not state.capabilities.has_arrival_tracking:
        raise ArrivalTrackingUnavailableError(
            f"The reservation store has no '{ARRIVAL_COLUMN}' column"
        )
    rows = store.rows()
    if not 0 <= row_index < len(rows):
        raise ReservationNotFoundError(f"No reservation at row {row_index}")

    new_status = not is_arrived(rows[row_index].get(ARRIVAL_COLUMN))
    store.update_row(row_index, {ARRIVAL_COLUMN: "Yes" if new_status else "No"})
    logger.info("Row %d arrival status -> %s", row_index, new_status)
    return new_status


def compute_stats(records: list[ReservationRecord]) -> ArrivalStats:
    """Reservation-count and headcount arrival rates, computed independently."""
    arrived = [r for r in records if r.arrived]
    total_people = sum(r.party_size for r in records)
    arrived_people = sum(r.party_size for r in arrived)
    return ArrivalStats(
        total_reservations=len(records),
        arrived_reservations=len(arrived),
        total_people=total_people,
        arrived_people=arrived_people,
        reservation_rate=_percent(len(arrived), len(records)),
        people_rate=_percent(arrived_people, total_people),
    )


def arrival_stats(
    store: ReservationStore,
    state: RestaurantState,
    window_name: str,
    now: Optional[datetime] = None,
) -> ArrivalStats:
    return compute_stats(list_today(store, state, window_name, now))
