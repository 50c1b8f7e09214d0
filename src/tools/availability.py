"""
Capacity ledger and admission controller.

Seat usage is never cached: every query re-reads the whole reservation
store and sums party sizes inside the service window. At restaurant scale
(tens to low hundreds of rows per day) this favors freshness over speed.
"""

import logging
from datetime import date, datetime
from typing import Optional

from src.config import settings
from src.errors import StoreUnavailableError
from src.integrations.store import ReservationStore
from src.schemas.reservation_schema import (
    AvailabilityResult,
    CapacitySnapshot,
    RejectionReason,
)
from src.tools.records import load_records, records_on
from src.tools.services import RestaurantState, ServiceWindow, classify
from src.utils import to_local

logger = logging.getLogger(__name__)


def used_seats_strict(
    store: ReservationStore, state: RestaurantState, day: date, window: ServiceWindow
) -> int:
    """Sum party sizes booked on ``day`` inside ``window``. Raises StoreUnavailableError."""
    records = load_records(store, state.tz)
    matching = records_on(records, day, window.start_hour, window.end_hour, state.tz)
    total = sum(r.party_size for r in matching)
    logger.debug(
        "%s on %s: %d seats across %d reservations", window.name, day, total, len(matching)
    )
    return total


def used_seats(
    store: ReservationStore, state: RestaurantState, day: date, window: ServiceWindow
) -> int:
    """Seats committed for ``day`` and ``window``.

    Fails soft: when the store cannot be read the usage is reported as 0.
    Callers must treat that as "unknown", not as a reliable empty service.
    """
    try:
        return used_seats_strict(store, state, day, window)
    except StoreUnavailableError as exc:
        logger.warning("Store unavailable while counting %s on %s: %s", window.name, day, exc)
        return 0


def check_availability(
    instant: datetime,
    party_size: int,
    state: RestaurantState,
    store: ReservationStore,
    read_policy: Optional[str] = None,
) -> AvailabilityResult:
    """
    Decide whether ``party_size`` guests can be seated at ``instant``.

    Order: service hours, window open, remaining seats. A party is seated
    whole or not at all. This is a plain read; nothing is held between
    the check and a later write.
    """
    read_policy = read_policy or settings.policy.capacity_read_policy
    window = classify(instant, state)
    if window is None:
        return AvailabilityResult(available=False, reason=RejectionReason.OUTSIDE_HOURS)

    if window.blocked:
        return AvailabilityResult(
            available=False, reason=RejectionReason.SERVICE_BLOCKED, service=window.name
        )

    day = to_local(instant, state.tz).date()
    if read_policy == "fail_closed":
        try:
            used = used_seats_strict(store, state, day, window)
        except StoreUnavailableError as exc:
            logger.warning("Rejecting %s on %s, usage unknown: %s", window.name, day, exc)
            return AvailabilityResult(
                available=False,
                reason=RejectionReason.CAPACITY_UNKNOWN,
                service=window.name,
                needed=party_size,
            )
    else:
        used = used_seats(store, state, day, window)

    remaining = window.max_capacity - used
    if party_size <= remaining:
        return AvailabilityResult(
            available=True, service=window.name, remaining=remaining - party_size
        )
    return AvailabilityResult(
        available=False,
        reason=RejectionReason.INSUFFICIENT_CAPACITY,
        service=window.name,
        remaining=remaining,
        needed=party_size,
    )


def capacity_snapshot(
    store: ReservationStore, state: RestaurantState, day: date, window: ServiceWindow
) -> CapacitySnapshot:
    """Current usage view for one window on one date."""
    used = used_seats(store, state, day, window)
    return CapacitySnapshot(
        service=window.name,
        date=day,
        used=used,
        max=window.max_capacity,
        remaining=window.max_capacity - used,
        percentage=round(100 * used / window.max_capacity),
        blocked=window.blocked,
    )


def today_capacity_status(
    store: ReservationStore, state: RestaurantState, now: Optional[datetime] = None
) -> list[CapacitySnapshot]:
    """Snapshots for every window today, in configured order."""
    today = to_local(now or datetime.now(state.tz), state.tz).date()
    return [capacity_snapshot(store, state, today, w) for w in state.windows]
