"""
In-memory waitlist for chat requests that could not be admitted.

Entries are append-only audit records for manual follow-up: nothing
promotes them to reservations and they are lost on restart.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from src.schemas.reservation_schema import Channel, WaitlistEntry

logger = logging.getLogger(__name__)


def make_waitlist_id(name: str, now: Optional[datetime] = None) -> str:
    """Timestamp+name composite id, e.g. ``1718109000123_Dupont``."""
    now = now or datetime.now(timezone.utc)
    return f"{int(now.timestamp()) * 1000 + now.microsecond // 1000}_{name}"


class WaitlistRegister:
    """Ordered, append-only collection of WaitlistEntry."""

    def __init__(self) -> None:
        self._entries: dict[str, WaitlistEntry] = {}
        self._lock = threading.Lock()

    def add(
        self,
        customer_name: str,
        party_size: int,
        requested_at: datetime,
        source: Channel,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> str:
        """Record a deferred request and return its id."""
        created_at = datetime.now(timezone.utc)
        with self._lock:
            entry_id = make_waitlist_id(customer_name, created_at)
            suffix = 1
            while entry_id in self._entries:
                suffix += 1
                entry_id = f"{make_waitlist_id(customer_name, created_at)}_{suffix}"
            self._entries[entry_id] = WaitlistEntry(
                id=entry_id,
                customer_name=customer_name,
                party_size=party_size,
                requested_at=requested_at,
                source=source,
                phone=phone or None,
                email=email or None,
                created_at=created_at,
            )
        logger.info("Waitlisted %s (%d ppl) for %s", customer_name, party_size, requested_at)
        return entry_id

    def list(self) -> list[WaitlistEntry]:
        """All entries in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
