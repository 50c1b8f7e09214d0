"""Service windows (lunch, dinner) and the mutable restaurant state around them."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Optional

from src.config import RestaurantConfig, WindowConfig, settings
from src.integrations.store import SchemaCapabilities
from src.utils import to_local

logger = logging.getLogger(__name__)


@dataclass
class ServiceWindow:
    """A named time-of-day band with its own seat cap and open/closed flag.

    ``start_hour`` and ``end_hour`` are both inclusive.
    """

    name: str
    label: str
    start_hour: int
    end_hour: int
    max_capacity: int
    blocked: bool = False

    @classmethod
    def from_config(cls, config: WindowConfig) -> "ServiceWindow":
        return cls(
            name=config.name,
            label=config.label,
            start_hour=config.start_hour,
            end_hour=config.end_hour,
            max_capacity=config.max_capacity,
        )

    def contains_hour(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour

    @property
    def hours_label(self) -> str:
        return f"{self.start_hour}h-{self.end_hour}h"


@dataclass
class RestaurantState:
    """
    Process-wide mutable state consulted by admission and the chat flow.

    Passed explicitly to every operation instead of living in module
    globals. Nothing here survives a restart.
    """

    windows: list[ServiceWindow]
    tz: tzinfo
    online_booking_blocked: bool = False
    capabilities: SchemaCapabilities = field(default_factory=SchemaCapabilities)
    _admission_locks: dict[tuple[date, str], threading.Lock] = field(
        default_factory=dict, repr=False
    )
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_config(cls, config: Optional[RestaurantConfig] = None) -> "RestaurantState":
        config = config or settings.restaurant
        return cls(
            windows=[ServiceWindow.from_config(w) for w in config.windows()],
            tz=config.tzinfo,
        )

    def get_window(self, name: str) -> ServiceWindow:
        for window in self.windows:
            if window.name == name:
                return window
        raise KeyError(f"Unknown service window: {name}")

    def window_names(self) -> list[str]:
        return [w.name for w in self.windows]

    def set_capacity(self, name: str, capacity: int) -> int:
        """Change a window's seat cap. Returns the previous value."""
        if capacity < 1:
            raise ValueError(f"Capacity must be >= 1, got {capacity}")
        window = self.get_window(name)
        previous, window.max_capacity = window.max_capacity, capacity
        logger.info("Capacity for %s changed %d -> %d", name, previous, capacity)
        return previous

    def toggle_blocked(self, name: str) -> bool:
        """Open or close a window for bookings. Returns the new blocked flag."""
        window = self.get_window(name)
        window.blocked = not window.blocked
        logger.info("Service %s is now %s", name, "closed" if window.blocked else "open")
        return window.blocked

    def admission_lock(self, day: date, window_name: str) -> threading.Lock:
        """Lock serializing admission plus write for one (date, window)."""
        key = (day, window_name)
        with self._locks_guard:
            lock = self._admission_locks.get(key)
            if lock is None:
                lock = self._admission_locks[key] = threading.Lock()
            return lock

    def prune_admission_locks(self, today: date) -> int:
        """Forget unheld locks for dates before ``today``. Returns how many were dropped."""
        with self._locks_guard:
            stale = [
                key for key, lock in self._admission_locks.items()
                if key[0] < today and not lock.locked()
            ]
            for key in stale:
                del self._admission_locks[key]
        return len(stale)


def classify(instant: datetime, state: RestaurantState) -> Optional[ServiceWindow]:
    """Map an instant to the first configured window containing its local hour."""
    hour = to_local(instant, state.tz).hour
    for window in state.windows:
        if window.contains_hour(hour):
            return window
    return None
