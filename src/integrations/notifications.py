"""
Staff notifications (new bookings, waitlist additions, service changes).

Notifications are fire-and-forget: a failed delivery is logged and never
affects the booking that triggered it.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class StaffNotifier(Protocol):
    async def notify(self, text: str) -> None: ...


class LogNotifier:
    """Writes notifications to the log. Used when no staff chat is configured."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def notify(self, text: str) -> None:
        self.sent.append(text)
        logger.info("Staff notification: %s", text.replace("\n", " | "))
