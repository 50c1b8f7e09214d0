"""
Chat keyboards and callback payload parsing.

Keyboards are plain data (label + payload); the chat adapter turns them
into platform widgets. Payload names are a stable contract with buttons
already sent to users, so ``parse_callback`` must keep accepting them.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from src.schemas.reservation_schema import ReservationRecord
from src.tools.services import RestaurantState, ServiceWindow

logger = logging.getLogger(__name__)

CALENDAR_ROW_WIDTH = 4
TIME_ROW_WIDTH = 3
SLOT_MINUTES = 30
MAX_PARTY_BUTTON = 8


@dataclass(frozen=True)
class Button:
    label: str
    payload: str


@dataclass(frozen=True)
class Keyboard:
    """Rows of buttons. ``inline`` buttons send callbacks, reply buttons send text."""
    rows: list[list[Button]]
    inline: bool = True


class MenuLabel(str, Enum):
    """Main reply keyboard. Pressing one sends its label as a text message."""
    NEW_RESERVATION = "➕ New reservation"
    TODAY = "📋 Today's reservations"
    MONTH = "📅 Calendar"
    WEEK = "📊 This week"
    REMAINING = "📊 Seats left"
    CAPACITY = "⚙️ Capacity"
    LUNCH_ARRIVALS = "🍽️ Lunch arrivals"
    DINNER_ARRIVALS = "🌙 Dinner arrivals"
    BLOCK_ONLINE = "🚫 Block online bookings"
    UNBLOCK_ONLINE = "✅ Allow online bookings"
    DEBUG = "🔍 Debug store"


class CallbackKind(str, Enum):
    DATE = "date"
    TIME = "time"
    PARTY = "party"
    TOGGLE_ARRIVAL = "toggle_arrival"
    ARRIVAL_STATS = "arrival_stats"
    REFRESH_ARRIVALS = "refresh_arrivals"
    MANAGE_WINDOW = "manage"
    TOGGLE_WINDOW = "toggle"
    EDIT_CAPACITY = "edit_capacity"
    CAPACITY_STATUS = "capacity_status"
    WAITLIST_VIEW = "waitlist_view"
    BACK_MAIN = "back_main"
    BACK_TO_CALENDAR = "back_to_calendar"
    BACK_TO_TIME = "back_to_time"
    NOOP = "noop"


@dataclass(frozen=True)
class CallbackAction:
    kind: CallbackKind
    date: Optional[date] = None
    time: Optional[time] = None
    party_size: Optional[int] = None
    window: Optional[str] = None
    row_index: Optional[int] = None


_FIXED = {
    "capacity_status": CallbackKind.CAPACITY_STATUS,
    "waitlist_view": CallbackKind.WAITLIST_VIEW,
    "back_main": CallbackKind.BACK_MAIN,
    "back_to_calendar": CallbackKind.BACK_TO_CALENDAR,
    "back_to_time": CallbackKind.BACK_TO_TIME,
    "noop": CallbackKind.NOOP,
}

# Order matters: the toggle_arrival_ prefix must win over toggle_.
_PATTERNS: list[tuple[re.Pattern, CallbackKind]] = [
    (re.compile(r"^date_(\d{4}-\d{2}-\d{2})$"), CallbackKind.DATE),
    (re.compile(r"^time_(\d{2}:\d{2})$"), CallbackKind.TIME),
    (re.compile(r"^party_(\d+)$"), CallbackKind.PARTY),
    (re.compile(r"^toggle_arrival_([a-z]+)_(\d+)$"), CallbackKind.TOGGLE_ARRIVAL),
    (re.compile(r"^arrival_stats_([a-z]+)$"), CallbackKind.ARRIVAL_STATS),
    (re.compile(r"^refresh_arrivals_([a-z]+)$"), CallbackKind.REFRESH_ARRIVALS),
    (re.compile(r"^edit_capacity_([a-z]+)$"), CallbackKind.EDIT_CAPACITY),
    (re.compile(r"^manage_([a-z]+)$"), CallbackKind.MANAGE_WINDOW),
    (re.compile(r"^toggle_([a-z]+)$"), CallbackKind.TOGGLE_WINDOW),
]


def parse_callback(payload: str) -> Optional[CallbackAction]:
    """Decode a button payload. Returns None for anything unrecognized."""
    payload = payload.strip()
    if payload in _FIXED:
        return CallbackAction(kind=_FIXED[payload])

    for pattern, kind in _PATTERNS:
        match = pattern.match(payload)
        if not match:
            continue
        try:
            if kind == CallbackKind.DATE:
                return CallbackAction(kind=kind, date=date.fromisoformat(match.group(1)))
            if kind == CallbackKind.TIME:
                return CallbackAction(
                    kind=kind, time=datetime.strptime(match.group(1), "%H:%M").time()
                )
        except ValueError:
            logger.debug("Malformed callback payload %r", payload)
            return None
        if kind == CallbackKind.PARTY:
            size = int(match.group(1))
            return CallbackAction(kind=kind, party_size=size) if size >= 1 else None
        if kind == CallbackKind.TOGGLE_ARRIVAL:
            return CallbackAction(
                kind=kind, window=match.group(1), row_index=int(match.group(2))
            )
        return CallbackAction(kind=kind, window=match.group(1))
    return None


def main_menu_keyboard() -> Keyboard:
    labels = [
        [MenuLabel.NEW_RESERVATION, MenuLabel.TODAY],
        [MenuLabel.MONTH, MenuLabel.WEEK],
        [MenuLabel.REMAINING, MenuLabel.CAPACITY],
        [MenuLabel.LUNCH_ARRIVALS, MenuLabel.DINNER_ARRIVALS],
        [MenuLabel.BLOCK_ONLINE, MenuLabel.UNBLOCK_ONLINE],
        [MenuLabel.DEBUG],
    ]
    return Keyboard(
        rows=[[Button(label.value, label.value) for label in row] for row in labels],
        inline=False,
    )


def _month_starts(today: date) -> list[date]:
    first = today.replace(day=1)
    following = (first + timedelta(days=32)).replace(day=1)
    return [first, following]


def calendar_keyboard(today: date, closed_weekdays: tuple[int, ...]) -> Keyboard:
    """Date picker for this month and next.

    Past days are hidden. Closed weekdays are hidden too, except today and
    tomorrow, which are always offered.
    """
    tomorrow = today + timedelta(days=1)
    rows: list[list[Button]] = []
    for month_start in _month_starts(today):
        rows.append([Button(f"📅 {month_start.strftime('%B %Y')}", "noop")])
        days_in_month = calendar.monthrange(month_start.year, month_start.month)[1]
        current: list[Button] = []
        for day_number in range(1, days_in_month + 1):
            day = month_start.replace(day=day_number)
            if day < today:
                continue
            if day not in (today, tomorrow) and day.weekday() in closed_weekdays:
                continue
            label = f"{day_number} {day.strftime('%a')}"
            if day == today:
                label = f"🔥 {label} (today)"
            elif day == tomorrow:
                label = f"⭐ {label} (tomorrow)"
            current.append(Button(label, f"date_{day.isoformat()}"))
            if len(current) == CALENDAR_ROW_WIDTH:
                rows.append(current)
                current = []
        if current:
            rows.append(current)
        rows.append([Button("─────────", "noop")])
    return Keyboard(rows=rows)


def window_slots(window: ServiceWindow) -> list[time]:
    """Half-hour seating times across every hour the window covers."""
    return [
        time(hour, minute)
        for hour in range(window.start_hour, window.end_hour + 1)
        for minute in range(0, 60, SLOT_MINUTES)
    ]


def time_slots_keyboard(state: RestaurantState) -> Keyboard:
    rows: list[list[Button]] = []
    for window in state.windows:
        rows.append([Button(f"🍽️ {window.label.upper()}", "noop")])
        current: list[Button] = []
        for slot in window_slots(window):
            text = slot.strftime("%H:%M")
            current.append(Button(text, f"time_{text}"))
            if len(current) == TIME_ROW_WIDTH:
                rows.append(current)
                current = []
        if current:
            rows.append(current)
    rows.append([Button("🔙 Back to calendar", "back_to_calendar")])
    return Keyboard(rows=rows)


def party_size_keyboard() -> Keyboard:
    buttons = [
        Button(f"{n}+" if n == MAX_PARTY_BUTTON else str(n), f"party_{n}")
        for n in range(1, MAX_PARTY_BUTTON + 1)
    ]
    return Keyboard(rows=[
        buttons[:4],
        buttons[4:],
        [Button("🔙 Back to times", "back_to_time")],
    ])


def arrival_keyboard(records: list[ReservationRecord], window_name: str) -> Keyboard:
    rows = [
        [Button(
            f"{'✅' if r.arrived else '❌'} {r.scheduled_at.strftime('%H:%M')} - "
            f"{r.customer_name} ({r.party_size})",
            f"toggle_arrival_{window_name}_{r.row_index}",
        )]
        for r in records
    ]
    rows.append([Button("📊 Statistics", f"arrival_stats_{window_name}")])
    rows.append([Button("🔄 Refresh", f"refresh_arrivals_{window_name}")])
    rows.append([Button("🔙 Main menu", "back_main")])
    return Keyboard(rows=rows)


def capacity_menu_keyboard(state: RestaurantState) -> Keyboard:
    return Keyboard(rows=[
        [Button("📊 Full status", "capacity_status")],
        [Button(f"Manage {w.label}", f"manage_{w.name}") for w in state.windows],
        [Button("📋 Waitlist", "waitlist_view")],
        [Button("🔙 Main menu", "back_main")],
    ])


def window_manage_keyboard(window: ServiceWindow) -> Keyboard:
    toggle_label = f"✅ Open {window.label}" if window.blocked else f"🚫 Close {window.label}"
    return Keyboard(rows=[
        [Button(toggle_label, f"toggle_{window.name}")],
        [Button("📝 Change capacity", f"edit_capacity_{window.name}")],
        [Button("🔙 Back", "capacity_status")],
    ])


def arrival_stats_keyboard(window_name: str) -> Keyboard:
    return Keyboard(rows=[[Button("🔙 Back to arrivals", f"refresh_arrivals_{window_name}")]])


def back_to_capacity_keyboard() -> Keyboard:
    return Keyboard(rows=[[Button("🔙 Back", "capacity_status")]])
