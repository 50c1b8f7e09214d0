"""Dynamic message construction for chat replies and staff notifications."""

from collections import OrderedDict
from datetime import date, datetime, time
from typing import Optional

from telegram.helpers import escape_markdown

from src.integrations.calendar import CalendarEvent
from src.integrations.store import SchemaCapabilities
from src.schemas.reservation_schema import (
    ArrivalStats,
    CapacitySnapshot,
    ReservationRecord,
    WaitlistEntry,
)
from src.tools.services import RestaurantState, ServiceWindow


def escape_md(value) -> str:
    """Escape user-supplied text for Telegram legacy Markdown."""
    return escape_markdown(str(value), version=1)


def format_day(day: date) -> str:
    return day.strftime("%A %d %B %Y")


def format_hm(value: time) -> str:
    return value.strftime("%H:%M")


def _availability_badge(snapshot: CapacitySnapshot, almost_full: int) -> str:
    if snapshot.remaining <= 0:
        return "🔴 FULL"
    if snapshot.remaining <= almost_full:
        return "🟡 ALMOST FULL"
    return "🟢 AVAILABLE"


def build_remaining_seats_message(
    state: RestaurantState,
    snapshots: list[CapacitySnapshot],
    waitlist_size: int,
    almost_full: int,
) -> str:
    """Today's seats left per window, online status, waitlist and mode."""
    lines = ["*📊 SEATS LEFT TODAY*", ""]
    for snapshot in snapshots:
        window = state.get_window(snapshot.service)
        lines.append(f"*{window.label.upper()} ({window.hours_label})*")
        if snapshot.blocked:
            lines.append("🚫 SERVICE CLOSED")
        else:
            lines.append(
                f"• Taken: {snapshot.used}/{snapshot.max} seats ({snapshot.percentage}%)"
            )
            lines.append(f"• *Left: {snapshot.remaining} seats*")
            lines.append(_availability_badge(snapshot, almost_full))
        lines.append("")
    lines.append("*ONLINE BOOKINGS*")
    lines.append("🚫 ALL BLOCKED" if state.online_booking_blocked else "✅ ACTIVE")
    if waitlist_size:
        lines.append(f"\n⏳ *WAITLIST*: {waitlist_size} request(s)")
    lines.append(f"\n🔧 *MODE*: {state.capabilities.mode_label}")
    return "\n".join(lines)


def build_capacity_status_message(
    state: RestaurantState, snapshots: list[CapacitySnapshot]
) -> str:
    lines = ["📊 *FULL STATUS*", "", "⚙️ *CONFIGURATION*"]
    for window in state.windows:
        lines.append(f"{window.label}: {window.max_capacity} seats ({window.hours_label})")
    lines += ["", "📅 *TODAY*"]
    for snapshot in snapshots:
        lines.append(
            f"{state.get_window(snapshot.service).label}: "
            f"{snapshot.used}/{snapshot.max} ({snapshot.remaining} free)"
        )
    lines += ["", "🚦 *SERVICES*"]
    for window in state.windows:
        lines.append(f"{window.label}: {'🚫 CLOSED' if window.blocked else '✅ OPEN'}")
    lines.append(f"Online: {'🚫 BLOCKED' if state.online_booking_blocked else '✅ ACTIVE'}")
    return "\n".join(lines)


def build_window_manage_message(window: ServiceWindow) -> str:
    return (
        f"*MANAGE {window.label.upper()}*\n\n"
        f"Capacity: {window.max_capacity} seats\n"
        f"Hours: {window.hours_label}\n"
        f"Status: {'🚫 CLOSED' if window.blocked else '✅ OPEN'}\n\n"
        "Choose an action:"
    )


def build_arrivals_message(window: ServiceWindow, stats: ArrivalStats) -> str:
    return (
        f"*{window.label.upper()} - ARRIVALS*\n\n"
        f"📊 *Reservations:* {stats.arrived_reservations}/{stats.total_reservations} "
        f"({stats.reservation_rate}%)\n"
        f"👥 *Guests:* {stats.arrived_people}/{stats.total_people} ({stats.people_rate}%)\n\n"
        "Tap a reservation to change its status:"
    )


def build_arrival_stats_message(
    window: ServiceWindow, stats: ArrivalStats, records: list[ReservationRecord]
) -> str:
    lines = [
        f"*{window.label.upper()} STATISTICS*",
        "",
        "📊 *RESERVATIONS*",
        f"• Total: {stats.total_reservations}",
        f"• Arrived: {stats.arrived_reservations}",
        f"• Rate: {stats.reservation_rate}%",
        "",
        "👥 *GUESTS*",
        f"• Total: {stats.total_people}",
        f"• Arrived: {stats.arrived_people}",
        f"• Rate: {stats.people_rate}%",
        "",
        "📋 *DETAIL*",
    ]
    for r in records:
        lines.append(
            f"{'✅' if r.arrived else '❌'} {r.scheduled_at.strftime('%H:%M')} - "
            f"{escape_md(r.customer_name)} ({r.party_size})"
        )
    return "\n".join(lines)


def build_today_list_message(
    records: list[ReservationRecord], capabilities: SchemaCapabilities
) -> str:
    lines = ["*Today's reservations:*"]
    for r in sorted(records, key=lambda rec: rec.scheduled_at):
        line = (
            f"– {r.scheduled_at.strftime('%H:%M')}, {r.party_size} ppl: "
            f"{escape_md(r.customer_name)}"
        )
        if capabilities.has_phone_email:
            if r.phone:
                line += f" 📞 {escape_md(r.phone)}"
            if r.email:
                line += f" 📧 {escape_md(r.email)}"
        if capabilities.has_arrival_tracking:
            line += " ✅" if r.arrived else " ❌"
        lines.append(line)
    return "\n".join(lines)


def group_events_by_day(events: list[CalendarEvent]) -> "OrderedDict[date, list[CalendarEvent]]":
    grouped: OrderedDict[date, list[CalendarEvent]] = OrderedDict()
    for event in sorted(events, key=lambda e: e.start):
        grouped.setdefault(event.start.date(), []).append(event)
    return grouped


def build_events_message(title: str, events: list[CalendarEvent]) -> str:
    lines = [title, ""]
    for day, day_events in group_events_by_day(events).items():
        lines.append(f"*{day.strftime('%A %d/%m')}*")
        for event in day_events:
            summary = escape_md(event.summary or "Reservation")
            lines.append(f"  • {event.start.strftime('%H:%M')} - {summary}")
        lines.append("")
    return "\n".join(lines).rstrip()


def build_waitlist_message(entries: list[WaitlistEntry]) -> str:
    lines = [f"📋 *WAITLIST* ({len(entries)})", ""]
    for position, entry in enumerate(entries, start=1):
        lines.append(f"*{position}.* {escape_md(entry.customer_name)}")
        lines.append(f"   📅 {entry.requested_at.strftime('%d/%m/%Y %H:%M')}")
        lines.append(f"   👥 {entry.party_size} ppl ({entry.source.value})")
        if entry.phone:
            lines.append(f"   📞 {escape_md(entry.phone)}")
        if entry.email:
            lines.append(f"   📧 {escape_md(entry.email)}")
        lines.append("")
    return "\n".join(lines).rstrip()


def build_debug_message(
    headers: list[str],
    rows: list[dict[str, str]],
    capabilities: SchemaCapabilities,
    tail: int = 5,
) -> str:
    lines = [
        "🔍 *STORE DEBUG*",
        "",
        f"📊 Total rows: {len(rows)}",
        f"📋 Headers: {escape_md(', '.join(headers))}",
        f"🔧 Enhanced mode: {'ON' if capabilities.has_phone_email else 'OFF'}",
        f"👥 Arrival tracking: {'ON' if capabilities.has_arrival_tracking else 'OFF'}",
        "",
        f"📅 *Last {tail} reservations:*",
    ]
    for position, row in enumerate(rows[-tail:], start=1):
        lines.append(f"*{position}.* {escape_md(row.get('Name') or 'N/A')}")
        lines.append(f"   DateTime: {escape_md(row.get('DateTime') or 'N/A')}")
        lines.append(f"   PartySize: {escape_md(row.get('PartySize') or 'N/A')}")
        lines.append(f"   Source: {escape_md(row.get('Source') or 'N/A')}")
        if capabilities.has_phone_email:
            lines.append(f"   Phone: {escape_md(row.get('PhoneNumber') or 'N/A')}")
            lines.append(f"   Email: {escape_md(row.get('Email') or 'N/A')}")
        if capabilities.has_arrival_tracking:
            lines.append(f"   Arrived: {escape_md(row.get('Arrived') or 'N/A')}")
        lines.append(f"   Timestamp: {escape_md(row.get('Timestamp') or 'N/A')}")
    return "\n".join(lines)


def build_refresh_message(before: SchemaCapabilities, after: SchemaCapabilities) -> str:
    lines = ["🔄 *Store schema reloaded*", ""]
    if after.has_phone_email and not before.has_phone_email:
        lines.append("🎉 *Enhanced mode on*: PhoneNumber and Email columns detected.")
    elif before.has_phone_email and not after.has_phone_email:
        lines.append("⚠️ *Back to compatible mode*: PhoneNumber/Email columns missing.")
    if after.has_arrival_tracking and not before.has_arrival_tracking:
        lines.append("🎉 *Arrival tracking on*: Arrived column detected.")
    elif before.has_arrival_tracking and not after.has_arrival_tracking:
        lines.append("⚠️ *Arrival tracking off*: Arrived column missing.")
    lines.append(f"*Current mode:* {after.mode_label}")
    return "\n".join(lines)


def build_confirmation_message(
    record: ReservationRecord, remaining: Optional[int], service: Optional[str]
) -> str:
    lines = [
        "✅ *Reservation confirmed!*",
        "",
        f"📅 {format_day(record.scheduled_at.date())}",
        f"🕐 {record.scheduled_at.strftime('%H:%M')}",
        f"👥 {record.party_size} ppl",
        f"📝 {escape_md(record.customer_name)}",
    ]
    if record.phone:
        lines.append(f"📞 {escape_md(record.phone)}")
    lines.append(f"📊 Seats left for {service}: {remaining}")
    return "\n".join(lines)


def build_new_booking_notification(
    record: ReservationRecord, remaining: Optional[int], service: Optional[str], web: bool
) -> str:
    header = "📲 *New web reservation*" if web else "📞 *New reservation*"
    lines = [
        header,
        f"• {record.scheduled_at.strftime('%A %d %B %H:%M')}",
        f"• {record.party_size} ppl: {escape_md(record.customer_name)}",
    ]
    if record.phone:
        lines.append(f"• 📞 {escape_md(record.phone)}")
    if record.email:
        lines.append(f"• 📧 {escape_md(record.email)}")
    lines.append(f"• Seats left for {service}: {remaining}")
    return "\n".join(lines)


def build_waitlist_notification(
    name: str, party_size: int, requested_at: datetime, phone: Optional[str]
) -> str:
    lines = [
        "⏳ *Waitlist*",
        f"• {escape_md(name)} - {party_size} ppl",
        f"• {requested_at.strftime('%Y-%m-%d %H:%M')}",
    ]
    if phone:
        lines.append(f"• 📞 {escape_md(phone)}")
    return "\n".join(lines)
