"""
Fixed user-facing texts for the staff chat.

Restaurant-specific values are injected from configuration, not hardcoded.
Messages use Telegram Markdown (``*bold*``) and stay short: no stack
traces or internal identifiers ever reach the chat.
"""

from src.config import settings

_restaurant = settings.restaurant

WELCOME = f"Welcome to {_restaurant.name}! {{mode}}\n\nChoose an action:"

MAIN_MENU = "Main menu:"

PICK_DATE = "📅 Pick a date for the reservation:"

PICK_TIME = "📅 Date: {date}\n\n🕐 Pick a time:"

PICK_PARTY = "📅 Date: {date}\n🕐 Time: {time}\n\n👥 How many guests?"

ASK_NAME = (
    "📅 Date: {date}\n🕐 Time: {time}\n👥 Guests: {party}\n\n"
    "📝 Now send the name for the reservation:"
)

ASK_PHONE = (
    "📅 Date: {date}\n🕐 Time: {time}\n👥 Guests: {party}\n📝 Name: {name}\n\n"
    "📞 *Phone number (optional)*\n\nType the number or \"skip\":"
)

SKIP_WORDS = frozenset({"skip", "-", "no"})

SESSION_EXPIRED = "❌ Session expired, please start again."

USE_MENU = "Use the menu buttons below, or /start to show them."

INVALID_NAME = "❌ Please send a name of at least 2 characters."

INVALID_PHONE = "❌ That phone number doesn't look right. Send it again or type \"skip\"."

INVALID_CAPACITY = "❌ Enter a whole number greater than 0."

GENERIC_ERROR = "❌ Something went wrong. Please try again."

STORE_ERROR = "❌ Reservation store unavailable, please try again shortly."

ARRIVALS_UNAVAILABLE = (
    "❌ Arrival tracking unavailable.\n\n"
    "Add an \"Arrived\" column to the reservation sheet, then send /refresh."
)

NO_RESERVATIONS_TODAY = "No reservations today."

NO_RESERVATIONS_WINDOW = "📋 No {label} reservations today."

NO_EVENTS_MONTH = "No reservations in the calendar this month."

NO_EVENTS_WEEK = "📅 *No reservations this week.*"

WAITLIST_EMPTY = "📋 *Waitlist is empty*"

ONLINE_BLOCKED = "🚫 *ALL ONLINE BOOKINGS BLOCKED*\n\nThe web form is disabled."

ONLINE_ALLOWED = "✅ *ONLINE BOOKINGS ALLOWED*\n\nThe web form is active again (within capacity)."

QUICK_ADD_USAGE = (
    "❌ Invalid format. Use: `/new YYYY-MM-DD HH:MM N Name`\n\n"
    "Or press \"➕ New reservation\" for the guided flow."
)

WEB_CLOSED_MESSAGE = "Online booking is temporarily closed. Please call the restaurant directly."

STALE_BUTTON = "This button is no longer active."

UNKNOWN_ACTION = "Unknown action."

RESERVATION_NOT_FOUND = "Reservation not found."

ASK_CAPACITY = (
    "*Change {label} capacity*\n\nCurrent capacity: {current} seats\n\n"
    "Send the new number of seats:"
)

CAPACITY_UPDATED = "✅ {label} capacity changed: {previous} → {current} seats"

WINDOW_TOGGLED = "🔧 {label} service {status}"

MONTH_TITLE = "*Reservations until the end of {month}:*"

WEEK_TITLE = "📅 *This week's reservations*"

CANCELLED = "❌ Cancelled. Main menu:"
