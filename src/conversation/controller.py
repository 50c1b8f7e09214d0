"""
Chat controller: turns staff chat updates into booking-core calls.

The controller is synchronous and knows nothing about the chat platform.
Each handler returns a ChatResponse (replies to the sender, notifications
for the staff chat, an optional short callback answer); the platform
adapter renders it.

Usage:
    controller = ChatController(build_context())
    response = controller.handle_text(user_id, "➕ New reservation")
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Callable, Hashable, Optional

from src.app_context import AppContext
from src.config import settings
from src.conversation.keyboards import (
    CallbackAction,
    CallbackKind,
    Keyboard,
    MenuLabel,
    arrival_keyboard,
    arrival_stats_keyboard,
    back_to_capacity_keyboard,
    calendar_keyboard,
    capacity_menu_keyboard,
    main_menu_keyboard,
    parse_callback,
    party_size_keyboard,
    time_slots_keyboard,
    window_manage_keyboard,
)
from src.conversation.session_store import ConversationSession
from src.conversation.state_machine import (
    DialogueState,
    InvalidTransitionError,
    TransitionTrigger,
)
from src.errors import (
    ArrivalTrackingUnavailableError,
    BookingRejected,
    CalendarError,
    ReservationNotFoundError,
    StoreUnavailableError,
)
from src.integrations.store import detect_capabilities
from src.logging_context import get_request_logger, set_request_id
from src.prompts import messages
from src.prompts.message_templates import (
    build_arrival_stats_message,
    build_arrivals_message,
    build_capacity_status_message,
    build_confirmation_message,
    build_debug_message,
    build_events_message,
    build_new_booking_notification,
    build_refresh_message,
    build_remaining_seats_message,
    build_today_list_message,
    build_waitlist_message,
    build_waitlist_notification,
    build_window_manage_message,
    escape_md,
    format_day,
    format_hm,
)
from src.schemas.reservation_schema import Channel
from src.schemas.session_schema import (
    AwaitingCapacity,
    AwaitingDate,
    AwaitingName,
    AwaitingPartySize,
    AwaitingPhone,
    AwaitingTime,
    Committing,
    Idle,
)
from src.tools import arrivals
from src.tools.availability import today_capacity_status
from src.tools.booking import book_with_capacity_check
from src.tools.records import load_records, records_on
from src.utils import normalize_phone, parse_party_size, to_local

logger = get_request_logger(__name__)

QUICK_ADD_PATTERN = re.compile(
    r"^/new\s+(\d{4}-\d{2}-\d{2})\s+(\d{1,2}:\d{2})\s+(\d+)\s+(.+)$"
)
MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 6


@dataclass
class Reply:
    """One outgoing message. ``edit`` replaces the message whose button was pressed."""
    text: str
    keyboard: Optional[Keyboard] = None
    edit: bool = False


@dataclass
class ChatResponse:
    replies: list[Reply] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)
    callback_answer: Optional[str] = None

    def say(self, text: str, keyboard: Optional[Keyboard] = None, edit: bool = False) -> "ChatResponse":
        self.replies.append(Reply(text=text, keyboard=keyboard, edit=edit))
        return self


class ChatController:
    """Routes staff chat commands, menu labels, free text and button presses."""

    def __init__(
        self,
        context: AppContext,
        clock: Optional[Callable[[], datetime]] = None,
        almost_full_threshold: Optional[int] = None,
        closed_weekdays: Optional[tuple[int, ...]] = None,
    ) -> None:
        self.ctx = context
        self._clock = clock or (lambda: datetime.now(context.state.tz))
        self.almost_full_threshold = (
            settings.restaurant.almost_full_threshold
            if almost_full_threshold is None else almost_full_threshold
        )
        self.closed_weekdays = (
            settings.restaurant.closed_weekdays if closed_weekdays is None else closed_weekdays
        )
        self._menu_handlers: dict[str, Callable[[Hashable], ChatResponse]] = {
            MenuLabel.NEW_RESERVATION.value: self._start_booking,
            MenuLabel.TODAY.value: lambda _: self._today_view(),
            MenuLabel.MONTH.value: lambda _: self._month_view(),
            MenuLabel.WEEK.value: lambda _: self._week_view(),
            MenuLabel.REMAINING.value: lambda _: self._remaining_view(),
            MenuLabel.CAPACITY.value: lambda _: self._capacity_view(edit=False),
            MenuLabel.LUNCH_ARRIVALS.value: lambda _: self._arrivals_view("lunch"),
            MenuLabel.DINNER_ARRIVALS.value: lambda _: self._arrivals_view("dinner"),
            MenuLabel.BLOCK_ONLINE.value: lambda _: self._set_online_blocked(True),
            MenuLabel.UNBLOCK_ONLINE.value: lambda _: self._set_online_blocked(False),
            MenuLabel.DEBUG.value: lambda _: self._debug_view(),
        }

    def now(self) -> datetime:
        return to_local(self._clock(), self.ctx.state.tz)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_start(self, user_id: Hashable) -> ChatResponse:
        set_request_id(f"chat-{user_id}")
        self.ctx.sessions.discard(user_id)
        welcome = messages.WELCOME.format(mode=self.ctx.state.capabilities.mode_label)
        return ChatResponse().say(welcome, main_menu_keyboard())

    def handle_text(self, user_id: Hashable, text: str) -> ChatResponse:
        """Handle a typed message, a command, or a main-menu label."""
        set_request_id(f"chat-{user_id}")
        text = text.strip()
        try:
            if text.startswith("/start"):
                return self.handle_start(user_id)
            if text.startswith("/refresh"):
                return self._refresh()
            if text.startswith("/new"):
                return self._quick_add(text)
            if text.startswith("/cancel"):
                return self._cancel(user_id)

            handler = self._menu_handlers.get(text)
            if handler is not None:
                return handler(user_id)
            return self._dialogue_text(user_id, text)
        except StoreUnavailableError as exc:
            logger.error("Store unavailable while handling text: %s", exc)
            return ChatResponse().say(messages.STORE_ERROR)

    def handle_callback(self, user_id: Hashable, payload: str) -> ChatResponse:
        """Handle an inline button press."""
        set_request_id(f"chat-{user_id}")
        action = parse_callback(payload)
        if action is None:
            logger.warning("Unrecognized callback payload %r", payload)
            return ChatResponse(callback_answer=messages.UNKNOWN_ACTION)
        if action.kind == CallbackKind.NOOP:
            return ChatResponse()
        try:
            return self._dispatch_callback(user_id, action)
        except InvalidTransitionError as exc:
            logger.info("Stale button %r: %s", payload, exc)
            return ChatResponse(callback_answer=messages.STALE_BUTTON)
        except KeyError as exc:
            logger.warning("Callback %r names an unknown window: %s", payload, exc)
            return ChatResponse(callback_answer=messages.UNKNOWN_ACTION)
        except StoreUnavailableError as exc:
            logger.error("Store unavailable while handling %r: %s", payload, exc)
            return ChatResponse().say(messages.STORE_ERROR)

    def _dispatch_callback(self, user_id: Hashable, action: CallbackAction) -> ChatResponse:
        kind = action.kind
        if kind in (CallbackKind.DATE, CallbackKind.TIME, CallbackKind.PARTY,
                    CallbackKind.BACK_TO_CALENDAR, CallbackKind.BACK_TO_TIME):
            return self._booking_callback(user_id, action)
        if kind == CallbackKind.TOGGLE_ARRIVAL:
            return self._toggle_arrival(action.window, action.row_index)
        if kind == CallbackKind.ARRIVAL_STATS:
            return self._arrival_stats_view(action.window)
        if kind == CallbackKind.REFRESH_ARRIVALS:
            return self._arrivals_view(action.window, edit=True)
        if kind == CallbackKind.MANAGE_WINDOW:
            return self._manage_view(action.window)
        if kind == CallbackKind.TOGGLE_WINDOW:
            return self._toggle_window(action.window)
        if kind == CallbackKind.EDIT_CAPACITY:
            return self._start_capacity_edit(user_id, action.window)
        if kind == CallbackKind.CAPACITY_STATUS:
            return self._capacity_view(edit=True)
        if kind == CallbackKind.WAITLIST_VIEW:
            return self._waitlist_view()
        # BACK_MAIN
        self.ctx.sessions.discard(user_id)
        return ChatResponse().say(messages.MAIN_MENU, main_menu_keyboard())

    # ------------------------------------------------------------------
    # Guided booking dialogue
    # ------------------------------------------------------------------

    def _calendar(self) -> Keyboard:
        return calendar_keyboard(self.now().date(), self.closed_weekdays)

    def _start_booking(self, user_id: Hashable) -> ChatResponse:
        session = self.ctx.sessions.start(user_id, self.ctx.state.capabilities)
        session.advance(TransitionTrigger.START_BOOKING, AwaitingDate())
        return ChatResponse().say(messages.PICK_DATE, self._calendar())

    def _cancel(self, user_id: Hashable) -> ChatResponse:
        session = self._live_session(user_id)
        if session is None or not session.machine.can_transition(TransitionTrigger.CANCEL):
            return ChatResponse().say(messages.MAIN_MENU, main_menu_keyboard())
        session.advance(TransitionTrigger.CANCEL, Idle())
        self.ctx.sessions.discard(user_id)
        logger.info("Dialogue cancelled by %s", user_id)
        return ChatResponse().say(messages.CANCELLED, main_menu_keyboard())

    def _live_session(self, user_id: Hashable) -> Optional[ConversationSession]:
        session = self.ctx.sessions.get(user_id)
        if session is not None:
            self.ctx.sessions.touch(session)
        return session

    def _expired(self, user_id: Hashable) -> ChatResponse:
        self.ctx.sessions.pop_expired(user_id)
        return ChatResponse(callback_answer=messages.SESSION_EXPIRED).say(messages.SESSION_EXPIRED)

    def _booking_callback(self, user_id: Hashable, action: CallbackAction) -> ChatResponse:
        session = self._live_session(user_id)

        if action.kind == CallbackKind.DATE:
            if session is None or session.state != DialogueState.AWAITING_DATE:
                session = self.ctx.sessions.start(user_id, self.ctx.state.capabilities)
                session.advance(TransitionTrigger.START_BOOKING, AwaitingDate())
            session.advance(TransitionTrigger.DATE_SELECTED, AwaitingTime(date=action.date))
            return ChatResponse().say(
                messages.PICK_TIME.format(date=format_day(action.date)),
                time_slots_keyboard(self.ctx.state),
                edit=True,
            )

        if action.kind == CallbackKind.BACK_TO_CALENDAR:
            if session is None or session.state not in (
                DialogueState.AWAITING_TIME, DialogueState.AWAITING_PARTY_SIZE
            ):
                session = self.ctx.sessions.start(user_id, self.ctx.state.capabilities)
                session.advance(TransitionTrigger.START_BOOKING, AwaitingDate())
            else:
                session.advance(TransitionTrigger.BACK_TO_DATE, AwaitingDate())
            return ChatResponse().say(messages.PICK_DATE, self._calendar(), edit=True)

        if session is None:
            return self._expired(user_id)
        payload = session.payload

        if action.kind == CallbackKind.TIME:
            if not isinstance(payload, AwaitingTime):
                raise InvalidTransitionError(f"Time picked in state {session.state.value}")
            session.advance(
                TransitionTrigger.TIME_SELECTED,
                AwaitingPartySize(date=payload.date, time=action.time),
            )
            return ChatResponse().say(
                messages.PICK_PARTY.format(date=format_day(payload.date), time=format_hm(action.time)),
                party_size_keyboard(),
                edit=True,
            )

        if action.kind == CallbackKind.BACK_TO_TIME:
            if not isinstance(payload, AwaitingPartySize):
                raise InvalidTransitionError(f"Back to time in state {session.state.value}")
            session.advance(TransitionTrigger.BACK_TO_TIME, AwaitingTime(date=payload.date))
            return ChatResponse().say(
                messages.PICK_TIME.format(date=format_day(payload.date)),
                time_slots_keyboard(self.ctx.state),
                edit=True,
            )

        # PARTY
        if not isinstance(payload, AwaitingPartySize):
            raise InvalidTransitionError(f"Party size picked in state {session.state.value}")
        session.advance(
            TransitionTrigger.PARTY_SELECTED,
            AwaitingName(date=payload.date, time=payload.time, party_size=action.party_size),
        )
        return ChatResponse().say(
            messages.ASK_NAME.format(
                date=format_day(payload.date), time=format_hm(payload.time), party=action.party_size
            ),
            edit=True,
        )

    def _dialogue_text(self, user_id: Hashable, text: str) -> ChatResponse:
        session = self._live_session(user_id)
        if session is None:
            if self.ctx.sessions.pop_expired(user_id):
                return ChatResponse().say(messages.SESSION_EXPIRED, main_menu_keyboard())
            return ChatResponse().say(messages.USE_MENU, main_menu_keyboard())

        payload = session.payload
        if isinstance(payload, AwaitingName):
            return self._name_entered(session, payload, text)
        if isinstance(payload, AwaitingPhone):
            return self._phone_entered(session, payload, text)
        if isinstance(payload, AwaitingCapacity):
            return self._capacity_entered(session, payload, text)
        return ChatResponse().say(messages.USE_MENU)

    def _name_entered(
        self, session: ConversationSession, payload: AwaitingName, text: str
    ) -> ChatResponse:
        if len(text) < MIN_NAME_LENGTH:
            return ChatResponse().say(messages.INVALID_NAME)
        if session.machine.capabilities.has_phone_email:
            session.advance(
                TransitionTrigger.NAME_ENTERED,
                AwaitingPhone(date=payload.date, time=payload.time,
                              party_size=payload.party_size, name=text),
            )
            return ChatResponse().say(messages.ASK_PHONE.format(
                date=format_day(payload.date), time=format_hm(payload.time),
                party=payload.party_size, name=escape_md(text),
            ))
        session.advance(
            TransitionTrigger.NAME_ENTERED,
            Committing(date=payload.date, time=payload.time,
                       party_size=payload.party_size, name=text),
        )
        return self._commit(session)

    def _phone_entered(
        self, session: ConversationSession, payload: AwaitingPhone, text: str
    ) -> ChatResponse:
        phone: Optional[str] = None
        if text.lower() not in messages.SKIP_WORDS:
            phone = normalize_phone(text)
            if len(phone.lstrip("+")) < MIN_PHONE_DIGITS:
                return ChatResponse().say(messages.INVALID_PHONE)
        session.advance(
            TransitionTrigger.PHONE_ENTERED,
            Committing(date=payload.date, time=payload.time, party_size=payload.party_size,
                       name=payload.name, phone=phone),
        )
        return self._commit(session)

    def _commit(self, session: ConversationSession) -> ChatResponse:
        """Run the admission-checked booking. The session ends either way."""
        payload = session.payload
        try:
            return self._book(payload.name, payload.party_size, payload.scheduled_for, payload.phone)
        finally:
            session.advance(TransitionTrigger.COMMIT_FINISHED, Idle())
            self.ctx.sessions.discard(session.user_id)

    def _book(
        self, name: str, party_size: int, instant: datetime, phone: Optional[str] = None
    ) -> ChatResponse:
        response = ChatResponse()
        try:
            confirmation = book_with_capacity_check(
                self.ctx.writer, self.ctx.waitlist, name, party_size, instant,
                Channel.CHAT, phone=phone,
            )
        except BookingRejected as exc:
            response.say(f"❌ {exc}", main_menu_keyboard())
            if exc.waitlist_id:
                response.notifications.append(
                    build_waitlist_notification(name, party_size, instant, phone)
                )
            return response
        except StoreUnavailableError as exc:
            logger.error("Reservation for %s not written: %s", name, exc)
            return response.say(messages.STORE_ERROR, main_menu_keyboard())

        availability = confirmation.availability
        response.say(
            build_confirmation_message(
                confirmation.record, availability.remaining, availability.service
            ),
            main_menu_keyboard(),
        )
        response.notifications.append(build_new_booking_notification(
            confirmation.record, availability.remaining, availability.service, web=False
        ))
        return response

    def _quick_add(self, text: str) -> ChatResponse:
        """``/new YYYY-MM-DD HH:MM N Name``, admitted like any chat booking."""
        match = QUICK_ADD_PATTERN.match(text)
        if not match:
            return ChatResponse().say(messages.QUICK_ADD_USAGE)
        day_text, time_text, party_text, name = match.groups()
        party_size = parse_party_size(party_text)
        try:
            instant = datetime.strptime(f"{day_text} {time_text}", "%Y-%m-%d %H:%M")
        except ValueError:
            instant = None
        if instant is None or party_size is None:
            return ChatResponse().say(messages.QUICK_ADD_USAGE)
        return self._book(name.strip(), party_size, instant)

    # ------------------------------------------------------------------
    # Operator capacity management
    # ------------------------------------------------------------------

    def _capacity_view(self, edit: bool) -> ChatResponse:
        state = self.ctx.state
        snapshots = today_capacity_status(self.ctx.store, state, self.now())
        return ChatResponse().say(
            build_capacity_status_message(state, snapshots),
            capacity_menu_keyboard(state),
            edit=edit,
        )

    def _manage_view(self, window_name: str) -> ChatResponse:
        window = self.ctx.state.get_window(window_name)
        return ChatResponse().say(
            build_window_manage_message(window), window_manage_keyboard(window), edit=True
        )

    def _toggle_window(self, window_name: str) -> ChatResponse:
        blocked = self.ctx.state.toggle_blocked(window_name)
        window = self.ctx.state.get_window(window_name)
        status = "closed" if blocked else "opened"
        response = self._manage_view(window_name)
        response.callback_answer = f"{window.label} {status}"
        response.notifications.append(
            messages.WINDOW_TOGGLED.format(label=window.label.capitalize(), status=status)
        )
        return response

    def _start_capacity_edit(self, user_id: Hashable, window_name: str) -> ChatResponse:
        window = self.ctx.state.get_window(window_name)
        session = self.ctx.sessions.start(user_id, self.ctx.state.capabilities)
        session.advance(TransitionTrigger.EDIT_CAPACITY, AwaitingCapacity(window=window.name))
        return ChatResponse().say(
            messages.ASK_CAPACITY.format(label=window.label, current=window.max_capacity)
        )

    def _capacity_entered(
        self, session: ConversationSession, payload: AwaitingCapacity, text: str
    ) -> ChatResponse:
        capacity = parse_party_size(text)
        if capacity is None:
            return ChatResponse().say(messages.INVALID_CAPACITY)
        previous = self.ctx.state.set_capacity(payload.window, capacity)
        session.advance(TransitionTrigger.CAPACITY_ENTERED, Idle())
        self.ctx.sessions.discard(session.user_id)

        label = self.ctx.state.get_window(payload.window).label.capitalize()
        update = messages.CAPACITY_UPDATED.format(label=label, previous=previous, current=capacity)
        response = ChatResponse().say(update, main_menu_keyboard())
        response.notifications.append(update)
        return response

    def _set_online_blocked(self, blocked: bool) -> ChatResponse:
        self.ctx.state.online_booking_blocked = blocked
        logger.info("Online bookings %s", "blocked" if blocked else "allowed")
        text = messages.ONLINE_BLOCKED if blocked else messages.ONLINE_ALLOWED
        return ChatResponse().say(text)

    def _waitlist_view(self) -> ChatResponse:
        entries = self.ctx.waitlist.list()
        text = build_waitlist_message(entries) if entries else messages.WAITLIST_EMPTY
        return ChatResponse().say(text, back_to_capacity_keyboard(), edit=True)

    # ------------------------------------------------------------------
    # Arrivals
    # ------------------------------------------------------------------

    def _arrivals_view(self, window_name: str, edit: bool = False) -> ChatResponse:
        state = self.ctx.state
        if not state.capabilities.has_arrival_tracking:
            return ChatResponse().say(messages.ARRIVALS_UNAVAILABLE, edit=edit)
        window = state.get_window(window_name)
        records = arrivals.list_today(self.ctx.store, state, window_name, self.now())
        if not records:
            return ChatResponse().say(
                messages.NO_RESERVATIONS_WINDOW.format(label=window.label), edit=edit
            )
        return ChatResponse().say(
            build_arrivals_message(window, arrivals.compute_stats(records)),
            arrival_keyboard(records, window_name),
            edit=edit,
        )

    def _toggle_arrival(self, window_name: str, row_index: int) -> ChatResponse:
        try:
            arrived = arrivals.toggle(self.ctx.store, self.ctx.state, row_index)
        except ArrivalTrackingUnavailableError:
            return ChatResponse().say(messages.ARRIVALS_UNAVAILABLE, edit=True)
        except ReservationNotFoundError:
            return ChatResponse(callback_answer=messages.RESERVATION_NOT_FOUND)
        response = self._arrivals_view(window_name, edit=True)
        response.callback_answer = "✅ Arrived" if arrived else "❌ Not arrived"
        return response

    def _arrival_stats_view(self, window_name: str) -> ChatResponse:
        state = self.ctx.state
        if not state.capabilities.has_arrival_tracking:
            return ChatResponse().say(messages.ARRIVALS_UNAVAILABLE, edit=True)
        window = state.get_window(window_name)
        records = arrivals.list_today(self.ctx.store, state, window_name, self.now())
        return ChatResponse().say(
            build_arrival_stats_message(window, arrivals.compute_stats(records), records),
            arrival_stats_keyboard(window_name),
            edit=True,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def _today_view(self) -> ChatResponse:
        state = self.ctx.state
        records = records_on(load_records(self.ctx.store, state.tz), self.now().date(), 0, 23, state.tz)
        if not records:
            return ChatResponse().say(messages.NO_RESERVATIONS_TODAY)
        return ChatResponse().say(build_today_list_message(records, state.capabilities))

    def _calendar_events(self, start: datetime, end: datetime) -> list:
        try:
            return self.ctx.calendar.list_events(self.ctx.writer.calendar_id, start, end)
        except CalendarError as exc:
            logger.error("Calendar listing failed: %s", exc)
            return []

    def _month_view(self) -> ChatResponse:
        now = self.now()
        month_end = datetime.combine(
            (now.date().replace(day=1) + timedelta(days=32)).replace(day=1), time(), now.tzinfo
        )
        events = self._calendar_events(now, month_end)
        if not events:
            return ChatResponse().say(messages.NO_EVENTS_MONTH)
        title = messages.MONTH_TITLE.format(month=now.strftime("%B"))
        return ChatResponse().say(build_events_message(title, events))

    def _week_view(self) -> ChatResponse:
        start = datetime.combine(self.now().date(), time(), self.now().tzinfo)
        events = self._calendar_events(start, start + timedelta(days=7))
        if not events:
            return ChatResponse().say(messages.NO_EVENTS_WEEK)
        return ChatResponse().say(build_events_message(messages.WEEK_TITLE, events))

    def _remaining_view(self) -> ChatResponse:
        state = self.ctx.state
        snapshots = today_capacity_status(self.ctx.store, state, self.now())
        return ChatResponse().say(build_remaining_seats_message(
            state, snapshots, len(self.ctx.waitlist), self.almost_full_threshold
        ))

    def _debug_view(self) -> ChatResponse:
        store = self.ctx.store
        return ChatResponse().say(
            build_debug_message(store.header(), store.rows(), self.ctx.state.capabilities)
        )

    def housekeeping(self) -> tuple[int, int]:
        """Drop expired sessions and admission locks for past dates.

        Returns (sessions purged, locks pruned).
        """
        purged = self.ctx.sessions.purge_expired()
        pruned = self.ctx.state.prune_admission_locks(self.now().date())
        if purged or pruned:
            logger.info("Housekeeping: %d sessions expired, %d locks pruned", purged, pruned)
        return purged, pruned

    def _refresh(self) -> ChatResponse:
        before = self.ctx.state.capabilities
        after = detect_capabilities(self.ctx.store)
        self.ctx.state.capabilities = after
        return ChatResponse().say(build_refresh_message(before, after), main_menu_keyboard())
