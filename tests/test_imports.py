"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_reservation_schema(self):
        from src.schemas.reservation_schema import (
            AvailabilityResult, Channel, RejectionReason, WebBookingRequest,
        )
        assert Channel.WEB_FORM == "Webflow"
        assert Channel.CHAT == "Phone"
        assert RejectionReason.OUTSIDE_HOURS == "outside-hours"
        assert AvailabilityResult(available=False).service is None
        assert WebBookingRequest().name is None

    def test_import_session_schema(self):
        from src.schemas.session_schema import Committing, Idle
        assert Idle() == Idle()
        assert Committing.__dataclass_fields__["phone"].default is None


class TestConversationImports:
    def test_import_conversation_package(self):
        from src.conversation import (
            BookingStateMachine, ConversationSession, DialogueState,
            InvalidTransitionError, SessionStore, TransitionTrigger,
        )
        sm = BookingStateMachine()
        assert sm.current_state == DialogueState.IDLE
        assert TransitionTrigger.START_BOOKING in sm.get_valid_triggers()
        assert issubclass(InvalidTransitionError, Exception)
        assert ConversationSession is not None
        assert SessionStore().ttl.total_seconds() > 0

    def test_import_keyboards(self):
        from src.conversation.keyboards import main_menu_keyboard, parse_callback
        assert parse_callback("noop") is not None
        assert main_menu_keyboard().rows


class TestToolImports:
    def test_import_services(self):
        from src.tools.services import RestaurantState, classify
        assert callable(classify)
        assert RestaurantState.from_config().window_names() == ["lunch", "dinner"]

    def test_import_availability(self):
        from src.tools.availability import check_availability, today_capacity_status
        assert callable(check_availability)
        assert callable(today_capacity_status)

    def test_import_booking(self):
        from src.tools.booking import ReservationWriter, book_with_capacity_check
        assert callable(book_with_capacity_check)
        assert ReservationWriter is not None

    def test_import_waitlist_and_arrivals(self):
        from src.tools.arrivals import compute_stats, toggle
        from src.tools.waitlist import WaitlistRegister
        assert len(WaitlistRegister()) == 0
        assert compute_stats([]).reservation_rate == 0
        assert callable(toggle)


class TestIntegrationImports:
    def test_import_integrations_package(self):
        from src.integrations import (
            InMemoryCalendar, InMemoryReservationStore, LogNotifier, detect_capabilities,
        )
        assert detect_capabilities(InMemoryReservationStore()).has_phone_email
        assert InMemoryCalendar() is not None
        assert LogNotifier().sent == []


class TestPromptImports:
    def test_import_messages(self):
        from src.config import settings
        from src.prompts.messages import SKIP_WORDS, WELCOME
        assert settings.restaurant.name in WELCOME
        assert "skip" in SKIP_WORDS

    def test_import_message_templates(self):
        from src.prompts.message_templates import (
            build_confirmation_message, build_remaining_seats_message, build_waitlist_message,
        )
        assert callable(build_confirmation_message)
        assert callable(build_remaining_seats_message)
        assert callable(build_waitlist_message)


class TestSurfaceImports:
    def test_import_api(self):
        from src.api import create_app, router
        assert any(route.path == "/webhook" for route in router.routes)
        assert callable(create_app)

    def test_import_channels(self):
        from src.channels import TelegramChannel, TelegramNotifier, to_markup
        assert to_markup(None) is None
        assert TelegramChannel is not None
        assert TelegramNotifier is not None


class TestConfigImport:
    def test_import_config(self):
        from src.config import settings
        assert settings.restaurant.name is not None
        assert settings.policy.session_ttl_minutes >= 1
        assert settings.policy.capacity_read_policy in ("fail_open", "fail_closed")


class TestConsoleDemo:
    def test_console_session_imports(self):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        assert session.context.store.rows() == []
        assert len(session.context.sessions) == 0

    def test_scenario_runs(self, capsys):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        session.run_scenario("full")
        assert len(session.context.waitlist) == 1
        assert "complete" in capsys.readouterr().out
