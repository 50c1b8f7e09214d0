"""
Offline console demo: drives the staff chat bot without Telegram.

Uses the real chat controller, admission engine and state machine over an
in-memory reservation store and calendar. No token, no network calls.
Type a menu label or free text as a chat message; prefix a button
payload with "!" to press an inline button (e.g. ``!party_4``).

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario full
"""

import argparse
from datetime import date, timedelta

from src.app_context import build_context
from src.config import settings
from src.conversation.controller import ChatController, ChatResponse
from src.conversation.keyboards import MenuLabel
from src.integrations.store import InMemoryReservationStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CONSOLE_USER = "console"


class ConsoleSession:
    """Simulates the staff chat in the terminal."""

    MAX_INPUT_LENGTH = 500

    # {day} is replaced by tomorrow's date, which the date picker always offers.
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            MenuLabel.NEW_RESERVATION.value,
            "!date_{day}",
            "!time_19:30",
            "!party_4",
            "Dupont",
            "06 12 34 56 78",
            MenuLabel.REMAINING.value,
        ],
        "full": [
            "/new {day} 12:30 58 Banquet",
            "/new {day} 13:00 4 Martin",
            "!capacity_status",
            "!waitlist_view",
        ],
        "arrivals": [
            "/new {today} 12:00 2 Leroy",
            "/new {today} 13:00 5 Bernard",
            MenuLabel.LUNCH_ARRIVALS.value,
            "!toggle_arrival_lunch_1",
            "!arrival_stats_lunch",
        ],
    }

    def __init__(self) -> None:
        self.context = build_context(store=InMemoryReservationStore())
        self.controller = ChatController(self.context)

    def bot_say(self, response: ChatResponse) -> None:
        if response.callback_answer:
            print(f"{DIM}  (toast) {response.callback_answer}{RESET}")
        for reply in response.replies:
            print(f"{GREEN}{BOLD}[Bot]{RESET} {GREEN}{reply.text}{RESET}")
            if reply.keyboard and reply.keyboard.inline:
                for row in reply.keyboard.rows:
                    buttons = "  ".join(
                        f"[{b.label}]" if b.payload == "noop" else f"[{b.label} !{b.payload}]"
                        for b in row
                    )
                    print(f"{DIM}    {buttons}{RESET}")
        for text in response.notifications:
            print(f"{YELLOW}  >> staff: {text.replace(chr(10), ' | ')}{RESET}")

    def send(self, text: str) -> None:
        if text.startswith("!"):
            self.bot_say(self.controller.handle_callback(CONSOLE_USER, text[1:]))
        else:
            self.bot_say(self.controller.handle_text(CONSOLE_USER, text))
        session = self.context.sessions.get(CONSOLE_USER)
        if session is not None:
            print(f"{DIM}  >> State: {session.state.value}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.restaurant.name.upper()} BOOKING BOT - {title}{RESET}")
        print(f"{BOLD}  Mode: {self.context.state.capabilities.mode_label}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        today = date.today()
        self._banner(f"Scenario: {scenario}")
        self.bot_say(self.controller.handle_start(CONSOLE_USER))
        for step in self.SCENARIOS[scenario]:
            step = step.format(day=today + timedelta(days=1), today=today)
            print(f"\n{BLUE}[Staff] {RESET}{step}")
            self.send(step)
        print(f"\n{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Store rows: {len(self.context.store.rows())}, "
              f"waitlist: {len(self.context.waitlist)}{RESET}")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{DIM}  Type 'quit' to exit, '!payload' to press a button{RESET}")
        self.bot_say(self.controller.handle_start(CONSOLE_USER))
        while True:
            user_input = input(f"\n{BLUE}[Staff] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                print(f"{DIM}  Input too long, ignored.{RESET}")
                continue
            self.send(user_input)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
