"""Tests for the Telegram adapter helpers (no network)."""

import asyncio

from telegram import InlineKeyboardMarkup, ReplyKeyboardMarkup
from telegram.error import NetworkError

from src.channels.telegram_bot import TelegramChannel, TelegramNotifier, to_markup
from src.conversation.keyboards import main_menu_keyboard, party_size_keyboard


class FakeBot:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_message(self, chat_id, text, parse_mode=None):
        if self.fail:
            raise NetworkError("connection reset")
        self.sent.append((chat_id, text))


class TestMarkup:
    def test_inline_keyboard(self):
        markup = to_markup(party_size_keyboard())
        assert isinstance(markup, InlineKeyboardMarkup)
        first = markup.inline_keyboard[0][0]
        assert first.text == "1"
        assert first.callback_data == "party_1"

    def test_reply_keyboard(self):
        markup = to_markup(main_menu_keyboard())
        assert isinstance(markup, ReplyKeyboardMarkup)
        assert markup.resize_keyboard is True
        assert markup.keyboard[0][0].text == "➕ New reservation"

    def test_no_keyboard(self):
        assert to_markup(None) is None


class TestNotifier:
    def test_sends_to_staff_chat(self):
        bot = FakeBot()
        asyncio.run(TelegramNotifier(bot, "-100123").notify("hello"))
        assert bot.sent == [("-100123", "hello")]

    def test_no_chat_configured(self):
        bot = FakeBot()
        asyncio.run(TelegramNotifier(bot, "").notify("hello"))
        assert bot.sent == []

    def test_delivery_failure_is_swallowed(self):
        bot = FakeBot(fail=True)
        asyncio.run(TelegramNotifier(bot, "-100123").notify("hello"))
        assert bot.sent == []


class FakeController:
    def __init__(self):
        self.housekeeping_runs = 0

    def housekeeping(self):
        self.housekeeping_runs += 1
        return 0, 0


class TestHousekeepingJob:
    def test_job_registered_and_runs_controller(self):
        controller = FakeController()
        channel = TelegramChannel(controller, token="123456:TEST", staff_chat_id="")
        jobs = channel.application.job_queue.get_jobs_by_name("housekeeping")
        assert len(jobs) == 1

        asyncio.run(channel.on_housekeeping(None))
        assert controller.housekeeping_runs == 1
