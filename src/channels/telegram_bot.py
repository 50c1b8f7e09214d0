"""
Telegram adapter for the staff chat bot.

Translates Telegram updates into ChatController calls and renders the
returned ChatResponse as Telegram messages. The controller is
synchronous, so it runs in a worker thread to keep the event loop (and
the web endpoint sharing it) responsive.
"""

import asyncio
import logging
from typing import Optional

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    Update,
)
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.conversation.controller import ChatController, ChatResponse
from src.conversation.keyboards import Keyboard
from src.prompts.messages import GENERIC_ERROR

logger = logging.getLogger(__name__)


def to_markup(keyboard: Optional[Keyboard]):
    """Render a platform-neutral Keyboard as a Telegram reply markup."""
    if keyboard is None:
        return None
    if keyboard.inline:
        return InlineKeyboardMarkup([
            [InlineKeyboardButton(b.label, callback_data=b.payload) for b in row]
            for row in keyboard.rows
        ])
    return ReplyKeyboardMarkup(
        [[KeyboardButton(b.label) for b in row] for row in keyboard.rows],
        resize_keyboard=True,
    )


class TelegramNotifier:
    """Posts staff notifications to the configured Telegram chat."""

    def __init__(self, bot, chat_id: str) -> None:
        self.bot = bot
        self.chat_id = chat_id

    async def notify(self, text: str) -> None:
        if not self.chat_id:
            logger.info("No staff chat configured, dropping notification")
            return
        try:
            await self.bot.send_message(self.chat_id, text, parse_mode=ParseMode.MARKDOWN)
        except TelegramError as exc:
            logger.error("Telegram notification failed: %s", exc)


class TelegramChannel:
    """Owns the python-telegram-bot Application and its polling lifecycle."""

    def __init__(
        self,
        controller: ChatController,
        token: Optional[str] = None,
        staff_chat_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.controller = controller
        timeout = timeout or settings.policy.external_call_timeout_sec
        self.application = (
            Application.builder()
            .token(token or settings.integrations.telegram_bot_token)
            .connect_timeout(timeout)
            .read_timeout(timeout)
            .write_timeout(timeout)
            .build()
        )
        self.notifier = TelegramNotifier(
            self.application.bot,
            staff_chat_id if staff_chat_id is not None else settings.integrations.telegram_chat_id,
        )
        self.application.add_handler(CommandHandler("start", self.on_start))
        self.application.add_handler(CallbackQueryHandler(self.on_callback))
        self.application.add_handler(MessageHandler(filters.TEXT, self.on_text))
        self.application.add_error_handler(self.on_error)

        interval = settings.policy.housekeeping_interval_sec
        self.application.job_queue.run_repeating(
            self.on_housekeeping, interval=interval, first=interval, name="housekeeping"
        )

    async def start(self) -> None:
        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling()
        logger.info("Telegram polling started")

    async def stop(self) -> None:
        await self.application.updater.stop()
        await self.application.stop()
        await self.application.shutdown()
        logger.info("Telegram polling stopped")

    async def on_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        response = await asyncio.to_thread(
            self.controller.handle_start, update.effective_user.id
        )
        await self._deliver(update, response)

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        response = await asyncio.to_thread(
            self.controller.handle_text, update.effective_user.id, update.message.text
        )
        await self._deliver(update, response)

    async def on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        response = await asyncio.to_thread(
            self.controller.handle_callback, update.effective_user.id, query.data or ""
        )
        await query.answer(response.callback_answer)
        await self._deliver(update, response)

    async def on_housekeeping(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        await asyncio.to_thread(self.controller.housekeeping)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("Error while handling update", exc_info=context.error)
        if isinstance(update, Update) and update.effective_chat is not None:
            try:
                await update.effective_chat.send_message(GENERIC_ERROR)
            except TelegramError:
                logger.warning("Could not report the error to chat %s", update.effective_chat.id)

    async def _deliver(self, update: Update, response: ChatResponse) -> None:
        query = update.callback_query
        for reply in response.replies:
            markup = to_markup(reply.keyboard)
            can_edit = query is not None and (reply.keyboard is None or reply.keyboard.inline)
            if reply.edit and can_edit:
                try:
                    await query.edit_message_text(
                        reply.text, parse_mode=ParseMode.MARKDOWN, reply_markup=markup
                    )
                    continue
                except BadRequest as exc:
                    # e.g. "message is not modified" after a double tap
                    logger.debug("Edit failed, sending instead: %s", exc)
            await update.effective_chat.send_message(
                reply.text, parse_mode=ParseMode.MARKDOWN, reply_markup=markup
            )
        for text in response.notifications:
            await self.notifier.notify(text)
