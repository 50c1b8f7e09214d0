"""
Reservation assistant entry point.

Serves the web form endpoint over HTTP and, when a Telegram token is
configured, runs the staff chat bot in the same process and event loop.
Supports an offline console mode for development.

Usage:
    Server:       python main.py serve
    Console mode: python main.py console
"""

import logging
import sys

from src.config import settings
from src.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _build_app():
    """Wire the booking core, the chat bot and the FastAPI app."""
    from src.api.webhook import create_app
    from src.app_context import build_context
    from src.conversation.controller import ChatController

    context = build_context()
    background = notifier = None
    if settings.integrations.telegram_bot_token:
        from src.channels.telegram_bot import TelegramChannel

        background = TelegramChannel(ChatController(context))
        notifier = background.notifier
    else:
        logger.warning("TELEGRAM_BOT_TOKEN not set, running the web endpoint only")
    return create_app(context, notifier=notifier, background=background)


def _run_server_mode() -> None:
    """Start the HTTP server (and the Telegram bot if configured)."""
    import uvicorn

    try:
        app = _build_app()
    except ConfigurationError as exc:
        logger.critical("Startup failed: %s", exc)
        sys.exit(1)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


def _run_console_mode() -> None:
    """Start the offline console demo (no token required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server_mode()
