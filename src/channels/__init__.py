from src.channels.telegram_bot import TelegramChannel, TelegramNotifier, to_markup

__all__ = ["TelegramChannel", "TelegramNotifier", "to_markup"]
