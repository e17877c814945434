from __future__ import annotations

from aiogram import Bot

from .models import Notification, NotificationKind

PREFIXES = {
    NotificationKind.SUCCESS: "✅",
    NotificationKind.ERROR: "⚠️",
}


def format_notification(notification: Notification) -> str:
    return f"{PREFIXES[notification.kind]} {notification.message}"


class BotNotifier:
    """Delivers controller notifications to one Telegram chat."""

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id

    async def notify(self, notification: Notification) -> None:
        await self.bot.send_message(self.chat_id, format_notification(notification), parse_mode=None)
