import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties

from weightrack.api import WeightApiClient
from weightrack.config import Settings
from weightrack.controller import ControllerRegistry
from weightrack.handlers import router
from weightrack.notifier import BotNotifier


async def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    client = WeightApiClient(settings.api_url, timeout=settings.api_timeout)
    await client.connect()

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode="HTML"),
    )
    bot.controllers = ControllerRegistry(client, lambda chat_id: BotNotifier(bot, chat_id))  # type: ignore[attr-defined]
    dp = Dispatcher()
    dp.include_router(router)

    try:
        await dp.start_polling(bot)
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
