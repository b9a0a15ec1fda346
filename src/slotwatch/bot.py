"""
Telegram bot entrypoint built with aiogram 3.

ボットのエントリーポイント:
- テキストコマンド（start / on / off / 日付 / 削除 / clear / interval / status / 使い方）
- 監視タイマーをポーリングと並行して起動
- ADMIN_CHAT_ID 設定時は管理者のみ操作可能
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware, Bot, Dispatcher, F
from aiogram.types import Message
from pydantic import ValidationError

from .commands import handle_command
from .config import Settings, get_settings
from .monitor import Ticker, WatchService
from .store import DocumentStore
from .utils import setup_logging


logger = logging.getLogger(__name__)


class AdminOnlyMiddleware(BaseMiddleware):
    """Allow only admin user to interact with bot."""

    def __init__(self, admin_chat_id: int) -> None:
        super().__init__()
        self.admin_chat_id = admin_chat_id

    async def __call__(
        self,
        handler: Callable[[Message, Dict[str, Any]], Awaitable[Any]],
        event: Message,
        data: Dict[str, Any],
    ) -> Any:
        if getattr(event, "chat", None) and event.chat.id != self.admin_chat_id:
            await event.answer("このボットは管理者専用です。")
            return
        return await handler(event, data)


def build_dispatcher(store: DocumentStore, settings: Settings) -> Dispatcher:
    dp = Dispatcher()
    if settings.bot.admin_only:
        dp.message.middleware(AdminOnlyMiddleware(settings.bot.admin_chat_id))

    @dp.message(F.text)
    async def on_text(message: Message) -> None:
        try:
            reply = handle_command(store, message.text or "", message.chat.id)
        except Exception as e:  # noqa: BLE001
            logger.exception("Error processing command %r: %s", message.text, e)
            reply = "エラーが発生しました。しばらく待ってから再試行してください。"
        await message.answer(reply)

    @dp.message()
    async def on_other(message: Message) -> None:
        logger.info("Ignoring non-text message from %s", message.chat.id)

    return dp


def make_notifier(bot: Bot) -> Callable[[int, str], Awaitable[None]]:
    async def notify(chat_id: int, text: str) -> None:
        await bot.send_message(chat_id=chat_id, text=text)

    return notify


def main() -> None:
    """Entry point for running the bot."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        raise SystemExit(1) from None
    setup_logging()

    bot = Bot(settings.bot.token)
    store = DocumentStore(settings.store.store_dir)
    dp = build_dispatcher(store, settings)
    service = WatchService(store=store, notify=make_notifier(bot))
    ticker = Ticker(service=service, tick_seconds=settings.scheduler.tick_seconds)

    logger.info("Starting polling")
    asyncio.run(_run_polling(dp, bot, ticker))


async def _run_polling(dp: Dispatcher, bot: Bot, ticker: Ticker) -> None:
    await ticker.start()
    try:
        await dp.start_polling(bot)
    finally:
        await ticker.stop()
        await bot.session.close()


if __name__ == "__main__":
    main()
