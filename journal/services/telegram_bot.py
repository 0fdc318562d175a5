"""Telegram bot that relays broadcast signals and answers a few read-only commands."""

import asyncio
import logging
import threading
from typing import Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes
from sqlmodel import Session

from journal.config import settings

logger = logging.getLogger(__name__)

_bot_instance: Optional["TelegramBot"] = None


def format_signal(signal) -> str:
    """Human-readable one-message rendering of a broadcast signal."""
    lines = [f"[{signal.signal_type.upper()}] {signal.pair}", signal.message]
    if signal.entry_range:
        lines.append(f"Entry: {signal.entry_range}")
    if signal.take_profit is not None:
        lines.append(f"TP: {signal.take_profit}")
    if signal.stop_loss is not None:
        lines.append(f"SL: {signal.stop_loss}")
    return "\n".join(lines)


class TelegramBot:
    """Telegram bot running in a background thread with its own event loop."""

    def __init__(self, token: str, chat_ids: list[int]):
        self.token = token
        self.chat_ids = set(chat_ids)
        self._app: Optional[Application] = None
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _is_authorized(self, user_id: int) -> bool:
        return user_id in self.chat_ids

    async def _check_auth(self, update: Update) -> bool:
        if not update.effective_user or not self._is_authorized(update.effective_user.id):
            if update.message:
                await update.message.reply_text("Unauthorized.")
            return False
        return True

    async def _cmd_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not await self._check_auth(update):
            return

        from journal.engine.price_watch import get_scheduler_status
        from journal.services.signal_hub import hub

        status = get_scheduler_status()
        scheduler_str = "running" if status["running"] else "stopped"
        text = (
            f"Price watch: {scheduler_str}\n"
            f"Watched trades: {status['job_count']}\n"
            f"Signal subscribers: {hub.subscriber_count}"
        )
        await update.message.reply_text(text)

    async def _cmd_signals(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not await self._check_auth(update):
            return

        from journal.database import engine
        from journal.store import JournalStore

        with Session(engine) as session:
            signals = JournalStore(session).list_signals(limit=5)
            if not signals:
                await update.message.reply_text("No signals yet.")
                return
            text = "\n\n".join(format_signal(s) for s in signals)

        await update.message.reply_text(text)

    async def send_notification(self, message: str):
        """Send a message to all whitelisted chat IDs."""
        if not self._app or not self._app.bot:
            return
        for chat_id in self.chat_ids:
            try:
                await self._app.bot.send_message(chat_id=chat_id, text=message)
            except Exception as e:
                logger.warning(f"Failed to send Telegram notification to {chat_id}: {e}")

    def notify(self, message: str):
        """Queue a notification from any thread (fire-and-forget)."""
        if self._loop is None:
            return
        asyncio.run_coroutine_threadsafe(self.send_notification(message), self._loop)

    def _run_bot(self):
        """Run the bot in a background thread with its own event loop."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        self._app = (
            Application.builder()
            .token(self.token)
            .build()
        )

        self._app.add_handler(CommandHandler("status", self._cmd_status))
        self._app.add_handler(CommandHandler("signals", self._cmd_signals))

        logger.info("Telegram bot starting...")
        self._loop.run_until_complete(self._app.initialize())
        self._loop.run_until_complete(self._app.start())
        self._loop.run_until_complete(self._app.updater.start_polling())
        self._loop.run_forever()

    def start(self):
        self._thread = threading.Thread(target=self._run_bot, daemon=True)
        self._thread.start()

    def stop(self):
        if self._loop and self._app:
            async def _shutdown():
                await self._app.updater.stop()
                await self._app.stop()
                await self._app.shutdown()

            asyncio.run_coroutine_threadsafe(_shutdown(), self._loop).result(timeout=10)
            self._loop.call_soon_threadsafe(self._loop.stop)


def init_bot() -> TelegramBot:
    """Initialize and return the bot singleton."""
    global _bot_instance
    _bot_instance = TelegramBot(
        token=settings.telegram_bot_token,
        chat_ids=settings.telegram_chat_ids,
    )
    return _bot_instance


def get_bot() -> Optional[TelegramBot]:
    """Get the bot singleton, or None if not initialized."""
    return _bot_instance
