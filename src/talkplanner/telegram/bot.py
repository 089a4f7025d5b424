"""Telegram bot integration for Talk Planner."""

import io
import logging
from typing import Any

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..agent import StopReason
from ..config import App, Settings, build_app
from ..session import Sink

logger = logging.getLogger(__name__)


WELCOME_MESSAGE = """
🗓 *EthCC Talk Planner*

I help you find talks and build your EthCC schedule.

*Commands:*
/start - Show this message
/reset - Clear history and profile
/stop - Cancel the running answer

*Tips:*
• Ask for talks by track, day or topic ("DeFi talks on July 1st")
• Share your X/Twitter profile ("my twitter is @alice") for personalized picks
• Ask for a calendar file once you've picked your talks
"""

MAX_MESSAGE_LENGTH = 4096
CALENDAR_FILENAME = "ethcc-schedule.ics"


def truncate_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to fit Telegram limits."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 20] + "\n... [truncated]"


def format_response(response: str, stop_reason: StopReason, turns: int) -> str:
    """Format agent response for Telegram."""
    text = response

    if stop_reason == StopReason.MAX_TURNS:
        text += f"\n\n⚠️ Reached the tool round limit ({turns})"
    elif stop_reason == StopReason.REPEATED_CALL:
        text += "\n\n⚠️ Detected a loop, stopped"
    elif stop_reason == StopReason.CONSECUTIVE_ERRORS:
        text += "\n\n⚠️ Too many consecutive errors"

    return truncate_message(text)


def format_event(event: dict[str, Any]) -> str | None:
    """Text to post for a pushed session event, or None to stay quiet.

    Only running and error progress steps are posted; completions arrive as
    the appended history message.
    """
    kind = event.get("type")
    if kind == "progress" and event.get("status") in ("running", "error"):
        icon = "❌" if event["status"] == "error" else "⏳"
        return f"{icon} {event.get('message', '')}"
    if kind == "history":
        appended = event.get("appended") or {}
        texts = [p["text"] for p in appended.get("parts", []) if p.get("type") == "text"]
        return truncate_message("\n".join(texts)) or None
    return None


class TelegramBot:
    """Telegram bot for Talk Planner."""

    def __init__(self, app: App, token: str | None = None) -> None:
        self.app = app
        self.controller = app.controller
        self.token = token or app.settings.telegram_token
        if not self.token:
            raise ValueError("TELEGRAM_TOKEN not set")

        self.json_logger = self.controller.json_logger
        self._sinks: dict[str, Sink] = {}
        self._app: Application | None = None

    def _get_chat_id(self, update: Update) -> str:
        """Get chat_id as string from update."""
        assert update.effective_chat is not None
        return str(update.effective_chat.id)

    def _ensure_sink(self, chat_id: str, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Attach a sink posting background updates to this chat."""
        if chat_id in self._sinks:
            return
        bot = context.bot

        async def sink(event: dict[str, Any]) -> None:
            text = format_event(event)
            if text:
                await bot.send_message(chat_id=int(chat_id), text=text)

        self._sinks[chat_id] = sink
        self.controller.connect(chat_id, sink)

    async def _handle_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /start command."""
        assert update.message is not None
        chat_id = self._get_chat_id(update)
        self._ensure_sink(chat_id, context)

        self.json_logger.log("telegram_start", session_key=chat_id)

        await update.message.reply_text(
            WELCOME_MESSAGE,
            parse_mode=ParseMode.MARKDOWN,
        )

    async def _handle_reset(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /reset command."""
        assert update.message is not None
        chat_id = self._get_chat_id(update)

        self.controller.abort(chat_id)
        self.controller.clear(chat_id)

        self.json_logger.log("telegram_reset", session_key=chat_id)

        await update.message.reply_text("✨ Session reset. History and profile cleared.")

    async def _handle_stop(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /stop command."""
        assert update.message is not None
        chat_id = self._get_chat_id(update)

        if self.controller.abort(chat_id):
            await update.message.reply_text("⏹ Cancelled.")
        else:
            await update.message.reply_text("Nothing to cancel.")

    async def _handle_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle incoming messages."""
        assert update.message is not None
        assert update.message.text is not None

        chat_id = self._get_chat_id(update)
        message = update.message.text
        self._ensure_sink(chat_id, context)

        try:
            self.json_logger.log(
                "telegram_message",
                session_key=chat_id,
                message_length=len(message),
            )

            # Send typing indicator
            await update.message.chat.send_action("typing")

            reply = await self.controller.handle_turn(chat_id, message)

            if reply.stop_reason is not None:
                await update.message.reply_text(
                    format_response(reply.text, reply.stop_reason, reply.turns)
                )
            elif reply.text:
                await update.message.reply_text(truncate_message(reply.text))

            if reply.ics:
                document = io.BytesIO(reply.ics.encode("utf-8"))
                await update.message.reply_document(
                    document=document,
                    filename=CALENDAR_FILENAME,
                    caption="📅 Your EthCC schedule",
                )

        except Exception as e:
            logger.exception("Error processing message")
            self.json_logger.log("telegram_error", session_key=chat_id, error=str(e))
            await update.message.reply_text(f"❌ Error: {e}")

    async def _post_shutdown(self, application: Application) -> None:
        """Called after Application.shutdown()."""
        for chat_id, sink in self._sinks.items():
            self.controller.disconnect(chat_id, sink)
        self._sinks.clear()
        await self.app.aclose()

    def build_app(self) -> Application:
        """Build the Telegram application."""
        self._app = (
            Application.builder()
            .token(self.token)
            .concurrent_updates(True)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        # Add handlers
        self._app.add_handler(CommandHandler("start", self._handle_start))
        self._app.add_handler(CommandHandler("reset", self._handle_reset))
        self._app.add_handler(CommandHandler("stop", self._handle_stop))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )

        return self._app

    def run(self) -> None:
        """Run the bot (blocking)."""
        app = self.build_app()

        logger.info("Starting Telegram bot...")
        app.run_polling()


def run_telegram_bot(settings: Settings | None = None) -> None:
    """Build the application and run the bot until interrupted."""
    settings = settings or Settings.from_env()

    if not settings.telegram_token:
        print("❌ Error: TELEGRAM_TOKEN environment variable not set")
        return
    if not settings.groq_api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        return

    bot = TelegramBot(build_app(settings))
    bot.run()
