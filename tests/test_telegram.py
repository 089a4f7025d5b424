"""Tests for Telegram bot."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from talkplanner.agent import StopReason
from talkplanner.controller import TurnReply
from talkplanner.telegram import TelegramBot
from talkplanner.telegram.bot import (
    CALENDAR_FILENAME,
    MAX_MESSAGE_LENGTH,
    format_event,
    format_response,
    truncate_message,
)


class TestTruncateMessage:
    def test_short_message_unchanged(self):
        text = "Short message"
        assert truncate_message(text) == text

    def test_long_message_truncated(self):
        text = "x" * 5000
        result = truncate_message(text)
        assert len(result) <= MAX_MESSAGE_LENGTH
        assert "truncated" in result

    def test_exact_length_unchanged(self):
        text = "x" * MAX_MESSAGE_LENGTH
        assert truncate_message(text) == text


class TestFormatResponse:
    def test_complete_no_suffix(self):
        result = format_response("Hello", StopReason.COMPLETE, 1)
        assert result == "Hello"

    def test_max_turns_warning(self):
        result = format_response("Response", StopReason.MAX_TURNS, 5)
        assert "tool round limit" in result
        assert "5" in result

    def test_repeated_call_warning(self):
        result = format_response("Response", StopReason.REPEATED_CALL, 3)
        assert "loop" in result.lower()

    def test_errors_warning(self):
        result = format_response("Response", StopReason.CONSECUTIVE_ERRORS, 2)
        assert "errors" in result.lower()

    def test_long_response_truncated(self):
        long_text = "x" * 5000
        result = format_response(long_text, StopReason.COMPLETE, 1)
        assert len(result) <= MAX_MESSAGE_LENGTH


class TestFormatEvent:
    def test_running_progress(self):
        event = {"type": "progress", "step": "scrape", "status": "running", "message": "Fetching"}
        assert format_event(event) == "⏳ Fetching"

    def test_error_progress(self):
        event = {"type": "progress", "step": "scrape", "status": "error", "message": "No tweets"}
        assert format_event(event) == "❌ No tweets"

    def test_complete_progress_is_quiet(self):
        event = {"type": "progress", "step": "done", "status": "complete", "message": "Done"}
        assert format_event(event) is None

    def test_history_posts_text(self):
        event = {
            "type": "history",
            "messages": [],
            "appended": {"id": "twitter-profile-alice", "role": "assistant",
                         "parts": [{"type": "text", "text": "✅ Analyzed 20 posts from @alice."}]},
        }
        assert format_event(event) == "✅ Analyzed 20 posts from @alice."

    def test_history_without_append_is_quiet(self):
        assert format_event({"type": "history", "messages": [], "appended": None}) is None

    def test_complete_event_is_quiet(self):
        assert format_event({"type": "complete", "result": {}}) is None


def make_app(token="app-token"):
    app = MagicMock()
    app.settings.telegram_token = token
    app.controller.handle_turn = AsyncMock()
    return app


def make_update(text="hello", chat_id=42):
    update = MagicMock()
    update.effective_chat.id = chat_id
    update.message.text = text
    update.message.reply_text = AsyncMock()
    update.message.reply_document = AsyncMock()
    update.message.chat.send_action = AsyncMock()
    return update


class TestTelegramBot:
    def test_requires_token(self):
        with pytest.raises(ValueError, match="TELEGRAM_TOKEN"):
            TelegramBot(make_app(token=None))

    def test_explicit_token_wins(self):
        bot = TelegramBot(make_app(), token="test-token")
        assert bot.token == "test-token"

    @pytest.mark.asyncio
    async def test_message_replies_and_connects_sink(self):
        app = make_app()
        app.controller.handle_turn.return_value = TurnReply(
            text="Here are 3 talks", kind="agent", stop_reason=StopReason.COMPLETE, turns=2
        )
        bot = TelegramBot(app)
        update = make_update("DeFi talks?")

        await bot._handle_message(update, MagicMock())

        app.controller.handle_turn.assert_awaited_once_with("42", "DeFi talks?")
        update.message.reply_text.assert_awaited_once_with("Here are 3 talks")
        app.controller.connect.assert_called_once()

        # Second message reuses the same sink
        await bot._handle_message(update, MagicMock())
        app.controller.connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_calendar_sent_as_document(self):
        app = make_app()
        app.controller.handle_turn.return_value = TurnReply(
            text="Calendar ready", kind="agent", ics="BEGIN:VCALENDAR",
            stop_reason=StopReason.COMPLETE, turns=2,
        )
        bot = TelegramBot(app)
        update = make_update("make me a calendar")

        await bot._handle_message(update, MagicMock())

        kwargs = update.message.reply_document.await_args.kwargs
        assert kwargs["filename"] == CALENDAR_FILENAME
        assert kwargs["document"].read() == b"BEGIN:VCALENDAR"

    @pytest.mark.asyncio
    async def test_error_reply(self):
        app = make_app()
        app.controller.handle_turn.side_effect = RuntimeError("groq down")
        bot = TelegramBot(app)
        update = make_update()

        await bot._handle_message(update, MagicMock())

        update.message.reply_text.assert_awaited_once_with("❌ Error: groq down")

    @pytest.mark.asyncio
    async def test_reset_aborts_and_clears(self):
        app = make_app()
        bot = TelegramBot(app)
        update = make_update("/reset")

        await bot._handle_reset(update, MagicMock())

        app.controller.abort.assert_called_once_with("42")
        app.controller.clear.assert_called_once_with("42")

    @pytest.mark.asyncio
    async def test_stop_with_nothing_running(self):
        app = make_app()
        app.controller.abort.return_value = False
        bot = TelegramBot(app)
        update = make_update("/stop")

        await bot._handle_stop(update, MagicMock())

        update.message.reply_text.assert_awaited_once_with("Nothing to cancel.")
