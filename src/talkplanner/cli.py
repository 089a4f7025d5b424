"""CLI interface for Talk Planner."""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any

from .config import App, Settings, build_app
from .controller import TurnReply

logger = logging.getLogger(__name__)

BANNER = """
╔══════════════════════════════════════════╗
║        🗓  EthCC Talk Planner            ║
║   Plan your conference schedule          ║
╚══════════════════════════════════════════╝

Commands:
  /exit, /quit  - Exit the CLI
  /reset        - Clear history and profile
  /stop         - Cancel the running answer
  /help         - Show this help

Share your X/Twitter profile (e.g. "my twitter is @alice") to get
personalized recommendations.
"""

PROMPT = "you> "


def format_event(event: dict[str, Any]) -> str | None:
    """Render a pushed session event for the terminal."""
    kind = event.get("type")
    if kind == "progress":
        percent = event.get("percent")
        suffix = f" ({int(percent * 100)}%)" if percent is not None else ""
        icon = "❌" if event.get("status") == "error" else "⏳"
        return f"{icon} {event.get('message', '')}{suffix}"
    if kind == "history":
        appended = event.get("appended") or {}
        texts = [p["text"] for p in appended.get("parts", []) if p.get("type") == "text"]
        return "\n".join(texts) or None
    # "complete" and "error" are followed by a history event with the text
    return None


class CLI:
    """Interactive command-line interface."""

    def __init__(self, app: App, session_key: str | None = None) -> None:
        self.app = app
        self.controller = app.controller
        self.session_key = session_key or f"cli-{uuid.uuid4().hex[:8]}"
        self._turn: asyncio.Task | None = None

    async def _sink(self, event: dict[str, Any]) -> None:
        text = format_event(event)
        if text:
            print(f"\n{text}\n{PROMPT}", end="", flush=True)

    def _save_calendar(self, ics: str) -> Path:
        path = Path.cwd() / "ethcc-schedule.ics"
        path.write_text(ics, encoding="utf-8")
        return path

    async def _process_message(self, message: str) -> None:
        """Run one turn and print the reply."""
        try:
            reply: TurnReply = await self.controller.handle_turn(self.session_key, message)
        except Exception as e:
            logger.exception("Error processing message")
            print(f"\n❌ Error: {e}\n")
            return

        print(f"\n{reply.text}\n")
        if reply.ics:
            path = self._save_calendar(reply.ics)
            print(f"📅 Calendar saved to {path}\n")
        print(PROMPT, end="", flush=True)

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/reset":
            self.controller.abort(self.session_key)
            self.controller.clear(self.session_key)
            print("\n✨ History and profile cleared.\n")
            return True

        if cmd == "/stop":
            if not self.controller.abort(self.session_key):
                print("\nNothing to stop.\n")
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        print(f"\nUnknown command: {command}\n")
        return True

    async def run(self) -> None:
        """Run the interactive CLI.

        Input is read in a worker thread so background analyses keep
        progressing and their updates are printed while waiting.
        """
        print(BANNER)
        print(f"Session: {self.session_key}\n")
        self.controller.connect(self.session_key, self._sink)

        try:
            while True:
                try:
                    user_input = (await asyncio.to_thread(input, PROMPT)).strip()
                except (KeyboardInterrupt, EOFError):
                    print("\n👋 Goodbye!")
                    break

                if not user_input:
                    continue

                if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                    if not await self._handle_command(user_input):
                        break
                    continue

                # Turns run in the background so /stop can cancel them.
                self._turn = asyncio.create_task(self._process_message(user_input))
        finally:
            if self._turn and not self._turn.done():
                self._turn.cancel()
            self.controller.disconnect(self.session_key, self._sink)


async def run_cli(settings: Settings | None = None) -> None:
    """Run the CLI with configuration from the environment."""
    settings = settings or Settings.from_env()

    if not settings.groq_api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    app = build_app(settings)
    try:
        await CLI(app).run()
    finally:
        await app.aclose()
