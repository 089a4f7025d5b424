"""Talk Planner entry point."""

import asyncio
import logging
import sys

from dotenv import find_dotenv, load_dotenv

from .cli import run_cli


def main() -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if len(sys.argv) > 1:
        command = sys.argv[1]

        if command == "bot":
            from .telegram import run_telegram_bot

            logging.getLogger("talkplanner").setLevel(logging.INFO)
            run_telegram_bot()
            return

        print(f"Unknown command: {command}")
        print("Usage: talkplanner [bot]")
        sys.exit(2)

    asyncio.run(run_cli())


if __name__ == "__main__":
    main()
