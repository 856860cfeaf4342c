"""CLI entry point for the Contoso Dentistry virtual assistant.

A terminal chat loop for trying the assistant against the configured
backends.  For production, use the FastAPI server (dentabot/server.py).

Usage:
    uv run python -m dentabot.main            # normal mode (quiet)
    uv run python -m dentabot.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dentabot.config import load_settings
from dentabot.dispatcher import Dispatcher, create_dispatcher
from dentabot.greeter import greet
from dentabot.services.base import ServiceError

logger = logging.getLogger(__name__)

BOT_ID = "dentabot"
USER_ID = "cli-user"


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("dentabot").setLevel(logging.DEBUG if debug else logging.INFO)


def chat_loop(dispatcher: Dispatcher) -> None:
    """Read lines from stdin until EOF or ``quit``, printing one reply each."""
    for welcome in greet([USER_ID], BOT_ID):
        print(f"\nBot: {welcome}\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break

        try:
            reply = asyncio.run(dispatcher.handle(user_input))
            print(f"\nBot: {reply}\n")
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except ServiceError as e:
            logger.exception("Backend %s failed", e.service)
            print("\nBot: Sorry, one of my services is unavailable right now. Please try again.\n")
        except Exception:
            logger.exception("Error processing message")
            print("\nBot: Sorry, something went wrong. Please try again.\n")


def main():
    parser = argparse.ArgumentParser(description="Contoso Dentistry assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Contoso Dentistry Virtual Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter. 'quit' to exit.")
    print("=" * 60)

    chat_loop(create_dispatcher(load_settings()))


if __name__ == "__main__":
    main()
