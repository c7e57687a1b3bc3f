# src/taskledger/cli/console.py

from __future__ import annotations

import logging

from ..core.state import AppState
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def run_console_loop(state: AppState) -> None:
    logger.info("Console started db=%s", state.store.path)
    app_name = str(getattr(state.settings, "app_name", "taskledger"))
    print(f"[{app_name}] Use /help for commands. Use /exit to quit.")

    while True:
        try:
            user_input = input(f"{app_name}> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            print()
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if not user_input.startswith("/"):
            # Bare words are accepted as commands too ("ls" == "/ls").
            user_input = "/" + user_input

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(reply)

    logger.info("Console finished.")
