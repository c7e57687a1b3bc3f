# src/taskledger/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either runs one command given on
the command line (`taskledger add "Buy milk" -c home`) or, with no arguments,
starts the interactive console.
"""

from __future__ import annotations

import logging
import sys

from .bootstrap import create_initial_state
from ..config import get_settings
from ..errors import TaskLedgerError
from ..logging_setup import setup_logging
from .commands import CommandUsageError
from .commands import registry as command_registry
from .console import run_console_loop

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    settings = get_settings()

    # Stdout carries command output, so the console log stays at WARNING+;
    # the configured level applies to the log file.
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    file_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, console_level=logging.WARNING, file_level=file_level)

    logger.info("Starting %s db=%s", settings.app_name, settings.db_path)

    try:
        state = create_initial_state(settings=settings)
    except TaskLedgerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        if not args:
            run_console_loop(state)
            return 0

        name = args[0].lstrip("/")
        try:
            print(command_registry.run(state, name, args[1:]))
        except CommandUsageError as e:
            print(str(e), file=sys.stderr)
            return 2
        except TaskLedgerError as e:
            logger.info("Command /%s failed: %s", name, e)
            print(f"error: {e}", file=sys.stderr)
            return 1
        except Exception:
            logger.exception("One-shot command /%s crashed.", name)
            print("Internal error while handling a command.", file=sys.stderr)
            return 1
        return 0
    finally:
        state.close()
        logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
