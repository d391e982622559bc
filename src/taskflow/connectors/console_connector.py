# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.notify import Notification
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def console_notify(notification: Notification) -> None:
    _print_ts(notification.render())


def _dispatch(state: AppState, line: str) -> str | None:
    try:
        return command_registry.handle(state, line, notify=console_notify)
    except Exception:
        logger.exception("Command handler crashed: %s", line)
        return "Internal error while handling a command."


async def run_console_loop(state: AppState) -> None:
    """
    Interactive loop.

    input() runs in a worker thread so background jobs (AI prioritization) keep
    running on the event loop while the user edits tasks.
    """
    app_name = str(getattr(state.settings, "app_name", "taskflow"))
    logger.info("Console connector started.")
    _print_ts(f"[{app_name}] Use /help for commands, /list to see tasks, /exit to quit.\n")
    _print_ts(_dispatch(state, "/list") or "")

    while True:
        try:
            raw = await asyncio.to_thread(input, ">>> ")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        line = raw.strip()
        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not line.startswith("/"):
            # plain text is a search term, taken verbatim
            line = "/search " + raw

        reply = _dispatch(state, line)
        if reply is not None:
            _print_ts(reply)

    if state.background:
        _print_ts("Waiting for the AI request to finish...")
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(*state.background, return_exceptions=True)

    logger.info("Console connector finished.")
