"""Long-poll getUpdates and route each message to its handler."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from mergebot.core.constants import Messages
from mergebot.core.errors import TelegramAPIError
from mergebot.transport.telegram import ChatTransport, IncomingMessage, TelegramClient, parse_update

logger = structlog.get_logger(__name__)

TextHandler = Callable[[int, str], Awaitable[object]]

_POLL_ERROR_DELAY = 5.0


async def dispatch_message(
    message: IncomingMessage, *, transport: ChatTransport, on_text: TextHandler
) -> None:
    """Answer /start, ignore other commands, send everything else to ``on_text``."""
    text = message.text.strip()
    if text.startswith("/"):
        command = text.split(maxsplit=1)[0].split("@", 1)[0]
        if command == "/start":
            await transport.send_message(message.chat_id, Messages.START)
        return
    await on_text(message.chat_id, message.text)


def _log_task_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("polling.handler_failed", error=repr(exc), exc_info=exc)


async def run_polling(
    client: TelegramClient,
    on_text: TextHandler,
    *,
    poll_timeout: int = 30,
    stop: asyncio.Event | None = None,
) -> None:
    """Poll until ``stop`` is set. Each message runs as its own task."""
    stop = stop or asyncio.Event()
    offset: int | None = None
    running: set[asyncio.Task] = set()

    logger.info("polling.start")
    try:
        while not stop.is_set():
            try:
                updates = await client.get_updates(offset=offset, timeout=poll_timeout)
            except TelegramAPIError as exc:
                logger.warning("polling.get_updates_failed", error=str(exc))
                await asyncio.sleep(_POLL_ERROR_DELAY)
                continue

            for update in updates:
                offset = int(update["update_id"]) + 1
                message = parse_update(update)
                if message is None:
                    continue
                task = asyncio.create_task(
                    dispatch_message(message, transport=client, on_text=on_text)
                )
                running.add(task)
                task.add_done_callback(running.discard)
                task.add_done_callback(_log_task_result)
    finally:
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        logger.info("polling.stopped")
