"""Minimal Telegram Bot API client over httpx."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx
import structlog

from mergebot.core.errors import TelegramAPIError

logger = structlog.get_logger(__name__)


class ChatTransport(Protocol):
    """What the batch pipeline needs from a chat backend."""

    async def send_message(self, chat_id: int, text: str) -> None: ...

    async def send_document(
        self, chat_id: int, path: Path, filename: str, mime_type: str
    ) -> None: ...


@dataclass(frozen=True)
class IncomingMessage:
    chat_id: int
    text: str


def parse_update(update: dict) -> IncomingMessage | None:
    """Extract the chat id and text of a message update, if it has both."""
    message = update.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    text = message.get("text")
    if chat_id is None or not isinstance(text, str):
        return None
    return IncomingMessage(chat_id=int(chat_id), text=text)


class TelegramClient:
    """Bot API calls used by the bot: getUpdates, sendMessage, sendDocument."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/bot{token}/",
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> TelegramClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _call(self, method: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.post(method, **kwargs)
        except httpx.HTTPError as exc:
            raise TelegramAPIError(method, f"transport error: {type(exc).__name__}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TelegramAPIError(
                method, f"non-JSON response (HTTP {response.status_code})"
            ) from exc

        if not payload.get("ok"):
            raise TelegramAPIError(
                method,
                str(payload.get("description") or "unknown error"),
                payload.get("error_code"),
            )
        return payload.get("result")

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict]:
        params: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            params["offset"] = offset
        result = await self._call("getUpdates", json=params)
        return list(result or [])

    async def send_message(self, chat_id: int, text: str) -> None:
        await self._call("sendMessage", json={"chat_id": chat_id, "text": text})

    async def send_document(
        self, chat_id: int, path: Path, filename: str, mime_type: str
    ) -> None:
        with open(path, "rb") as fh:
            await self._call(
                "sendDocument",
                data={"chat_id": str(chat_id)},
                files={"document": (filename, fh, mime_type)},
            )
        logger.info("telegram.document_sent", chat_id=chat_id, filename=filename)
