"""Telegram delivery of low-stock notifications.

Dispatch is fire-and-forget: the caller only schedules the send, and nothing
about its outcome (success, failure, hang) reaches the triggering request.
"""

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, Protocol

import httpx

from ...config import Settings
from ...constants import TELEGRAM_API_URL
from ...domain.exceptions import NotificationDispatchError
from ...logging_config import get_logger
from ...metrics import record_notification

logger = get_logger(__name__)


class Dispatcher(Protocol):
    """Delivers a notification text somewhere without blocking the caller."""

    def dispatch(self, text: str) -> None: ...


async def send_telegram_message(
    token: str,
    chat_id: str,
    text: str,
    *,
    api_url: str = TELEGRAM_API_URL,
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Send a message through the Telegram Bot API.

    Args:
        token: Bot token from BotFather
        chat_id: Id of the target chat or user
        text: Message text
        api_url: Base URL of the Bot API
        timeout: Request timeout in seconds
        client: Optional client to reuse (mainly for tests)

    Returns:
        Decoded JSON answer of the API

    Raises:
        NotificationDispatchError: If the request fails or the API reports an error
    """
    url = f"{api_url.rstrip('/')}/bot{token}/sendMessage"
    payload = {"chat_id": chat_id, "text": text}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.post(url, json=payload)
        else:
            response = await client.post(url, json=payload)
        response.raise_for_status()
        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise NotificationDispatchError(f"Telegram request failed: {e}") from e

    if isinstance(body, dict) and body.get("ok") is False:
        raise NotificationDispatchError(
            f"Telegram rejected message: {body.get('description', 'unknown error')}"
        )
    return body


class TelegramDispatcher:
    """Schedules Telegram sends as detached background work."""

    def __init__(
        self,
        token: str | None,
        chat_id: str | None,
        api_url: str = TELEGRAM_API_URL,
        timeout: float = 10.0,
    ):
        self.token = token
        self.chat_id = chat_id
        self.api_url = api_url
        self.timeout = timeout
        # Strong references so pending tasks are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "TelegramDispatcher":
        return cls(
            token=app_settings.telegram_bot_token,
            chat_id=app_settings.telegram_chat_id,
            api_url=app_settings.telegram_api_url,
            timeout=app_settings.telegram_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    def dispatch(self, text: str) -> None:
        if not self.token or not self.chat_id:
            logger.info("Notification not sent, Telegram is not configured", text=text)
            return

        coro = self._send_safely(self.token, self.chat_id, text)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run_in_thread(coro)
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send_safely(self, token: str, chat_id: str, text: str) -> None:
        try:
            await send_telegram_message(
                token,
                chat_id,
                text,
                api_url=self.api_url,
                timeout=self.timeout,
            )
        except NotificationDispatchError as e:
            record_notification(success=False)
            logger.warning("Low-stock notification failed", error=str(e))
            return
        record_notification(success=True)
        logger.info("Low-stock notification sent", text=text)

    @staticmethod
    def _run_in_thread(coro: Coroutine[Any, Any, None]) -> None:
        thread = threading.Thread(
            target=asyncio.run, args=(coro,), name="telegram-dispatch", daemon=True
        )
        thread.start()
