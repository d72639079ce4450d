"""
Notifications

Delivers transition messages to an operator channel (Telegram or console)
and tracks in-flight deliveries so shutdown can wait for them.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from beacon.heartbeat.errors import NotificationError

if TYPE_CHECKING:
    from beacon.config import BeaconSettings

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class Notifier(ABC):
    """Fire-and-forget delivery of a human-readable message."""

    name: str = "base"

    @abstractmethod
    async def send(self, text: str) -> bool:
        """
        Deliver one message.

        Returns:
            True if the channel accepted the message, False otherwise

        Raises:
            NotificationError: If the channel could not be reached
        """

    async def close(self) -> None:
        """Release any resources held by the notifier."""
        return None


class TelegramNotifier(Notifier):
    """Sends messages to a Telegram chat via the Bot API."""

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 10.0,
        api_url: str = TELEGRAM_API_URL,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            bot_token: Telegram bot token from BotFather
            chat_id: Chat that receives the notifications
            timeout: HTTP timeout in seconds
            api_url: Bot API base URL
        """
        self._token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._api_url = api_url.rstrip("/")
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send(self, text: str) -> bool:
        client = await self._get_client()
        url = f"{self._api_url}/bot{self._token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }

        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Telegram API error",
                status_code=e.response.status_code,
                body=e.response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            raise NotificationError(f"Failed to reach Telegram: {e}") from e

        return True


class ConsoleNotifier(Notifier):
    """Prints notifications to the terminal."""

    name = "console"

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console()

    async def send(self, text: str) -> bool:
        from rich.panel import Panel

        color = "red" if "DOWN" in text else "green"
        self._console.print(Panel(text, title="[bold]Beacon[/bold]", border_style=color))
        return True


class NullNotifier(Notifier):
    """Logs notifications without delivering them."""

    name = "null"

    async def send(self, text: str) -> bool:
        logger.info("Notification (not delivered)", text=text)
        return True


def build_notifier(settings: BeaconSettings) -> Notifier:
    """Create the notifier selected by configuration."""
    if settings.telegram_bot_token and settings.telegram_chat_id:
        logger.info("Using Telegram notifier", chat_id=settings.telegram_chat_id)
        return TelegramNotifier(
            bot_token=settings.telegram_bot_token,
            chat_id=settings.telegram_chat_id,
            timeout=settings.notify_timeout_seconds,
        )

    if settings.notify_console:
        logger.info("Telegram not configured, notifications go to the console")
        return ConsoleNotifier()

    logger.warning("No notifier configured, notifications are only logged")
    return NullNotifier()


class NotificationDispatcher:
    """
    Runs notifier sends as tracked background tasks.

    dispatch() starts delivery before returning and never blocks the caller.
    drain() waits for everything still in flight and is called at shutdown.
    Delivery failures are logged and counted, never raised or retried.
    """

    def __init__(self, notifier: Notifier, timeout: float = 10.0) -> None:
        """
        Initialize the dispatcher.

        Args:
            notifier: Channel used for delivery
            timeout: Per-message delivery timeout in seconds
        """
        self._notifier = notifier
        self._timeout = timeout
        self._tasks: set[asyncio.Task[bool]] = set()
        self.delivered = 0
        self.failed = 0

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    def dispatch(self, text: str, **context: Any) -> asyncio.Task[bool]:
        """
        Start delivering a message in the background.

        Args:
            text: Message to deliver
            **context: Extra fields for log lines (e.g. entity name)

        Returns:
            The tracking task
        """
        task = asyncio.get_running_loop().create_task(self._deliver(text, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, text: str, context: dict[str, Any]) -> bool:
        try:
            ok = await asyncio.wait_for(self._notifier.send(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification timed out", timeout=self._timeout, **context)
            ok = False
        except NotificationError as e:
            logger.error("Notification not delivered", channel=self._notifier.name, error=str(e), **context)
            ok = False
        except Exception as e:
            logger.error("Notification failed", error=str(e), **context)
            ok = False

        if ok:
            self.delivered += 1
            logger.debug("Notification delivered", channel=self._notifier.name, **context)
        else:
            self.failed += 1
        return ok

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for all in-flight deliveries.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            Number of deliveries abandoned because the timeout expired
        """
        if not self._tasks:
            return 0

        logger.info("Draining pending notifications", pending=len(self._tasks))
        _, still_pending = await asyncio.wait(set(self._tasks), timeout=timeout)

        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("Abandoned pending notifications", count=len(still_pending))

        return len(still_pending)
