"""Tests for notifiers and the notification dispatcher."""

import asyncio
import json

import httpx
import pytest

from beacon.config import BeaconSettings
from beacon.heartbeat.errors import NotificationError
from beacon.heartbeat.notifier import (
    ConsoleNotifier,
    NotificationDispatcher,
    Notifier,
    NullNotifier,
    TelegramNotifier,
    build_notifier,
)
from tests.helpers import RecordingNotifier


class SlowNotifier(Notifier):
    """Notifier that takes `delay` seconds per message."""

    name = "slow"

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.sent: list[str] = []

    async def send(self, text: str) -> bool:
        await asyncio.sleep(self.delay)
        self.sent.append(text)
        return True


class BrokenNotifier(Notifier):
    """Notifier whose every send raises."""

    name = "broken"

    async def send(self, text: str) -> bool:
        raise RuntimeError("channel exploded")


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_dispatch_delivers_in_background(self) -> None:
        """Test dispatch returns immediately and drain waits for delivery."""
        notifier = SlowNotifier(delay=0.05)
        dispatcher = NotificationDispatcher(notifier, timeout=1.0)

        dispatcher.dispatch("hello", entity="db1")

        assert dispatcher.pending == 1
        assert notifier.sent == []

        abandoned = await dispatcher.drain(timeout=1.0)

        assert abandoned == 0
        assert notifier.sent == ["hello"]
        assert dispatcher.pending == 0
        assert dispatcher.delivered == 1

    @pytest.mark.asyncio
    async def test_failure_is_counted_not_raised(self) -> None:
        """Test an exception in the notifier is contained."""
        dispatcher = NotificationDispatcher(BrokenNotifier())

        task = dispatcher.dispatch("hello")
        result = await task

        assert result is False
        assert dispatcher.failed == 1
        assert dispatcher.delivered == 0

    @pytest.mark.asyncio
    async def test_rejected_send_counts_as_failure(self) -> None:
        """Test a notifier returning False is counted as failed."""
        dispatcher = NotificationDispatcher(RecordingNotifier(ok=False))

        assert await dispatcher.dispatch("hello") is False
        assert dispatcher.failed == 1

    @pytest.mark.asyncio
    async def test_send_timeout(self) -> None:
        """Test a send slower than the timeout is abandoned and counted."""
        dispatcher = NotificationDispatcher(SlowNotifier(delay=5), timeout=0.05)

        assert await dispatcher.dispatch("hello") is False
        assert dispatcher.failed == 1

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self) -> None:
        """Test deliveries are independent of each other."""
        good = RecordingNotifier()
        good_dispatcher = NotificationDispatcher(good)
        bad_dispatcher = NotificationDispatcher(BrokenNotifier())

        bad_dispatcher.dispatch("first")
        good_dispatcher.dispatch("second")
        await bad_dispatcher.drain()
        await good_dispatcher.drain()

        assert good.sent == ["second"]

    @pytest.mark.asyncio
    async def test_drain_timeout_abandons_pending(self) -> None:
        """Test drain gives up on deliveries that outlast its timeout."""
        dispatcher = NotificationDispatcher(SlowNotifier(delay=5), timeout=30)
        dispatcher.dispatch("one")
        dispatcher.dispatch("two")

        abandoned = await dispatcher.drain(timeout=0.05)

        assert abandoned == 2
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        """Test draining an idle dispatcher returns immediately."""
        dispatcher = NotificationDispatcher(NullNotifier())

        assert await dispatcher.drain(timeout=0.01) == 0


class TestTelegramNotifier:
    """Tests for TelegramNotifier over a mocked Bot API."""

    @staticmethod
    def _notifier(handler) -> TelegramNotifier:
        notifier = TelegramNotifier(bot_token="123:abc", chat_id="-100200")
        notifier._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return notifier

    @pytest.mark.asyncio
    async def test_send_posts_markdown_message(self) -> None:
        """Test the request targets sendMessage with the chat and parse mode."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        notifier = self._notifier(handler)
        ok = await notifier.send("✅ *db1* is back UP")
        await notifier.close()

        assert ok is True
        assert str(requests[0].url) == "https://api.telegram.org/bot123:abc/sendMessage"
        body = json.loads(requests[0].content)
        assert body == {"chat_id": "-100200", "text": "✅ *db1* is back UP", "parse_mode": "Markdown"}

    @pytest.mark.asyncio
    async def test_api_error_returns_false(self) -> None:
        """Test a non-2xx response is reported as failure."""
        notifier = self._notifier(lambda request: httpx.Response(400, json={"ok": False}))

        assert await notifier.send("hello") is False

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        """Test a network failure raises NotificationError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = self._notifier(handler)

        with pytest.raises(NotificationError, match="connection refused"):
            await notifier.send("hello")

    @pytest.mark.asyncio
    async def test_transport_error_is_contained_by_dispatcher(self) -> None:
        """Test the dispatcher counts an unreachable Telegram as a failed delivery."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        dispatcher = NotificationDispatcher(self._notifier(handler))

        assert await dispatcher.dispatch("hello", entity="db1") is False
        assert dispatcher.failed == 1

    @pytest.mark.asyncio
    async def test_close_releases_client(self) -> None:
        """Test close drops the HTTP client."""
        notifier = self._notifier(lambda request: httpx.Response(200))

        await notifier.close()

        assert notifier._http_client is None


class TestBuildNotifier:
    """Tests for build_notifier."""

    def test_telegram_when_configured(self) -> None:
        """Test token and chat id select Telegram."""
        settings = BeaconSettings(_env_file=None, telegram_bot_token="t", telegram_chat_id="1")

        assert isinstance(build_notifier(settings), TelegramNotifier)

    def test_null_when_nothing_configured(self) -> None:
        """Test a missing chat id without console output falls back to logging only."""
        settings = BeaconSettings(_env_file=None, telegram_bot_token="t")

        assert isinstance(build_notifier(settings), NullNotifier)

    def test_console_when_requested(self) -> None:
        """Test console output is used only when asked for."""
        settings = BeaconSettings(_env_file=None, notify_console=True)

        assert isinstance(build_notifier(settings), ConsoleNotifier)

    def test_telegram_wins_over_console(self) -> None:
        """Test a configured Telegram chat takes precedence over the console."""
        settings = BeaconSettings(
            _env_file=None, telegram_bot_token="t", telegram_chat_id="1", notify_console=True
        )

        assert isinstance(build_notifier(settings), TelegramNotifier)

    @pytest.mark.asyncio
    async def test_null_notifier_accepts_every_message(self) -> None:
        """Test the logging-only notifier reports success without delivering."""
        assert await NullNotifier().send("hello") is True
