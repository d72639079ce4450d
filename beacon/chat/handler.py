"""
Chat Handler

Answers the /status command with the current state of every entity.
"""

import time
from collections.abc import Iterable
from typing import Callable

import structlog

from beacon.chat.adapter import ChatAdapter, ChatMessage, ChatResponse
from beacon.heartbeat.errors import StoreError
from beacon.heartbeat.status import collect_status, render_status_markdown
from beacon.heartbeat.store import StatusStore

logger = structlog.get_logger(__name__)

UNKNOWN_COMMAND_REPLY = "I only understand the /status command."
STATUS_ERROR_REPLY = "Sorry, there was an error fetching the server status."


class StatusCommandHandler:
    """
    Chat command handler for status queries.

    Uses the same silence threshold as the sweep so that STALE in the
    report always means "the next sweep will declare this down".
    """

    def __init__(
        self,
        names: Iterable[str],
        store: StatusStore,
        threshold_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the handler.

        Args:
            names: Configured entity names, in display order
            store: Record store to read from
            threshold_seconds: Silence threshold used by the sweep
            clock: Wall-clock source in seconds
        """
        self._names = list(names)
        self._store = store
        self._threshold = threshold_seconds
        self._clock = clock

    def register(self, adapter: ChatAdapter) -> None:
        """Register the commands on a chat adapter."""
        adapter.register_command("status", self.handle_status)
        adapter.set_default_handler(self.handle_other)

    async def status_text(self) -> str:
        """Render the current status report."""
        now = int(self._clock())
        reports = await collect_status(self._names, self._store, now, self._threshold)
        return render_status_markdown(reports, self._threshold)

    async def handle_status(self, message: ChatMessage) -> ChatResponse:
        """Handle /status."""
        try:
            text = await self.status_text()
        except StoreError as e:
            logger.error("Error processing /status command", error=str(e))
            return ChatResponse(text=STATUS_ERROR_REPLY, channel_id=message.channel.id, markdown=False)

        return ChatResponse(text=text, channel_id=message.channel.id)

    async def handle_other(self, message: ChatMessage) -> ChatResponse:
        """Handle anything that is not a known command."""
        return ChatResponse(text=UNKNOWN_COMMAND_REPLY, channel_id=message.channel.id, markdown=False)
