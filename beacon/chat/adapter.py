"""
Chat Adapter Base

Abstract base class for chat platform adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Coroutine

import structlog

logger = structlog.get_logger(__name__)


class MessageType(Enum):
    """Types of chat messages."""

    TEXT = "text"
    COMMAND = "command"


@dataclass
class ChatUser:
    """Represents a chat user."""

    id: str
    name: str


@dataclass
class ChatChannel:
    """Represents a chat channel."""

    id: str
    name: str


@dataclass
class ChatMessage:
    """Incoming chat message."""

    id: str
    text: str
    user: ChatUser
    channel: ChatChannel
    timestamp: datetime
    message_type: MessageType = MessageType.TEXT

    @property
    def is_command(self) -> bool:
        """Check if message is a command."""
        return self.message_type == MessageType.COMMAND or self.text.startswith("/")

    @property
    def command_name(self) -> str | None:
        """Extract command name from message."""
        if self.text.startswith("/"):
            parts = self.text[1:].split(maxsplit=1)
            return parts[0] if parts else None
        return None

    @property
    def command_args(self) -> str:
        """Extract command arguments."""
        if self.text.startswith("/"):
            parts = self.text[1:].split(maxsplit=1)
            return parts[1] if len(parts) > 1 else ""
        return self.text


@dataclass
class ChatResponse:
    """Outgoing chat response."""

    text: str
    channel_id: str
    markdown: bool = True


# Type alias for message handlers
MessageHandler = Callable[[ChatMessage], Coroutine[Any, Any, ChatResponse | None]]


class ChatAdapter(ABC):
    """
    Abstract base class for chat platform adapters.

    Each platform implements connection handling and message delivery;
    command routing is shared.
    """

    name: str = "base"
    description: str = "Base chat adapter"

    def __init__(self) -> None:
        """Initialize the adapter."""
        self._handlers: dict[str, MessageHandler] = {}
        self._default_handler: MessageHandler | None = None
        self._running = False

    @property
    def commands(self) -> list[str]:
        """Names of the registered commands."""
        return list(self._handlers)

    def register_command(
        self,
        command: str,
        handler: MessageHandler,
    ) -> None:
        """
        Register a command handler.

        Args:
            command: Command name (without leading /)
            handler: Async function to handle the command
        """
        self._handlers[command.lower()] = handler
        logger.debug("Registered command handler", command=command)

    def set_default_handler(self, handler: MessageHandler) -> None:
        """Set the default handler for non-command messages."""
        self._default_handler = handler

    async def dispatch(self, message: ChatMessage) -> ChatResponse | None:
        """
        Dispatch a message to the appropriate handler.

        Args:
            message: Incoming message

        Returns:
            Response to send, or None
        """
        if message.is_command:
            command = message.command_name
            if command and command.lower() in self._handlers:
                handler = self._handlers[command.lower()]
                return await handler(message)

        # Use default handler for non-commands or unrecognized commands
        if self._default_handler:
            return await self._default_handler(message)

        return None

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the chat platform."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the chat platform."""
        pass

    @abstractmethod
    async def send_message(self, response: ChatResponse) -> str:
        """
        Send a message to a channel.

        Args:
            response: Message to send

        Returns:
            Message ID of sent message
        """
        pass

    @abstractmethod
    async def run(self) -> None:
        """
        Start the adapter's event loop.

        This should listen for incoming messages and dispatch them.
        """
        pass

    async def stop(self) -> None:
        """Stop the adapter."""
        self._running = False
