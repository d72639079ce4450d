"""
Beacon Chat Interface Layer

Read-only status queries over chat.
"""

from beacon.chat.adapter import (
    ChatAdapter,
    ChatChannel,
    ChatMessage,
    ChatResponse,
    ChatUser,
    MessageType,
)
from beacon.chat.handler import StatusCommandHandler

__all__ = [
    # Adapter base
    "ChatAdapter",
    "ChatChannel",
    "ChatMessage",
    "ChatResponse",
    "ChatUser",
    "MessageType",
    # Handler
    "StatusCommandHandler",
]

# The Telegram adapter is imported separately to avoid loading
# python-telegram-bot unless the bot is actually run:
#
#   from beacon.chat.telegram import TelegramAdapter
