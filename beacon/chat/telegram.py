"""
Telegram Adapter

Chat adapter for Telegram integration using python-telegram-bot.
"""

import asyncio
from typing import Any

import structlog

from beacon.chat.adapter import (
    ChatAdapter,
    ChatChannel,
    ChatMessage,
    ChatResponse,
    ChatUser,
    MessageType,
)

logger = structlog.get_logger(__name__)

UNAUTHORIZED_REPLY = "Sorry, you are not authorized to use this bot."


class TelegramAdapter(ChatAdapter):
    """
    Telegram chat adapter using python-telegram-bot long polling.

    Only chats listed in `allowed_chats` get answers; everyone else is told
    they are not authorized.
    """

    name = "telegram"
    description = "Telegram bot integration"

    def __init__(
        self,
        token: str,
        allowed_chats: list[int] | None = None,
    ) -> None:
        """
        Initialize Telegram adapter.

        Args:
            token: Telegram bot token from BotFather
            allowed_chats: Chat IDs allowed to use the bot (None allows all)
        """
        super().__init__()
        self.token = token
        self.allowed_chats = set(allowed_chats) if allowed_chats else None
        self._application: Any = None

    def is_allowed(self, chat_id: int) -> bool:
        """Check if a chat may use the bot."""
        return self.allowed_chats is None or chat_id in self.allowed_chats

    async def connect(self) -> None:
        """Initialize Telegram bot."""
        from telegram.ext import ApplicationBuilder

        self._application = ApplicationBuilder().token(self.token).build()
        logger.info("Telegram bot initialized")

    async def disconnect(self) -> None:
        """Drop the Telegram application."""
        self._application = None
        logger.info("Disconnected from Telegram")

    def parse_update(self, update: Any) -> ChatMessage | None:
        """Parse a Telegram update into a ChatMessage."""
        message = update.message or update.edited_message

        if not message or not message.text:
            return None

        user = message.from_user
        chat = message.chat
        text = message.text

        if text.startswith("/"):
            msg_type = MessageType.COMMAND
            # Remove bot username if present (/command@botname)
            if "@" in text.split()[0]:
                parts = text.split(maxsplit=1)
                command = parts[0].split("@")[0]
                text = command + (" " + parts[1] if len(parts) > 1 else "")
        else:
            msg_type = MessageType.TEXT

        return ChatMessage(
            id=str(message.message_id),
            text=text,
            user=ChatUser(
                id=str(user.id) if user else "",
                name=(user.username or str(user.id)) if user else "",
            ),
            channel=ChatChannel(
                id=str(chat.id),
                name=chat.title or chat.username or "DM",
            ),
            timestamp=message.date,
            message_type=msg_type,
        )

    async def send_message(self, response: ChatResponse) -> str:
        """Send a message to Telegram."""
        if not self._application:
            raise RuntimeError("Not connected to Telegram")

        kwargs: dict[str, Any] = {
            "chat_id": int(response.channel_id),
            "text": response.text,
        }
        if response.markdown:
            kwargs["parse_mode"] = "Markdown"

        try:
            message = await self._application.bot.send_message(**kwargs)
        except Exception as e:
            if "parse_mode" not in kwargs:
                raise
            # Retry without markdown if parsing fails
            logger.warning("Markdown parsing failed, retrying plain text", error=str(e))
            kwargs.pop("parse_mode")
            message = await self._application.bot.send_message(**kwargs)
        return str(message.message_id)

    async def handle_update(self, update: Any, context: Any = None) -> None:
        """Handle one incoming update."""
        chat = update.effective_chat
        if chat is None:
            return

        if not self.is_allowed(chat.id):
            logger.warning("Unauthorized access attempt", chat_id=chat.id)
            await self.send_message(
                ChatResponse(text=UNAUTHORIZED_REPLY, channel_id=str(chat.id), markdown=False)
            )
            return

        parsed = self.parse_update(update)
        if parsed is None:
            return
        logger.debug("Message received", user=parsed.user.name, chat=parsed.channel.name, text=parsed.text)

        try:
            response = await self.dispatch(parsed)
            if response:
                await self.send_message(response)
        except Exception as e:
            logger.error("Error handling message", error=str(e), chat_id=chat.id)

    async def run(self) -> None:
        """Start listening for Telegram updates."""
        if not self._application:
            await self.connect()

        from telegram.ext import MessageHandler, filters

        self._application.add_handler(MessageHandler(filters.TEXT, self.handle_update))

        self._running = True
        logger.info("Telegram adapter starting", commands=self.commands)

        await self._application.initialize()
        await self._application.start()
        await self._application.updater.start_polling(drop_pending_updates=True)

        try:
            # Keep running until stopped
            while self._running:
                await asyncio.sleep(1)
        finally:
            await self._application.updater.stop()
            await self._application.stop()
            await self._application.shutdown()
            await self.disconnect()
