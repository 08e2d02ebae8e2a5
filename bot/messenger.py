"""
Telegram messenger used by the game engine.
"""
import asyncio
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from utils.errors import TelegramAPIError
from utils.logging import get_logger
from utils.retry import telegram_retry
import config

logger = get_logger(__name__)


class TelegramMessenger:
    """
    Sends chat messages through the Bot API from synchronous code.

    Each send runs on its own event loop, so it is safe from worker threads, timer
    threads and Celery tasks alike.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token or config.config.TELEGRAM_BOT_TOKEN

    def send(self, chat_id: int, text: str) -> Optional[int]:
        """
        Send a message to a chat.

        Returns:
            Telegram message id
        """
        try:
            return self._send(chat_id, text)
        except TelegramError as e:
            logger.error(f"Error sending message to chat {chat_id}: {e}", exc_info=True)
            raise TelegramAPIError(f"Failed to send message to chat {chat_id}", {"error": str(e)})

    @telegram_retry
    def _send(self, chat_id: int, text: str) -> Optional[int]:
        return asyncio.run(self._send_async(chat_id, text))

    async def _send_async(self, chat_id: int, text: str) -> Optional[int]:
        bot = Bot(token=self.token)
        async with bot:
            message = await bot.send_message(chat_id=chat_id, text=text)
        logger.debug(f"Sent message {message.message_id} to chat {chat_id}")
        return message.message_id
