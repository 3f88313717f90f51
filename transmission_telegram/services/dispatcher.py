"""
Message Dispatcher Service
Sends and edits messages, splitting text that is too long for telegram.
"""

from typing import List, Optional, Protocol

from telegram.constants import MessageLimit

from transmission_telegram.config import logger

MAX_MESSAGE_LENGTH = MessageLimit.MAX_TEXT_LENGTH


class ChatClient(Protocol):
    """What the bot needs from the chat platform."""

    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> int: ...

    async def edit_message(self, chat_id: int, message_id: int, text: str, markdown: bool = False) -> None: ...

    async def send_typing(self, chat_id: int) -> None: ...

    async def get_file_url(self, file_id: str) -> str: ...


def chunk_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split text into pieces of at most `limit` characters.

    Every piece but the last ends with a newline. A single line longer than
    the limit is cut at the limit. Joining the pieces gives back the text.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    chunks = []
    while len(text) > limit:
        stop = text.rfind("\n", 0, limit)
        cut = stop + 1 if stop >= 0 else limit
        chunks.append(text[:cut])
        text = text[cut:]
    if text or not chunks:
        chunks.append(text)
    return chunks


class MessageDispatcher:
    """Delivers text to chats, at most one attempt per chunk."""

    def __init__(self, chat: ChatClient, limit: int = MAX_MESSAGE_LENGTH):
        self.chat = chat
        self.limit = limit

    async def send(self, chat_id: int, text: str, markdown: bool = False) -> Optional[int]:
        """Send text, chunked if needed. Returns the id of the first delivered chunk."""
        try:
            await self.chat.send_typing(chat_id)
        except Exception as e:
            logger.debug(f"Typing action failed for chat ID {chat_id}: {e}")

        anchor = None
        for chunk in chunk_text(text, self.limit):
            if not chunk.strip():
                continue
            try:
                message_id = await self.chat.send_message(chat_id, chunk, markdown)
            except Exception as e:
                logger.error(f"Send to chat ID {chat_id} failed: {e}")
                continue
            if anchor is None:
                anchor = message_id
        return anchor

    async def edit(self, chat_id: int, message_id: int, text: str, markdown: bool = False) -> bool:
        """Replace the text of a message sent earlier. Returns False if it failed."""
        try:
            await self.chat.edit_message(chat_id, message_id, text, markdown)
        except Exception as e:
            logger.error(f"Edit of message {message_id} in chat ID {chat_id} failed: {e}")
            return False
        return True
