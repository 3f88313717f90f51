"""
Telegram Chat Service
ChatClient implementation on top of python-telegram-bot.
"""

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ChatAction, ParseMode
from telegram.error import BadRequest

NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


class TelegramChat:
    """Thin wrapper around telegram.Bot used by the MessageDispatcher."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> int:
        message = await self.bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=ParseMode.MARKDOWN if markdown else None,
            link_preview_options=NO_PREVIEW,
        )
        return message.message_id

    async def edit_message(self, chat_id: int, message_id: int, text: str, markdown: bool = False) -> None:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                parse_mode=ParseMode.MARKDOWN if markdown else None,
                link_preview_options=NO_PREVIEW,
            )
        except BadRequest as e:
            if "message is not modified" in str(e).lower():
                # Message content is identical, ignore
                return
            raise

    async def send_typing(self, chat_id: int) -> None:
        await self.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)

    async def get_file_url(self, file_id: str) -> str:
        file = await self.bot.get_file(file_id)
        return file.file_path
