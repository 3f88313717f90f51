#!/usr/bin/env python3
"""
Transmission Telegram Bot
Receives text commands from its masters and drives a Transmission daemon.
"""

import asyncio
import sys
from typing import List, Optional

from telegram import BotCommand, Update
from telegram.error import InvalidToken, TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from transmission_telegram.config import Config, load_config, logger, setup_logging
from transmission_telegram.context import BotContext
from transmission_telegram.handlers import CommandRouter
from transmission_telegram.models import InboundMessage
from transmission_telegram.services import (
    CompletionWatcher,
    ManagerError,
    MessageDispatcher,
    TransmissionManager,
)
from transmission_telegram.services.telegram_chat import TelegramChat

ROUTER_KEY = "router"
WATCHER_TASK_KEY = "completion_task"


def to_inbound(update: Update) -> Optional[InboundMessage]:
    """Reduce a telegram update to what the router needs. None for anything but new messages."""
    message = update.message
    if message is None:
        return None
    user = message.from_user
    document = message.document
    return InboundMessage(
        sender=(user.username or "") if user else "",
        chat_id=message.chat_id,
        text=message.text or "",
        attachment_id=document.file_id if document else None,
        message_id=message.message_id,
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle every new message; commands run as separate tasks."""
    inbound = to_inbound(update)
    if inbound is None:
        return
    router: CommandRouter = context.bot_data[ROUTER_KEY]
    router.route(inbound)


async def setup_bot(application: Application) -> None:
    """Set up bot commands for the menu and start the completion watcher."""
    logger.info(f"Authorized: @{application.bot.username}")

    commands = [
        BotCommand("list", "List all torrents"),
        BotCommand("active", "Torrents uploading or downloading"),
        BotCommand("info", "Details about torrents by ID"),
        BotCommand("speed", "Current upload and download speed"),
        BotCommand("stats", "Transmission statistics"),
        BotCommand("help", "Show help and usage guide"),
    ]
    try:
        await application.bot.set_my_commands(commands)
    except TelegramError as e:
        logger.warning(f"Could not set bot commands: {e}")

    router: CommandRouter = application.bot_data[ROUTER_KEY]
    watcher = router.bot.completion
    if watcher is not None:
        application.bot_data[WATCHER_TASK_KEY] = asyncio.create_task(watcher.run(), name="completion-watcher")


async def stop_bot(application: Application) -> None:
    """Runs before the bot shuts down, so frozen live edits can still be delivered."""
    task = application.bot_data.pop(WATCHER_TASK_KEY, None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    router: CommandRouter = application.bot_data[ROUTER_KEY]
    await router.join()
    router.bot.live.cancel_all()
    await router.bot.live.join()


def build_application(config: Config, manager: TransmissionManager) -> Application:
    application = (
        Application.builder()
        .token(config.token)
        .post_init(setup_bot)
        .post_stop(stop_bot)
        .build()
    )

    dispatcher = MessageDispatcher(TelegramChat(application.bot))
    completion = None
    if config.transmission_logfile:
        completion = CompletionWatcher(config.transmission_logfile, dispatcher)

    bot = BotContext(config=config, manager=manager, dispatcher=dispatcher, completion=completion)
    application.bot_data[ROUTER_KEY] = CommandRouter(bot)

    # Edited messages are ignored, everything else goes through the router
    application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, handle_message))
    return application


def main(argv: Optional[List[str]] = None) -> None:
    """Start the bot."""
    config = load_config(argv)
    setup_logging(config.logfile)

    logger.info(
        f"Starting Transmission Telegram Bot: masters={sorted(config.masters)} url={config.rpc_url} "
        f"user={config.username or '-'} live={'off' if config.no_live else 'on'}"
    )

    try:
        manager = TransmissionManager.connect(config.rpc_url, config.username, config.password)
    except ManagerError as e:
        print(f"[ERROR] Transmission: Make sure you have the right URL, Username and Password ({e})", file=sys.stderr)
        sys.exit(1)

    application = build_application(config, manager)

    logger.info("Bot is running...")
    try:
        application.run_polling(allowed_updates=[Update.MESSAGE])
    except InvalidToken as e:
        print(f"[ERROR] Telegram: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
