"""
Command Router
Authorizes inbound messages and dispatches each command as its own task.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from transmission_telegram.config import logger
from transmission_telegram.context import BotContext
from transmission_telegram.handlers import commands
from transmission_telegram.handlers.commands import Handler
from transmission_telegram.models import InboundMessage
from transmission_telegram.utils.auth import is_authorized


@dataclass(frozen=True)
class Command:
    name: str
    alias: Optional[str]
    handler: Handler

    @property
    def spellings(self) -> List[str]:
        names = [self.name] if self.alias is None else [self.name, self.alias]
        return [prefix + n for n in names for prefix in ("", "/")]


COMMANDS = (
    Command("list", "li", commands.list_command),
    Command("head", "he", commands.head_command),
    Command("tail", "ta", commands.tail_command),
    Command("downs", "dl", commands.downs_command),
    Command("seeding", "sd", commands.seeding_command),
    Command("paused", "pa", commands.paused_command),
    Command("checking", "ch", commands.checking_command),
    Command("active", "ac", commands.active_command),
    Command("errors", "er", commands.errors_command),
    Command("sort", "so", commands.sort_command),
    Command("trackers", "tr", commands.trackers_command),
    Command("add", "ad", commands.add_command),
    Command("search", "se", commands.search_command),
    Command("latest", "la", commands.latest_command),
    Command("info", "in", commands.info_command),
    Command("stop", "sp", commands.stop_command),
    Command("start", "st", commands.start_command),
    Command("check", "ck", commands.check_command),
    Command("stats", "sa", commands.stats_command),
    Command("speed", "ss", commands.speed_command),
    Command("count", "co", commands.count_command),
    Command("del", None, commands.del_command),
    Command("deldata", None, commands.deldata_command),
    Command("help", None, commands.help_command),
    Command("version", None, commands.version_command),
)


def build_command_table(entries: Iterable[Command]) -> Dict[str, Command]:
    table: Dict[str, Command] = {}
    for command in entries:
        for spelling in command.spellings:
            if spelling in table:
                raise ValueError(f"Duplicate command spelling: {spelling}")
            table[spelling] = command
    return table


UNKNOWN = Command("unknown", None, commands.unknown_command)
RECEIVE_FILE = Command("receive", None, commands.receive_file)


class CommandRouter:
    """Turns inbound messages into fire-and-forget command tasks."""

    def __init__(self, bot: BotContext, entries: Iterable[Command] = COMMANDS):
        self.bot = bot
        self.table = build_command_table(entries)
        self._tasks: Set[asyncio.Task] = set()

    def resolve(self, token: str) -> Command:
        name = token.lower()
        # "/list@MyBot" in groups
        if name.startswith("/") and "@" in name:
            name = name.split("@", 1)[0]
        return self.table.get(name, UNKNOWN)

    def route(self, message: InboundMessage) -> Optional[asyncio.Task]:
        """Handle one message; returns the spawned task, if any, without awaiting it."""
        if not is_authorized(message.sender, self.bot.config.masters):
            logger.info(f"Ignored a message from: {message.sender or 'unknown'} (chat ID: {message.chat_id})")
            return None

        if self.bot.completion is not None:
            self.bot.completion.note_chat(message.chat_id)

        tokens = message.text.split()
        if not tokens:
            if message.attachment_id:
                return self._spawn(RECEIVE_FILE, message, [])
            return None

        command = self.resolve(tokens[0])
        logger.info(f"Command {command.name} from {message.sender} (chat ID: {message.chat_id})")
        return self._spawn(command, message, tokens[1:])

    def _spawn(self, command: Command, message: InboundMessage, args: List[str]) -> asyncio.Task:
        task = asyncio.create_task(
            self._run(command, message, args), name=f"{command.name}:{message.chat_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, command: Command, message: InboundMessage, args: List[str]) -> None:
        try:
            await command.handler(self.bot, message, args)
        except Exception:
            logger.exception(f"Command {command.name} failed in chat ID {message.chat_id}")

    async def join(self) -> None:
        """Wait for in-flight commands, used on shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
