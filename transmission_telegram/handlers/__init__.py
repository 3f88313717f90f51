"""
Telegram Bot Handlers
Command routing and the command handlers themselves.
"""

from transmission_telegram.handlers.router import COMMANDS, Command, CommandRouter, build_command_table

__all__ = [
    'COMMANDS',
    'Command',
    'CommandRouter',
    'build_command_table',
]
