"""
Transmission Telegram Bot
Control a Transmission daemon by chatting with a Telegram bot.
"""

__version__ = "1.4.0"
