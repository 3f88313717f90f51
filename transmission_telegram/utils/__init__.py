"""
Bot Utilities
Helper functions and utilities.
"""

from transmission_telegram.utils.formatting import escape_markdown, human_bytes, snapshot
from transmission_telegram.utils.auth import is_authorized, normalize_identity

__all__ = [
    'escape_markdown',
    'human_bytes',
    'snapshot',
    'is_authorized',
    'normalize_identity',
]
