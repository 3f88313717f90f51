"""
Bot Services
Collaborator adapters and the shared state behind the commands.
"""

from transmission_telegram.services.completion import CompletionWatcher
from transmission_telegram.services.dispatcher import ChatClient, MessageDispatcher, chunk_text
from transmission_telegram.services.live import LiveRefresher, LiveSessions
from transmission_telegram.services.sort_state import SortState
from transmission_telegram.services.transmission import (
    ManagerError,
    TorrentManager,
    TorrentNotFound,
    TransmissionManager,
)

__all__ = [
    'CompletionWatcher',
    'ChatClient',
    'MessageDispatcher',
    'chunk_text',
    'LiveRefresher',
    'LiveSessions',
    'SortState',
    'ManagerError',
    'TorrentManager',
    'TorrentNotFound',
    'TransmissionManager',
]
