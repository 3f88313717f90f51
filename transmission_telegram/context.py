"""
Bot Context
Everything a command handler needs, passed explicitly to each invocation.
"""

from dataclasses import dataclass, field
from typing import Optional

from transmission_telegram.config import Config
from transmission_telegram.services import (
    CompletionWatcher,
    LiveSessions,
    MessageDispatcher,
    SortState,
    TorrentManager,
)


@dataclass
class BotContext:
    config: Config
    manager: TorrentManager
    dispatcher: MessageDispatcher
    sort: SortState = field(default_factory=SortState)
    live: LiveSessions = field(default_factory=LiveSessions)
    completion: Optional[CompletionWatcher] = None

    @property
    def live_enabled(self) -> bool:
        return not self.config.no_live and self.config.live_ticks > 0
