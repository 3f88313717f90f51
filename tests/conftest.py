from typing import Dict, List, Optional, Tuple

import pytest

from transmission_telegram.config import Config
from transmission_telegram.context import BotContext
from transmission_telegram.models import ManagerStats, TorrentItem
from transmission_telegram.services import ManagerError, MessageDispatcher, TorrentNotFound


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeChat:
    def __init__(self) -> None:
        self.sent: List[Tuple[int, str, bool]] = []
        self.edits: List[Tuple[int, int, str, bool]] = []
        self.typing: List[int] = []
        self.files: Dict[str, str] = {}
        self.fail_sends = 0
        self.fail_typing = False
        self.fail_edits = 0
        self._next_id = 100

    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> int:
        if self.fail_sends:
            self.fail_sends -= 1
            raise RuntimeError("send failed")
        self.sent.append((chat_id, text, markdown))
        self._next_id += 1
        return self._next_id

    async def edit_message(self, chat_id: int, message_id: int, text: str, markdown: bool = False) -> None:
        if self.fail_edits:
            self.fail_edits -= 1
            raise RuntimeError("edit failed")
        self.edits.append((chat_id, message_id, text, markdown))

    async def send_typing(self, chat_id: int) -> None:
        if self.fail_typing:
            raise RuntimeError("typing failed")
        self.typing.append(chat_id)

    async def get_file_url(self, file_id: str) -> str:
        if file_id not in self.files:
            raise RuntimeError(f"file {file_id} not found")
        return self.files[file_id]

    @property
    def texts(self) -> List[str]:
        return [text for _, text, _ in self.sent]


class FakeManager:
    def __init__(self, torrents: Optional[List[TorrentItem]] = None) -> None:
        self.torrents: List[TorrentItem] = list(torrents or [])
        self.stats = ManagerStats(download_speed=2000, upload_speed=1000)
        self.fail_next = 0
        self.fetches = 0
        self.actions: List[Tuple[str, object]] = []
        self.added: Dict[str, TorrentItem] = {}

    def _maybe_fail(self) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise ManagerError("connection refused")

    async def get_torrents(self) -> List[TorrentItem]:
        self.fetches += 1
        self._maybe_fail()
        return sorted(self.torrents, key=lambda t: t.id)

    async def get_torrent(self, torrent_id: int) -> TorrentItem:
        self.fetches += 1
        self._maybe_fail()
        for torrent in self.torrents:
            if torrent.id == torrent_id:
                return torrent
        raise TorrentNotFound(torrent_id)

    async def add_torrent(self, url: str) -> TorrentItem:
        if url not in self.added:
            raise ManagerError(f"invalid or corrupt torrent file: {url}")
        return self.added[url]

    async def _act(self, action: str, torrent_id: int) -> TorrentItem:
        torrent = await self.get_torrent(torrent_id)
        self.actions.append((action, torrent_id))
        return torrent

    async def start_torrent(self, torrent_id: int) -> TorrentItem:
        return await self._act("start", torrent_id)

    async def stop_torrent(self, torrent_id: int) -> TorrentItem:
        return await self._act("stop", torrent_id)

    async def verify_torrent(self, torrent_id: int) -> TorrentItem:
        return await self._act("verify", torrent_id)

    async def start_all(self) -> None:
        self.actions.append(("start", "all"))

    async def stop_all(self) -> None:
        self.actions.append(("stop", "all"))

    async def verify_all(self) -> None:
        self.actions.append(("verify", "all"))

    async def remove_torrent(self, torrent_id: int, delete_data: bool = False) -> str:
        torrent = await self.get_torrent(torrent_id)
        self.torrents.remove(torrent)
        self.actions.append(("remove", (torrent_id, delete_data)))
        return torrent.name

    async def session_stats(self) -> ManagerStats:
        self.fetches += 1
        self._maybe_fail()
        return self.stats

    async def version(self) -> str:
        return "4.0.5"


def make_config(**overrides) -> Config:
    values = dict(token="123:abc", masters=frozenset({"bob"}), live_interval=0.0, live_ticks=3)
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def manager() -> FakeManager:
    return FakeManager()


@pytest.fixture
def bot(chat: FakeChat, manager: FakeManager) -> BotContext:
    return BotContext(config=make_config(), manager=manager, dispatcher=MessageDispatcher(chat))
