"""
Bot Models
Data classes and type definitions.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Callable, Iterable, List, Optional, Tuple

# Matches the host part of a tracker announce URL
TRACKER_HOST_RE = re.compile(r"(?:https?|udp)://([^:/]*)", re.IGNORECASE)


class TorrentStatus(IntEnum):
    """Torrent status codes as reported by Transmission's RPC."""
    STOPPED = 0
    CHECK_PENDING = 1
    CHECKING = 2
    DOWNLOAD_PENDING = 3
    DOWNLOADING = 4
    SEED_PENDING = 5
    SEEDING = 6

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    TorrentStatus.STOPPED: "Stopped",
    TorrentStatus.CHECK_PENDING: "Check waiting",
    TorrentStatus.CHECKING: "Checking",
    TorrentStatus.DOWNLOAD_PENDING: "Download waiting",
    TorrentStatus.DOWNLOADING: "Downloading",
    TorrentStatus.SEED_PENDING: "Seed waiting",
    TorrentStatus.SEEDING: "Seeding",
}


@dataclass(frozen=True)
class TorrentItem:
    """A read-only snapshot of one torrent."""
    id: int
    name: str
    status: TorrentStatus = TorrentStatus.STOPPED
    total_size: int = 0
    size_when_done: int = 0
    left_until_done: int = 0
    percent_done: float = 0.0
    downloaded_ever: int = 0
    uploaded_ever: int = 0
    rate_download: int = 0
    rate_upload: int = 0
    upload_ratio: float = 0.0
    error: int = 0
    error_string: str = ""
    trackers: Tuple[str, ...] = ()
    added_date: int = 0
    eta: int = -1

    @property
    def have(self) -> int:
        """Bytes downloaded and verified so far."""
        return self.size_when_done - self.left_until_done

    @property
    def ratio(self) -> str:
        if self.upload_ratio < 0:
            return "∞"
        return f"{self.upload_ratio:.3f}"

    @property
    def tracker_text(self) -> str:
        """All announce URLs joined, used for tracker queries."""
        return " ".join(self.trackers)

    @property
    def tracker_hosts(self) -> List[str]:
        hosts = []
        for announce in self.trackers:
            match = TRACKER_HOST_RE.search(announce)
            if match:
                hosts.append(match.group(1))
        return hosts

    @property
    def added(self) -> datetime:
        return datetime.fromtimestamp(self.added_date)


@dataclass(frozen=True)
class TransferStats:
    downloaded_bytes: int = 0
    uploaded_bytes: int = 0
    seconds_active: int = 0
    session_count: int = 0


@dataclass(frozen=True)
class ManagerStats:
    """Transmission's session statistics."""
    torrent_count: int = 0
    active_torrent_count: int = 0
    paused_torrent_count: int = 0
    download_speed: int = 0
    upload_speed: int = 0
    current: TransferStats = TransferStats()
    cumulative: TransferStats = TransferStats()


class SortField(Enum):
    ID = "id"
    NAME = "name"
    AGE = "age"
    SIZE = "size"
    PROGRESS = "progress"
    DOWNSPEED = "downspeed"
    UPSPEED = "upspeed"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    RATIO = "ratio"

    @classmethod
    def parse(cls, name: str) -> Optional["SortField"]:
        try:
            return cls(name.lower())
        except ValueError:
            return None


_SORT_KEYS: dict = {
    SortField.ID: lambda t: t.id,
    SortField.NAME: lambda t: t.name.casefold(),
    SortField.AGE: lambda t: t.added_date,
    SortField.SIZE: lambda t: t.size_when_done,
    SortField.PROGRESS: lambda t: t.percent_done,
    SortField.DOWNSPEED: lambda t: t.rate_download,
    SortField.UPSPEED: lambda t: t.rate_upload,
    SortField.DOWNLOAD: lambda t: t.downloaded_ever,
    SortField.UPLOAD: lambda t: t.uploaded_ever,
    SortField.RATIO: lambda t: t.upload_ratio,
}


@dataclass(frozen=True)
class SortOrder:
    """Ordering used by every list rendering."""
    field: SortField = SortField.ID
    reverse: bool = False

    @property
    def key(self) -> Callable[[TorrentItem], object]:
        return _SORT_KEYS[self.field]

    def apply(self, torrents: Iterable[TorrentItem]) -> List[TorrentItem]:
        # sorted() is stable in both directions, ties keep the manager's id order
        return sorted(torrents, key=self.key, reverse=self.reverse)

    def describe(self) -> str:
        if self.reverse:
            return f"reversed {self.field.value}"
        return self.field.value


@dataclass(frozen=True)
class InboundMessage:
    """A message received from telegram, stripped to what the router needs."""
    sender: str
    chat_id: int
    text: str = ""
    attachment_id: Optional[str] = None
    message_id: Optional[int] = None
