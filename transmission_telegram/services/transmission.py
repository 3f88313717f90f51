"""
Transmission Service
Async access to the Transmission RPC interface.
"""

import asyncio
from typing import Any, Callable, List, Mapping, Optional, Protocol, TypeVar
from urllib.parse import urlparse

from transmission_rpc import Client, TransmissionError

from transmission_telegram.config import logger
from transmission_telegram.models import ManagerStats, TorrentItem, TorrentStatus, TransferStats

T = TypeVar("T")


class ManagerError(Exception):
    """A call to the download manager failed."""


class TorrentNotFound(ManagerError):
    def __init__(self, torrent_id: int):
        super().__init__(f"No torrent with an ID of {torrent_id}")
        self.torrent_id = torrent_id


class TorrentManager(Protocol):
    """What the command handlers need from the download manager."""

    async def get_torrents(self) -> List[TorrentItem]: ...

    async def get_torrent(self, torrent_id: int) -> TorrentItem: ...

    async def add_torrent(self, url: str) -> TorrentItem: ...

    async def start_torrent(self, torrent_id: int) -> TorrentItem: ...

    async def stop_torrent(self, torrent_id: int) -> TorrentItem: ...

    async def verify_torrent(self, torrent_id: int) -> TorrentItem: ...

    async def start_all(self) -> None: ...

    async def stop_all(self) -> None: ...

    async def verify_all(self) -> None: ...

    async def remove_torrent(self, torrent_id: int, delete_data: bool = False) -> str: ...

    async def session_stats(self) -> ManagerStats: ...

    async def version(self) -> str: ...


def torrent_from_fields(fields: Mapping[str, Any]) -> TorrentItem:
    """Build a TorrentItem from the raw RPC field names."""
    try:
        status = TorrentStatus(int(fields.get("status", 0)))
    except ValueError:
        status = TorrentStatus.STOPPED
    trackers = tuple(
        tracker.get("announce", "") for tracker in fields.get("trackers") or ()
        if isinstance(tracker, Mapping)
    )
    return TorrentItem(
        id=int(fields["id"]),
        name=fields.get("name") or "",
        status=status,
        total_size=int(fields.get("totalSize") or 0),
        size_when_done=int(fields.get("sizeWhenDone") or 0),
        left_until_done=int(fields.get("leftUntilDone") or 0),
        percent_done=float(fields.get("percentDone") or 0.0),
        downloaded_ever=int(fields.get("downloadedEver") or 0),
        uploaded_ever=int(fields.get("uploadedEver") or 0),
        rate_download=int(fields.get("rateDownload") or 0),
        rate_upload=int(fields.get("rateUpload") or 0),
        upload_ratio=float(fields.get("uploadRatio") or 0.0),
        error=int(fields.get("error") or 0),
        error_string=fields.get("errorString") or "",
        trackers=trackers,
        added_date=int(fields.get("addedDate") or 0),
        eta=int(fields.get("eta", -1)),
    )


def _transfer_stats(stats: Any) -> TransferStats:
    return TransferStats(
        downloaded_bytes=stats.downloaded_bytes,
        uploaded_bytes=stats.uploaded_bytes,
        seconds_active=stats.seconds_active,
        session_count=stats.session_count,
    )


class TransmissionManager:
    """TorrentManager backed by transmission_rpc.

    transmission_rpc is synchronous, so every call runs in a worker thread.
    """

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def connect(cls, url: str, username: Optional[str] = None, password: Optional[str] = None) -> "TransmissionManager":
        """Open a session with Transmission. Raises ManagerError if it can't be reached."""
        parsed = urlparse(url)
        default_port = 443 if parsed.scheme == "https" else 9091
        try:
            client = Client(
                protocol=parsed.scheme or "http",
                host=parsed.hostname or "localhost",
                port=parsed.port or default_port,
                path=parsed.path or "/transmission/rpc",
                username=username,
                password=password,
            )
        except TransmissionError as e:
            raise ManagerError(str(e)) from e
        logger.info(f"Connected to Transmission at {url}")
        return cls(client)

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except TransmissionError as e:
            raise ManagerError(str(e)) from e

    async def get_torrents(self) -> List[TorrentItem]:
        torrents = await self._call(self._client.get_torrents)
        items = [torrent_from_fields(t.fields) for t in torrents]
        items.sort(key=lambda t: t.id)
        return items

    async def get_torrent(self, torrent_id: int) -> TorrentItem:
        try:
            torrent = await self._call(self._client.get_torrent, torrent_id)
        except KeyError as e:
            raise TorrentNotFound(torrent_id) from e
        return torrent_from_fields(torrent.fields)

    async def add_torrent(self, url: str) -> TorrentItem:
        torrent = await self._call(self._client.add_torrent, url)
        return torrent_from_fields(torrent.fields)

    async def start_torrent(self, torrent_id: int) -> TorrentItem:
        torrent = await self.get_torrent(torrent_id)
        await self._call(self._client.start_torrent, torrent_id)
        return torrent

    async def stop_torrent(self, torrent_id: int) -> TorrentItem:
        torrent = await self.get_torrent(torrent_id)
        await self._call(self._client.stop_torrent, torrent_id)
        return torrent

    async def verify_torrent(self, torrent_id: int) -> TorrentItem:
        torrent = await self.get_torrent(torrent_id)
        await self._call(self._client.verify_torrent, torrent_id)
        return torrent

    async def _all_ids(self) -> List[int]:
        return [t.id for t in await self.get_torrents()]

    async def start_all(self) -> None:
        await self._call(self._client.start_all)

    async def stop_all(self) -> None:
        ids = await self._all_ids()
        if ids:
            await self._call(self._client.stop_torrent, ids)

    async def verify_all(self) -> None:
        ids = await self._all_ids()
        if ids:
            await self._call(self._client.verify_torrent, ids)

    async def remove_torrent(self, torrent_id: int, delete_data: bool = False) -> str:
        torrent = await self.get_torrent(torrent_id)
        await self._call(self._client.remove_torrent, torrent_id, delete_data=delete_data)
        return torrent.name

    async def session_stats(self) -> ManagerStats:
        stats = await self._call(self._client.session_stats)
        return ManagerStats(
            torrent_count=stats.torrent_count,
            active_torrent_count=stats.active_torrent_count,
            paused_torrent_count=stats.paused_torrent_count,
            download_speed=stats.download_speed,
            upload_speed=stats.upload_speed,
            current=_transfer_stats(stats.current_stats),
            cumulative=_transfer_stats(stats.cumulative_stats),
        )

    async def version(self) -> str:
        session = await self._call(self._client.get_session)
        return session.version
