"""
Completion Watcher Service
Follows Transmission's log file and announces finished torrents.
"""

import asyncio
import re
from pathlib import Path
from typing import List, Optional

from watchfiles import awatch

from transmission_telegram.config import logger
from transmission_telegram.services.dispatcher import MessageDispatcher

# [2017-02-22 21:00:00.898] File-Name State changed from "Incomplete" to "Complete" (torrent.c:2218)
COMPLETED_RE = re.compile(r'^\[[^\]]*\]\s+(?P<name>.+?)\s+State changed from "Incomplete" to "Complete"')


def parse_completed(line: str) -> Optional[str]:
    """Return the torrent name if the log line reports a completed download."""
    match = COMPLETED_RE.match(line.strip())
    return match.group("name") if match else None


class CompletionWatcher:
    """Tails the log and sends "Completed: NAME" to the last chat that issued a command.

    The parent directory is watched so a rotated or recreated log is picked up.
    When the file shrinks or is replaced, reading starts again from its top.
    """

    def __init__(self, path: str, dispatcher: MessageDispatcher):
        self.path = Path(path).expanduser().resolve()
        self.dispatcher = dispatcher
        self.chat_id: Optional[int] = None
        self.offset = 0
        self._inode: Optional[int] = None
        self._pending = b""

    def note_chat(self, chat_id: int) -> None:
        self.chat_id = chat_id

    def mark_end(self) -> None:
        """Skip everything already in the log, only new lines matter."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            self._inode, self.offset = None, 0
            return
        self._inode, self.offset = stat.st_ino, stat.st_size
        self._pending = b""

    def read_new_lines(self) -> List[str]:
        """Return the complete lines appended since the last read. Blocking."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return []
        if stat.st_ino != self._inode or stat.st_size < self.offset:
            # Truncated or rotated
            self._inode, self.offset, self._pending = stat.st_ino, 0, b""
        if stat.st_size == self.offset:
            return []

        with open(self.path, "rb") as f:
            f.seek(self.offset)
            data = f.read()
        self.offset += len(data)

        *lines, self._pending = (self._pending + data).split(b"\n")
        return [line.decode("utf-8", errors="replace") for line in lines]

    def _is_log(self, change, changed_path: str) -> bool:
        return Path(changed_path).resolve() == self.path

    async def handle_line(self, line: str) -> None:
        name = parse_completed(line)
        if name is None:
            return
        if self.chat_id is None:
            logger.info(f"Completed {name}, but no chat to notify yet")
            return
        await self.dispatcher.send(self.chat_id, f"Completed: {name}")

    async def poll(self) -> None:
        for line in await asyncio.to_thread(self.read_new_lines):
            await self.handle_line(line)

    async def run(self) -> None:
        await asyncio.to_thread(self.mark_end)
        logger.info(f"Watching {self.path} for completed torrents")
        try:
            async for _ in awatch(self.path.parent, watch_filter=self._is_log):
                await self.poll()
        except OSError as e:
            logger.error(f"Error tailing transmission log: {e}")
