"""
Live Update Service
Keeps a sent message fresh by editing it on a timer, then freezes it.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Set, Tuple, TypeVar

from transmission_telegram.config import logger
from transmission_telegram.services.dispatcher import MessageDispatcher
from transmission_telegram.services.transmission import ManagerError

T = TypeVar("T")

Fetch = Callable[[], Awaitable[T]]
Render = Callable[[T, bool], str]


class LiveRefresher(Generic[T]):
    """Re-renders one message `ticks` times, `interval` seconds apart.

    `render(data, frozen)` is called with frozen=False for each tick and once
    with frozen=True at the end, using the last data fetched successfully.
    A tick whose fetch fails is forfeited: no edit, one tick less left.
    """

    def __init__(
        self,
        dispatcher: MessageDispatcher,
        chat_id: int,
        message_id: int,
        fetch: Fetch,
        render: Render,
        initial: T,
        ticks: int,
        interval: float,
        markdown: bool = False,
    ):
        self.dispatcher = dispatcher
        self.chat_id = chat_id
        self.message_id = message_id
        self.fetch = fetch
        self.render = render
        self.last = initial
        self.ticks = ticks
        self.interval = interval
        self.markdown = markdown
        self.edits = 0
        self._cancelled = asyncio.Event()

    @property
    def key(self) -> Tuple[int, int]:
        return (self.chat_id, self.message_id)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop refreshing early; the frozen render is still issued."""
        self._cancelled.set()

    async def _wait(self) -> bool:
        """Sleep one interval. False if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return True
        return False

    async def run(self) -> None:
        for tick in range(self.ticks):
            if not await self._wait():
                break
            try:
                self.last = await self.fetch()
            except ManagerError as e:
                logger.debug(f"Live tick {tick} skipped for message {self.message_id}: {e}")
                continue
            if await self.dispatcher.edit(self.chat_id, self.message_id, self.render(self.last, False), self.markdown):
                self.edits += 1

        # Sleep one more time before freezing
        if not self.cancelled:
            await self._wait()
        await self.dispatcher.edit(self.chat_id, self.message_id, self.render(self.last, True), self.markdown)


class LiveSessions:
    """Runs LiveRefreshers as background tasks, one per message."""

    def __init__(self):
        self._sessions: Dict[Tuple[int, int], LiveRefresher] = {}
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def start(self, refresher: LiveRefresher) -> asyncio.Task:
        previous = self._sessions.get(refresher.key)
        if previous is not None:
            previous.cancel()
        self._sessions[refresher.key] = refresher

        task = asyncio.create_task(
            self._run(refresher), name=f"live:{refresher.chat_id}:{refresher.message_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, refresher: LiveRefresher) -> None:
        logger.info(f"Live updates started for message {refresher.message_id} in chat ID {refresher.chat_id}")
        try:
            await refresher.run()
        except Exception:
            logger.exception(f"Live updates failed for message {refresher.message_id}")
        finally:
            if self._sessions.get(refresher.key) is refresher:
                del self._sessions[refresher.key]
        logger.info(f"Live updates finished for message {refresher.message_id} in chat ID {refresher.chat_id}")

    def cancel_all(self) -> None:
        for refresher in list(self._sessions.values()):
            refresher.cancel()

    async def join(self) -> None:
        """Wait for every running session to freeze."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
