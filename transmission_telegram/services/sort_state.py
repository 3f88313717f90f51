"""
Sort State Service
The ordering shared by every list command.
"""

import threading

from transmission_telegram.models import SortField, SortOrder


class SortState:
    """Single-writer, many-reader holder of the current SortOrder.

    The order is shared by all chats, so a `sort` in one chat changes what
    every other master sees on their next listing.
    """

    def __init__(self, order: SortOrder = SortOrder()):
        self._order = order
        self._lock = threading.Lock()

    def set(self, field: SortField, reverse: bool = False) -> SortOrder:
        order = SortOrder(field, reverse)
        with self._lock:
            self._order = order
        return order

    def current(self) -> SortOrder:
        with self._lock:
            return self._order
