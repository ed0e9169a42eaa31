"""
Bounded most-recent-first history of stats snapshots.
"""

from collections import deque
from typing import Deque, Optional

from netmon.storage.models import StatsSnapshot


class StatsHistory:
    """Fixed capacity deque of snapshots, newest at the front.

    Accessors on an empty history raise IndexError, callers are expected to
    check ``len()`` first.
    """

    def __init__(self, max_len: int):
        """
        Initialize stats history.

        Args:
            max_len: Maximum amount of kept snapshots

        Raises:
            ValueError: If max_len is lower than one
        """
        if max_len < 1:
            raise ValueError("max_len should be greater than zero")

        self.max_len = max_len
        self._deque: Deque[StatsSnapshot] = deque()

    def push_front(self, snapshot: StatsSnapshot) -> Optional[StatsSnapshot]:
        """
        Push snapshot to the front, dropping the oldest one if history is full.

        Returns:
            Dropped snapshot from the back, or None if nothing was dropped
        """
        if snapshot is None:
            raise TypeError("StatsHistory: push front None snapshot")

        back = None
        if len(self._deque) >= self.max_len:
            back = self._deque.pop()
        self._deque.appendleft(snapshot)
        return back

    def front(self) -> StatsSnapshot:
        return self._deque[0]

    def back(self) -> StatsSnapshot:
        return self._deque[-1]

    def at(self, index: int) -> StatsSnapshot:
        return self._deque[index]

    def __len__(self) -> int:
        return len(self._deque)

    def clear(self):
        self._deque.clear()
