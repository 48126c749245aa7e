"""
ShuffleChain — grouped, repeat-avoiding random picker.

The chain holds a flat list of groups (each group is one or more song URIs
that are always enqueued together, e.g. a whole album).  ``pick()`` draws a
group uniformly at random, but never one of the last ``window_size`` picks,
so the same album/artist can't come back straight away.

Groups are addressed by their stable index into ``self._groups``; the window
is a small FIFO of indices plus a set for O(1) membership checks.
"""

import logging
import random
from collections import deque
from typing import Iterable

log = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 7


class ShuffleChain:
    """Pool of song groups with a sliding no-repeat window."""

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE,
                 rng: random.Random | None = None):
        if window_size < 1:
            raise ValueError(f"window-size must be >= 1 ({window_size} given)")
        self.window_size = window_size
        self._rng = rng or random.Random()
        self._groups: list[tuple[str, ...]] = []
        self._uri_count = 0
        self._window: deque[int] = deque()
        self._in_window: set[int] = set()

    # ── Pool management ──

    def add(self, group: Iterable[str] | str):
        """Append a group.  A bare string is a one-song group."""
        if isinstance(group, str):
            group = (group,)
        group = tuple(group)
        if not group:
            raise ValueError("cannot add an empty group")
        self._groups.append(group)
        self._uri_count += len(group)

    def clear(self):
        """Drop every group and forget the pick history."""
        self._groups.clear()
        self._uri_count = 0
        self._window.clear()
        self._in_window.clear()

    def len(self) -> int:
        """Number of groups in the pool."""
        return len(self._groups)

    def len_uris(self) -> int:
        """Number of song URIs across all groups."""
        return self._uri_count

    def __len__(self):
        return len(self._groups)

    def items(self) -> list[str]:
        """Every URI in the pool, in load order."""
        return [uri for group in self._groups for uri in group]

    @property
    def window(self) -> tuple[int, ...]:
        """Indices of the most recent picks, oldest first."""
        return tuple(self._window)

    def group(self, index: int) -> tuple[str, ...]:
        return self._groups[index]

    # ── Selection ──

    def _capacity(self) -> int:
        # A window covering every group would leave nothing to pick.
        return min(self.window_size, len(self._groups) - 1)

    def pick(self) -> list[str]:
        """Pick a random group outside the window and return its URIs."""
        count = len(self._groups)
        if count == 0:
            raise ValueError("cannot pick from an empty chain")
        if count == 1:
            return list(self._groups[0])

        # Rejection sampling: at least one group is always outside the
        # window, and the window is small compared to a typical library.
        while True:
            idx = self._rng.randrange(count)
            if idx not in self._in_window:
                break

        self._window.append(idx)
        self._in_window.add(idx)
        capacity = self._capacity()
        while len(self._window) > capacity:
            self._in_window.discard(self._window.popleft())

        log.debug("Picked group %d (%d songs), window=%s",
                  idx, len(self._groups[idx]), list(self._window))
        return list(self._groups[idx])
