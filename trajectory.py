"""
Trajectory History
Fixed-capacity ring buffer of recent 2D positions of one body
"""

from __future__ import annotations

import numpy as np

from errors import InvalidParameterError


class TrajectoryHistory:
    """
    Ring buffer that always holds exactly ``capacity`` points.

    ``_head`` is the slot of the oldest point, which the next ``push`` overwrites.
    """

    def __init__(self, capacity: int, fill=(0.0, 0.0)):
        if isinstance(capacity, bool) or not isinstance(capacity, (int, np.integer)) or capacity < 1:
            raise InvalidParameterError(f"capacity must be a positive integer, got {capacity!r}")
        self.capacity = int(capacity)
        self._buffer = np.empty((self.capacity, 2))
        self._head = 0
        self.reset_to(fill)

    def __len__(self) -> int:
        return self.capacity

    def push(self, point) -> None:
        self._buffer[self._head] = point
        self._head = (self._head + 1) % self.capacity

    def reset_to(self, point) -> None:
        """Overwrite every slot with ``point``."""
        self._buffer[:] = point
        self._head = 0

    def snapshot(self) -> np.ndarray:
        """Read-only (capacity, 2) copy ordered oldest to newest."""
        view = np.concatenate((self._buffer[self._head:], self._buffer[:self._head]))
        view.setflags(write=False)
        return view
