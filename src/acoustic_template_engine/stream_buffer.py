"""Growable FIFO of incoming audio samples."""

import logging
from typing import Sequence

import numpy as np

from acoustic_template_engine.errors import InsufficientDataError

logger = logging.getLogger(__name__)


class StreamBuffer:
    """Ordered sample buffer: append at the tail, consume from the head.

    Backed by a single contiguous numpy array with a moving head offset, so
    the first N samples are always available as a view without copying.
    Storage is compacted (and grown by doubling when needed) only when the
    tail reaches the end of the array, which keeps append amortized O(1).

    Not thread-safe: one producer and one consumer in the same thread.
    """

    def __init__(self, initial_capacity: int = 48000, dtype=np.float32):
        """Initialize an empty buffer.

        Args:
            initial_capacity: Number of samples to preallocate
            dtype: Sample dtype stored in the buffer
        """
        self._data = np.zeros(max(1, initial_capacity), dtype=dtype)
        self._start = 0
        self._end = 0
        self._consumed = 0

    def append(self, samples: Sequence[float]) -> None:
        """Add samples to the tail, preserving arrival order."""
        chunk = np.asarray(samples, dtype=self._data.dtype).reshape(-1)
        n = chunk.size
        if n == 0:
            return

        if self._end + n > self._data.size:
            self._make_room(n)

        self._data[self._end : self._end + n] = chunk
        self._end += n

    def _make_room(self, incoming: int) -> None:
        length = self._end - self._start
        needed = length + incoming
        capacity = self._data.size

        # Keep at least half the array free after compaction
        if needed * 2 > capacity:
            capacity = max(capacity * 2, needed * 2)
            logger.debug(f"Growing stream buffer to {capacity} samples")

        data = np.empty(capacity, dtype=self._data.dtype)
        data[:length] = self._data[self._start : self._end]
        self._data = data
        self._start = 0
        self._end = length

    def window(self, length: int) -> np.ndarray:
        """Return a read-only view of the oldest `length` samples.

        The view is only valid until the next append() or consume().

        Raises:
            InsufficientDataError: If fewer than `length` samples are buffered
        """
        available = len(self)
        if available < length:
            raise InsufficientDataError(length, available)
        view = self._data[self._start : self._start + length]
        view.flags.writeable = False
        return view

    def consume(self, n: int) -> int:
        """Drop up to `n` samples from the head.

        Over-consumption is clamped to the buffered length.

        Returns:
            Number of samples actually dropped
        """
        n = min(max(0, n), len(self))
        self._start += n
        self._consumed += n
        if self._start == self._end:
            self._start = self._end = 0
        return n

    def clear(self) -> None:
        """Drop all buffered samples."""
        self.consume(len(self))

    @property
    def consumed(self) -> int:
        """Total number of samples dropped since creation."""
        return self._consumed

    def __len__(self) -> int:
        return self._end - self._start

    def __repr__(self) -> str:
        return f"StreamBuffer(len={len(self)}, consumed={self._consumed})"
