"""Fixed-depth history of correlation scores for one kernel."""

from collections import deque
from typing import Deque, Tuple

from acoustic_template_engine.errors import ConfigError

# Exceeds the deepest position (53) read by the default rules
DEFAULT_HISTORY_DEPTH = 54


class HistoryTracker:
    """Most recent correlation scores, newest first.

    Index 0 is the most recently pushed score. Once `capacity` scores are
    held, each push evicts the oldest one.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_DEPTH):
        if capacity < 1:
            raise ConfigError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._scores: Deque[float] = deque(maxlen=capacity)

    def push(self, score: float) -> None:
        self._scores.appendleft(score)

    def snapshot(self) -> Tuple[float, ...]:
        """Scores front to back (newest first)."""
        return tuple(self._scores)

    def clear(self) -> None:
        self._scores.clear()

    def is_ready(self) -> bool:
        """True when the history is exactly full."""
        return len(self._scores) == self.capacity

    def __getitem__(self, position: int) -> float:
        return self._scores[position]

    def __len__(self) -> int:
        return len(self._scores)

    def __repr__(self) -> str:
        return f"HistoryTracker({len(self)}/{self.capacity})"
