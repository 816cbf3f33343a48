"""Matched-filter correlation of a sample window against template kernels."""

import logging
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def correlate(window: Sequence[float], kernel: Sequence[float]) -> float:
    """Dot product of a window and a kernel over their common length.

    This is a plain matched filter: no mean removal and no energy
    normalization, so the magnitude scales with the signal level.

    Args:
        window: Audio samples, oldest first
        kernel: Template samples

    Returns:
        Sum of window[i] * kernel[i] for i < min(len(window), len(kernel)),
        or 0.0 when either operand is empty
    """
    w = np.asarray(window)
    k = np.asarray(kernel)
    n = min(w.shape[0], k.shape[0])
    if n == 0:
        return 0.0
    return float(np.dot(w[:n], k[:n]))


def correlate_all(window: Sequence[float], kernels: Sequence[Sequence[float]]) -> List[float]:
    """Correlate one window against every kernel, in kernel order."""
    return [correlate(window, kernel) for kernel in kernels]
