"""Template bank holding the reference kernels."""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import numpy as np

from acoustic_template_engine.errors import ConfigError
from acoustic_template_engine.wav import load_float_wav

logger = logging.getLogger(__name__)


class TemplateBank:
    """Fixed, ordered set of reference kernels.

    Kernels are stored as read-only float32 arrays and never change after
    construction. Kernel index i corresponds to history trace i.
    """

    def __init__(self, kernels: List[np.ndarray]):
        self._kernels = kernels

    @classmethod
    def load(cls, kernels: Sequence[Sequence[float]]) -> "TemplateBank":
        """Build a bank from already-decoded sample sequences.

        Args:
            kernels: One float sequence per detectable event, in trace order

        Returns:
            A TemplateBank

        Raises:
            ConfigError: If no kernels are given or any kernel is empty
        """
        if len(kernels) == 0:
            raise ConfigError("Template bank needs at least one kernel")

        frozen = []
        for i, kernel in enumerate(kernels):
            arr = np.array(kernel, dtype=np.float32).reshape(-1)
            if arr.size == 0:
                raise ConfigError(f"Kernel {i} is empty")
            arr.flags.writeable = False
            frozen.append(arr)

        bank = cls(frozen)
        logger.info(
            f"Template bank loaded: {len(frozen)} kernel(s), lengths {[k.size for k in frozen]}"
        )
        return bank

    @classmethod
    def from_wav_files(
        cls, paths: Sequence[Union[str, Path]], expected_rate: Optional[int] = None
    ) -> "TemplateBank":
        """Decode each WAV file and load the bank from them."""
        return cls.load([load_float_wav(p, expected_rate=expected_rate) for p in paths])

    def kernel_length(self, index: int) -> int:
        return self._kernels[index].size

    @property
    def window_length(self) -> int:
        """Scan window length: the shortest kernel."""
        return min(k.size for k in self._kernels)

    def __getitem__(self, index: int) -> np.ndarray:
        return self._kernels[index]

    def __len__(self) -> int:
        return len(self._kernels)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._kernels)

    def __repr__(self) -> str:
        return f"TemplateBank({len(self)} kernels, window={self.window_length})"
