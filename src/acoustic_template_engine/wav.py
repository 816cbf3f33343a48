"""WAV decoding for template kernels and offline test recordings."""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import scipy.io.wavfile as wavfile

from acoustic_template_engine.errors import ConfigError

logger = logging.getLogger(__name__)


def load_float_wav(path: Union[str, Path], expected_rate: Optional[int] = None) -> np.ndarray:
    """Load a WAV file as a flat float32 sample array.

    Multi-channel files are flattened in frame order, so the result is the
    same interleaved layout a capture stream delivers. Integer PCM is scaled
    to [-1, 1]; 32-bit float data is returned unchanged.

    Args:
        path: Path to the .wav file
        expected_rate: If set, the file's sample rate must match

    Returns:
        1-D float32 array of samples
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"WAV file not found: {path}")

    sample_rate, data = wavfile.read(str(path))

    if expected_rate is not None and sample_rate != expected_rate:
        raise ConfigError(f"{path.name}: sample rate {sample_rate} Hz, expected {expected_rate} Hz")

    if data.dtype == np.uint8:
        samples = (data.astype(np.float32) - 128.0) / 128.0
    elif np.issubdtype(data.dtype, np.integer):
        samples = data.astype(np.float32) / float(np.iinfo(data.dtype).max + 1)
    else:
        samples = data.astype(np.float32)

    samples = samples.reshape(-1)
    channels = 1 if data.ndim == 1 else data.shape[1]
    logger.debug(
        f"Loaded {path.name}: {len(samples)} samples, {channels} channel(s), {sample_rate} Hz"
    )
    return samples
