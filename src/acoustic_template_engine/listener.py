"""Audio listener component for capturing float sample streams."""

import logging
import numpy as np
from typing import Callable, Optional
from dataclasses import dataclass

try:
    import pyaudio

    HAS_PYAUDIO = True
except ImportError:
    HAS_PYAUDIO = False

logger = logging.getLogger(__name__)


@dataclass
class AudioConfig:
    """Audio capture configuration.

    Attributes:
        sample_rate: Sample rate in Hz (default 48000)
        chunk_size: Frames per chunk (default 480 = 10ms)
        channels: Number of interleaved channels (default 2)
        device_index: Specific audio device index, or None for default.
            Pick a loopback device ("Stereo Mix", a monitor source) to
            listen to what the machine is playing.
    """

    sample_rate: int = 48000
    chunk_size: int = 480
    channels: int = 2
    device_index: Optional[int] = None

    @property
    def samples_per_second(self) -> int:
        """Interleaved samples delivered per second of audio."""
        return self.sample_rate * self.channels


class AudioListener:
    """Captures interleaved float32 audio from an input device.

    Provides a callback-based interface for receiving audio chunks. The
    callback runs on the capture thread, so whatever it feeds is owned by
    that single thread.
    """

    def __init__(self, config: AudioConfig, on_audio_chunk: Callable[[np.ndarray], None]):
        """Initialize the audio listener.

        Args:
            config: Audio configuration settings
            on_audio_chunk: Callback receiving flat float32 sample arrays
        """
        if not HAS_PYAUDIO:
            raise ImportError(
                "PyAudio is required for audio capture. Install it with: pip install pyaudio"
            )

        self.config = config
        self.on_audio_chunk = on_audio_chunk
        self._pyaudio: Optional["pyaudio.PyAudio"] = None
        self._stream = None
        self._running = False

    def setup(self) -> bool:
        """Initialize PyAudio and open the audio stream.

        Returns:
            True if successful, False otherwise
        """
        try:
            logger.info("Initializing PyAudio...")
            self._pyaudio = pyaudio.PyAudio()

            if self.config.device_index is not None:
                if not self._validate_device(self.config.device_index):
                    return False
                logger.info(f"Using audio device index: {self.config.device_index}")
            else:
                logger.info("Using default audio device")

            self._stream = self._pyaudio.open(
                format=pyaudio.paFloat32,
                channels=self.config.channels,
                rate=self.config.sample_rate,
                input=True,
                input_device_index=self.config.device_index,
                frames_per_buffer=self.config.chunk_size,
            )
            logger.info(
                f"Audio stream opened: {self.config.sample_rate} Hz, "
                f"{self.config.channels} channel(s), float32"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to initialize audio: {e}")
            return False

    def _validate_device(self, device_index: int) -> bool:
        """Validate that a device index can deliver the configured channels."""
        try:
            dev_info = self._pyaudio.get_device_info_by_host_api_device_index(0, device_index)
            inputs = dev_info.get("maxInputChannels", 0)
            if inputs < self.config.channels:
                logger.error(
                    f"Device index {device_index} has {inputs} input channel(s), "
                    f"need {self.config.channels}"
                )
                return False
            logger.info(f"Device: {dev_info.get('name')} (Inputs: {inputs})")
            return True
        except Exception as e:
            logger.error(f"Invalid device index {device_index}: {e}")
            return False

    def start(self) -> None:
        """Start the audio capture loop (blocking)."""
        if not self._stream:
            logger.error("Audio stream not initialized. Call setup() first.")
            return

        self._running = True
        logger.info("Listener started - capturing audio...")

        try:
            while self._running:
                audio_data = self._stream.read(self.config.chunk_size, exception_on_overflow=False)
                audio_chunk = np.frombuffer(audio_data, dtype=np.float32)
                self.on_audio_chunk(audio_chunk)

        except Exception as e:
            if self._running:
                logger.error(f"Error in audio capture loop: {e}", exc_info=True)
        finally:
            self._running = False

    def stop(self) -> None:
        """Stop the audio capture loop."""
        self._running = False
        logger.info("Listener stopping...")

    def cleanup(self) -> None:
        """Release audio resources."""
        logger.info("Cleaning up audio resources...")

        if self._stream:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except Exception as e:
                logger.warning(f"Error closing audio stream: {e}")
            self._stream = None

        if self._pyaudio:
            self._pyaudio.terminate()
            self._pyaudio = None

        logger.info("Audio cleanup complete")
