"""Main Engine class - orchestrates the detection pipeline."""

import logging
import threading
import numpy as np
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from acoustic_template_engine.classifier import EventClassifier
from acoustic_template_engine.config import EngineConfig, GlobalConfig
from acoustic_template_engine.listener import AudioConfig, AudioListener
from acoustic_template_engine.models import Detection, DetectionRule
from acoustic_template_engine.rules import DEFAULT_RULES
from acoustic_template_engine.scanner import ScanLoop
from acoustic_template_engine.templates import TemplateBank

logger = logging.getLogger(__name__)


class Engine:
    """Acoustic Template Detection Engine.

    Orchestrates the full detection pipeline:
    Audio Input -> Stream Buffer -> Correlation -> History -> Rule Classifier -> Callbacks

    Example:
        >>> from acoustic_template_engine import Engine, TemplateBank
        >>>
        >>> bank = TemplateBank.from_wav_files(["a.wav", "b.wav", "c.wav"])
        >>> engine = Engine(
        ...     bank,
        ...     on_detection=lambda name: print(f"EVENT: {name}")
        ... )
        >>> engine.start()  # Blocking
    """

    def __init__(
        self,
        bank: TemplateBank,
        rules: Optional[Sequence[DetectionRule]] = None,
        engine_config: Optional[EngineConfig] = None,
        audio_config: Optional[AudioConfig] = None,
        on_detection: Optional[Callable[[str], None]] = None,
        on_match: Optional[Callable[[Detection], None]] = None,
    ):
        """Initialize the detection engine.

        Args:
            bank: Template kernels, in the order the rules index them
            rules: Ordered rule table (defaults to the built-in rules)
            engine_config: Scan loop settings (derived from the rules if None)
            audio_config: Audio capture settings (follows engine_config if None).
                When both are given, the stream format of audio_config wins.
            on_detection: Simple callback with just the rule name (str)
            on_match: Full callback with the Detection object
        """
        self.bank = bank
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

        if audio_config is None:
            if engine_config is not None:
                audio_config = AudioConfig(
                    sample_rate=engine_config.sample_rate, channels=engine_config.channels
                )
            else:
                audio_config = AudioConfig()
        self.audio_config = audio_config

        if engine_config is None:
            engine_config = EngineConfig.for_rules(
                self.rules,
                sample_rate=audio_config.sample_rate,
                channels=audio_config.channels,
            )
        elif (engine_config.sample_rate, engine_config.channels) != (
            audio_config.sample_rate,
            audio_config.channels,
        ):
            logger.warning(
                f"Engine config stream format ({engine_config.sample_rate} Hz, "
                f"{engine_config.channels} ch) differs from audio config "
                f"({audio_config.sample_rate} Hz, {audio_config.channels} ch); "
                f"using the audio config for timestamps"
            )
            engine_config = replace(
                engine_config,
                sample_rate=audio_config.sample_rate,
                channels=audio_config.channels,
            )
        self.engine_config = engine_config
        self.on_detection = on_detection
        self.on_match = on_match

        # State
        self._running = False
        self._detections: List[Detection] = []

        # Pipeline components
        self._classifier = EventClassifier(
            self.rules,
            kernel_count=len(bank),
            history_depth=self.engine_config.history_depth,
        )
        self._scanner = ScanLoop(
            bank,
            self._classifier,
            hop=self.engine_config.window_hop,
            history_depth=self.engine_config.history_depth,
            samples_per_second=self.engine_config.samples_per_second,
        )

        # Audio listener (created on start)
        self._listener: Optional[AudioListener] = None

        logger.info(
            f"Engine initialized with {len(bank)} kernel(s), window {bank.window_length} samples, "
            f"{len(self.rules)} rule(s): {[r.name for r in self.rules]}"
        )

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        on_detection: Optional[Callable[[str], None]] = None,
        on_match: Optional[Callable[[Detection], None]] = None,
    ) -> "Engine":
        """Build an engine from a loaded GlobalConfig (decodes the templates)."""
        audio_config = AudioConfig(
            sample_rate=config.audio.sample_rate,
            chunk_size=config.audio.chunk_size,
            channels=config.audio.channels,
            device_index=config.audio.device_index,
        )
        return cls(
            config.load_templates(),
            rules=config.rules,
            engine_config=config.engine,
            audio_config=audio_config,
            on_detection=on_detection,
            on_match=on_match,
        )

    def process_chunk(self, audio_chunk: np.ndarray) -> bool:
        """Process a single chunk of interleaved float samples.

        This can be called directly if you're handling audio capture yourself.

        Args:
            audio_chunk: Float samples in arrival order

        Returns:
            True if an event was detected in this chunk
        """
        detections = self._scanner.feed(audio_chunk)
        for detection in detections:
            self._trigger(detection)
        return bool(detections)

    def _trigger(self, detection: Detection) -> None:
        """Handle a detection."""
        self._detections.append(detection)

        logger.critical("=" * 60)
        logger.critical(f"EVENT DETECTED: [{detection.name.upper()}] (variant {detection.variant})")
        logger.critical(f"Timestamp: {detection.timestamp:.3f}s")
        logger.critical("=" * 60)

        if self.on_detection:
            try:
                self.on_detection(detection.name)
            except Exception as e:
                logger.error(f"Error in on_detection callback: {e}")

        if self.on_match:
            try:
                self.on_match(detection)
            except Exception as e:
                logger.error(f"Error in on_match callback: {e}")

    def start(self) -> None:
        """Start the engine with audio capture (blocking).

        This will block the current thread and capture audio until stop() is called.
        """
        self._listener = AudioListener(self.audio_config, self.process_chunk)

        if not self._listener.setup():
            logger.error("Failed to setup audio listener")
            self._listener.cleanup()
            self._listener = None
            return

        self._running = True

        try:
            self._listener.start()
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.stop()

    def start_async(self) -> threading.Thread:
        """Start the engine in a background thread.

        Returns:
            The background thread (already started)
        """
        thread = threading.Thread(target=self.start, daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        """Stop the engine and release resources."""
        self._running = False

        if self._listener:
            self._listener.stop()
            self._listener.cleanup()
            self._listener = None

        logger.info("Engine stopped")

    def reset(self) -> None:
        """Forget buffered audio and correlation history."""
        self._scanner.reset()

    @property
    def scanner(self) -> ScanLoop:
        return self._scanner

    @property
    def detections(self) -> List[Detection]:
        """All detections fired so far."""
        return list(self._detections)

    @property
    def is_running(self) -> bool:
        """Check if the engine is currently running."""
        return self._running
