"""Scan loop: slides the window over buffered audio and classifies it."""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from acoustic_template_engine.classifier import EventClassifier, validate_rules
from acoustic_template_engine.errors import ConfigError, InsufficientDataError
from acoustic_template_engine.history import DEFAULT_HISTORY_DEPTH, HistoryTracker
from acoustic_template_engine.models import Detection
from acoustic_template_engine.processing.correlation import correlate
from acoustic_template_engine.stream_buffer import StreamBuffer
from acoustic_template_engine.templates import TemplateBank

logger = logging.getLogger(__name__)

DEFAULT_HOP = 24
DEFAULT_SAMPLES_PER_SECOND = 48000 * 2


class ScanState(Enum):
    FILLING = "filling"  # fewer than window_length samples buffered
    SCANNING = "scanning"  # evaluating windows
    COOLDOWN = "cooldown"  # a detection just fired; histories cleared


class ScanLoop:
    """Drives correlation and classification over a stream of samples.

    The loop never blocks: feed() evaluates every window the buffered data
    allows and then returns, leaving the remainder buffered until more
    samples arrive.

    Each window of `window_length` samples is correlated against every
    kernel and the scores are pushed onto per-kernel histories. Without a
    detection the window advances by `hop` samples; after a detection the
    whole window is skipped and all histories are cleared.

    The state stays COOLDOWN after a detection until the next window is
    evaluated, even while the buffer is too short to scan.
    """

    def __init__(
        self,
        bank: TemplateBank,
        classifier: EventClassifier,
        hop: int = DEFAULT_HOP,
        history_depth: int = DEFAULT_HISTORY_DEPTH,
        samples_per_second: float = DEFAULT_SAMPLES_PER_SECOND,
    ):
        """Initialize the scan loop.

        Args:
            bank: Template kernels; the window length is the shortest kernel
            classifier: Rule-table classifier
            hop: Samples to advance after a window without detection
            history_depth: Scores kept per kernel
            samples_per_second: Sample rate times channel count, for timestamps
        """
        if hop < 1:
            raise ConfigError(f"Hop must be positive, got {hop}")
        if samples_per_second <= 0:
            raise ConfigError(f"samples_per_second must be positive, got {samples_per_second}")
        validate_rules(classifier.rules, kernel_count=len(bank), history_depth=history_depth)

        self.bank = bank
        self.classifier = classifier
        self.hop = hop
        self.window_length = bank.window_length
        self.samples_per_second = samples_per_second

        self.buffer = StreamBuffer()
        self.histories: List[HistoryTracker] = [HistoryTracker(history_depth) for _ in bank]
        self.state = ScanState.FILLING
        self.windows_evaluated = 0

        logger.debug(
            f"Scan loop: window={self.window_length}, hop={hop}, history={history_depth}, "
            f"kernels={len(bank)}"
        )

    def feed(self, samples: Sequence[float]) -> List[Detection]:
        """Append newly captured samples and scan everything available."""
        self.buffer.append(samples)
        return self.scan()

    def scan(self) -> List[Detection]:
        """Evaluate windows until the buffer runs short.

        Returns:
            Detections fired during this call, in stream order
        """
        detections = []
        while len(self.buffer) >= self.window_length:
            detection = self.step()
            if detection is not None:
                detections.append(detection)
        if self.state is not ScanState.COOLDOWN:
            self.state = ScanState.FILLING
        return detections

    def step(self) -> Optional[Detection]:
        """Evaluate a single window, if one is available."""
        try:
            window = self.buffer.window(self.window_length)
        except InsufficientDataError:
            if self.state is not ScanState.COOLDOWN:
                self.state = ScanState.FILLING
            return None

        self.state = ScanState.SCANNING
        offset = self.buffer.consumed

        for kernel, history in zip(self.bank, self.histories):
            history.push(correlate(window, kernel))
        self.windows_evaluated += 1

        rule = self.classifier.classify(self.histories)
        if rule is None:
            self.buffer.consume(self.hop)
            return None

        detection = Detection(
            variant=rule.variant,
            name=rule.name,
            timestamp=offset / self.samples_per_second,
            sample_offset=offset,
        )
        for history in self.histories:
            history.clear()
        self.buffer.consume(self.window_length)
        self.state = ScanState.COOLDOWN
        logger.debug(f"[{rule.name}] Detected at sample {offset}")
        return detection

    def reset(self) -> None:
        """Drop buffered samples and all score history."""
        self.buffer.clear()
        for history in self.histories:
            history.clear()
        self.state = ScanState.FILLING
