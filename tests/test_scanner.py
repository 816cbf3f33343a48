"""Tests for the scan loop controller."""

import numpy as np
import pytest

from acoustic_template_engine.classifier import EventClassifier
from acoustic_template_engine.errors import ConfigError
from acoustic_template_engine.models import DetectionRule, RatioCheck, TracePosition
from acoustic_template_engine.rules import DEFAULT_RULES
from acoustic_template_engine.scanner import DEFAULT_HOP, ScanLoop, ScanState
from acoustic_template_engine.templates import TemplateBank


class RecordingClassifier(EventClassifier):
    """Classifier that records the scan state every time it is consulted."""

    def __init__(self, rules):
        super().__init__(rules)
        self.scanner = None
        self.states = []

    def classify(self, traces):
        self.states.append(self.scanner.state)
        return super().classify(traces)


# Fires when every kernel scores above 0.5 in the newest window
ALL_HIGH = DetectionRule(
    variant=7,
    name="all_high",
    reference=TracePosition(0, 0),
    min_magnitude=0.5,
    checks=[RatioCheck(1, 0, 1.0), RatioCheck(2, 0, 1.0)],
)


def make_loop(kernel_length=4, rules=(ALL_HIGH,), history_depth=1, hop=DEFAULT_HOP):
    kernel = np.full(kernel_length, 1.0 / kernel_length, dtype=np.float32)
    bank = TemplateBank.load([kernel, kernel, kernel])
    return ScanLoop(
        bank,
        EventClassifier(rules, kernel_count=3, history_depth=history_depth),
        hop=hop,
        history_depth=history_depth,
        samples_per_second=96000,
    )


def test_filling_until_window_then_scanning():
    bank = TemplateBank.load([[1.0], [1.0], [1.0]])
    classifier = RecordingClassifier(DEFAULT_RULES)
    loop = ScanLoop(bank, classifier)
    classifier.scanner = loop

    assert loop.window_length == 1
    assert loop.state is ScanState.FILLING

    assert loop.feed(np.zeros(0, dtype=np.float32)) == []
    assert loop.state is ScanState.FILLING
    assert classifier.states == []

    rng = np.random.default_rng(3)
    for i in range(1, 11):
        loop.feed(rng.standard_normal(DEFAULT_HOP).astype(np.float32))
        # One window per hop-sized chunk, each evaluated while scanning
        assert len(classifier.states) == i
        assert classifier.states[-1] is ScanState.SCANNING
        assert len(loop.buffer) == 0
        assert loop.state is ScanState.FILLING

    assert loop.windows_evaluated == 10


def test_partial_hop_left_in_buffer():
    loop = make_loop(kernel_length=4, hop=24)
    loop.feed(np.zeros(30, dtype=np.float32))
    # 30 -> 6 after one hop, 6 >= 4 -> 0 after a clamped hop
    assert loop.windows_evaluated == 2
    assert len(loop.buffer) == 0

    loop.feed(np.zeros(3, dtype=np.float32))
    assert loop.windows_evaluated == 2
    assert len(loop.buffer) == 3
    assert loop.state is ScanState.FILLING


def test_no_detection_advances_by_hop():
    loop = make_loop(kernel_length=4, hop=24)
    loop.buffer.append(np.zeros(100, dtype=np.float32))
    assert loop.step() is None
    assert len(loop.buffer) == 76
    assert loop.state is ScanState.SCANNING


def test_detection_advances_by_window_and_clears_history():
    loop = make_loop(kernel_length=4, hop=24)
    stream = np.concatenate(
        [np.zeros(24, dtype=np.float32), np.ones(4, dtype=np.float32), np.zeros(40, dtype=np.float32)]
    )
    loop.buffer.append(stream)

    assert loop.step() is None
    assert len(loop.buffer) == 44
    assert all(h.is_ready() for h in loop.histories)

    detection = loop.step()
    assert detection is not None
    assert detection.variant == 7
    assert detection.name == "all_high"
    assert detection.sample_offset == 24
    assert detection.timestamp == pytest.approx(24 / 96000)

    assert len(loop.buffer) == 40
    assert not any(h.is_ready() for h in loop.histories)
    assert all(len(h) == 0 for h in loop.histories)
    assert loop.state is ScanState.COOLDOWN


def test_feed_reports_detections_in_order():
    loop = make_loop(kernel_length=4, hop=24)
    ones = np.ones(4, dtype=np.float32)
    gap = np.zeros(24, dtype=np.float32)
    stream = np.concatenate([gap, ones, gap, ones, gap])

    detections = loop.feed(stream)
    assert [d.sample_offset for d in detections] == [24, 52]
    assert detections[0].timestamp < detections[1].timestamp


def test_history_must_fill_before_detection():
    loop = make_loop(kernel_length=4, hop=4, history_depth=3)
    detections = loop.feed(np.ones(4 * 5, dtype=np.float32))
    # Windows at 0 and 4 only fill the history; the window at 8 fires, then
    # the cleared history has to refill and the stream runs out first
    assert [d.sample_offset for d in detections] == [8]
    assert len(loop.buffer) == 0
    assert len(loop.histories[0]) == 2


def test_silence_and_noise_never_fire_default_rules():
    rng = np.random.default_rng(11)
    kernels = [rng.standard_normal(64).astype(np.float32) for _ in range(3)]
    bank = TemplateBank.load(kernels)
    loop = ScanLoop(bank, EventClassifier(DEFAULT_RULES, kernel_count=3, history_depth=54))

    assert loop.feed(np.zeros(24 * 200, dtype=np.float32)) == []
    assert all(h.is_ready() for h in loop.histories)

    quiet_noise = (rng.standard_normal(24 * 200) * 0.01).astype(np.float32)
    assert loop.feed(quiet_noise) == []


def test_reset():
    loop = make_loop()
    loop.feed(np.zeros(2, dtype=np.float32))
    loop.histories[0].push(1.0)
    loop.reset()
    assert len(loop.buffer) == 0
    assert len(loop.histories[0]) == 0
    assert loop.state is ScanState.FILLING


def test_invalid_hop():
    with pytest.raises(ConfigError):
        make_loop(hop=0)


def test_rules_deeper_than_history_rejected():
    bank = TemplateBank.load([[1.0], [1.0], [1.0]])
    with pytest.raises(ConfigError):
        ScanLoop(bank, EventClassifier(DEFAULT_RULES), history_depth=10)


def test_rules_for_missing_kernels_rejected():
    bank = TemplateBank.load([[1.0], [1.0]])
    with pytest.raises(ConfigError):
        ScanLoop(bank, EventClassifier(DEFAULT_RULES))


def test_cooldown_visible_after_feed_until_next_window():
    loop = make_loop(kernel_length=4, hop=24)
    stream = np.concatenate([np.zeros(24, dtype=np.float32), np.ones(4, dtype=np.float32)])

    detections = loop.feed(stream)
    assert [d.sample_offset for d in detections] == [24]
    assert loop.state is ScanState.COOLDOWN

    # Not enough for a window yet: still cooling down
    assert loop.feed(np.zeros(2, dtype=np.float32)) == []
    assert loop.state is ScanState.COOLDOWN

    # The next evaluated window ends the cooldown
    assert loop.feed(np.zeros(2, dtype=np.float32)) == []
    assert loop.windows_evaluated == 3
    assert loop.state is ScanState.FILLING
