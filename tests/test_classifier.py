"""Tests for the rule-table event classifier."""

import pytest

from acoustic_template_engine.classifier import EventClassifier, classify
from acoustic_template_engine.errors import ConfigError
from acoustic_template_engine.history import DEFAULT_HISTORY_DEPTH, HistoryTracker
from acoustic_template_engine.models import DetectionRule, RatioCheck, TracePosition
from acoustic_template_engine.rules import DEFAULT_RULES


def make_traces(values, depth=DEFAULT_HISTORY_DEPTH, kernels=3):
    """Build full trackers where values[(kernel, position)] is set and the rest is zero."""
    traces = []
    for k in range(kernels):
        tracker = HistoryTracker(depth)
        # Oldest first, so position 0 ends up as the last push
        for pos in reversed(range(depth)):
            tracker.push(values.get((k, pos), 0.0))
        traces.append(tracker)
    return traces


# Histories shaped exactly like each default variant, scaled by 1000
VARIANT_3 = {
    (2, 39): 1000.0,
    (0, 39): 30.0,
    (1, 50): 130.0,
    (0, 20): -180.0,
    (1, 11): -230.0,
    (2, 0): -400.0,
}
VARIANT_1 = {
    (0, 10): 1000.0,
    (1, 0): 530.0,
    (2, 30): -250.0,
    (0, 48): -210.0,
    (1, 38): -220.0,
    (2, 29): -260.0,
}
VARIANT_2 = {
    (1, 10): 1000.0,
    (1, 12): 1000.0,
    (0, 22): 560.0,
    (2, 0): 210.0,
    (0, 53): -160.0,
    (1, 42): -230.0,
    (2, 40): -330.0,
}


def test_make_traces_indexing():
    traces = make_traces({(1, 5): 7.0})
    assert traces[1][5] == 7.0
    assert traces[1].is_ready()


@pytest.mark.parametrize(
    "values, variant", [(VARIANT_1, 1), (VARIANT_2, 2), (VARIANT_3, 3)]
)
def test_each_default_variant(values, variant):
    rule = EventClassifier(DEFAULT_RULES).classify(make_traces(values))
    assert rule is not None
    assert rule.variant == variant


def test_variant_2_only():
    rule = classify(make_traces(VARIANT_2), DEFAULT_RULES)
    assert rule.variant == 2
    assert rule.name == "flash_2"


def test_declaration_order_breaks_ties():
    both = dict(VARIANT_3)
    both.update(VARIANT_1)
    # Variant 3 is declared first
    assert classify(make_traces(both), DEFAULT_RULES).variant == 3
    # Reordering the table changes the winner
    reordered = [DEFAULT_RULES[1], DEFAULT_RULES[0], DEFAULT_RULES[2]]
    assert classify(make_traces(both), reordered).variant == 1


def test_not_ready_is_no_event():
    traces = make_traces(VARIANT_2)
    short = HistoryTracker(DEFAULT_HISTORY_DEPTH)
    for pos in reversed(range(DEFAULT_HISTORY_DEPTH - 1)):
        short.push(VARIANT_2.get((0, pos), 0.0))
    traces[0] = short
    assert classify(traces, DEFAULT_RULES) is None


def test_no_traces_is_no_event():
    assert classify([], DEFAULT_RULES) is None


def test_silence_never_fires():
    assert classify(make_traces({}), DEFAULT_RULES) is None


def test_below_noise_floor():
    quiet = {key: value / 100.0 for key, value in VARIANT_1.items()}
    assert classify(make_traces(quiet), DEFAULT_RULES) is None


def test_zero_denominator_never_fires():
    # Floor of variant 2 passes but its denominator is zero
    values = dict(VARIANT_2)
    values[(1, 10)] = 0.0
    assert classify(make_traces(values), DEFAULT_RULES) is None

    # Floor that accepts zero still cannot divide by it
    rule = DetectionRule(
        variant=9,
        reference=TracePosition(0, 0),
        min_magnitude=-1.0,
        checks=[RatioCheck(1, 0, 0.0)],
    )
    assert classify(make_traces({}, depth=1, kernels=2), [rule]) is None


def test_ratio_tolerance_is_exclusive():
    rule = DetectionRule(
        variant=1,
        reference=TracePosition(0, 0),
        min_magnitude=0.0,
        checks=[RatioCheck(1, 0, 0.5, tolerance=0.25)],
    )
    assert classify(make_traces({(0, 0): 1.0, (1, 0): 0.5}, depth=1, kernels=2), [rule])
    assert classify(make_traces({(0, 0): 1.0, (1, 0): 0.75}, depth=1, kernels=2), [rule]) is None
    assert classify(make_traces({(0, 0): 1.0, (1, 0): 0.74}, depth=1, kernels=2), [rule])


def test_one_failing_check_blocks_rule():
    values = dict(VARIANT_1)
    values[(2, 29)] = 0.0
    assert classify(make_traces(values), DEFAULT_RULES) is None


def test_rule_outside_history_depth():
    rule = DetectionRule(variant=1, reference=TracePosition(0, 54), min_magnitude=1.0)
    with pytest.raises(ConfigError):
        EventClassifier([rule], history_depth=54)
    EventClassifier([rule], history_depth=55)


def test_rule_outside_kernel_count():
    with pytest.raises(ConfigError):
        EventClassifier(DEFAULT_RULES, kernel_count=2)
    EventClassifier(DEFAULT_RULES, kernel_count=3, history_depth=54)


def test_negative_index_rejected():
    rule = DetectionRule(
        variant=1,
        reference=TracePosition(0, 0),
        min_magnitude=1.0,
        checks=[RatioCheck(0, -1, 1.0)],
    )
    with pytest.raises(ConfigError):
        EventClassifier([rule])


def test_classify_rejects_rules_deeper_than_traces():
    traces = []
    for _ in range(3):
        tracker = HistoryTracker(10)
        for _ in range(10):
            tracker.push(500.0)
        traces.append(tracker)
    with pytest.raises(ConfigError):
        classify(traces, DEFAULT_RULES)


def test_classify_rejects_rules_for_missing_kernels():
    with pytest.raises(ConfigError):
        classify(make_traces({}, kernels=2), DEFAULT_RULES)
