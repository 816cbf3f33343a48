"""Rule-table classifier over per-kernel correlation histories."""

import logging
from typing import Optional, Sequence

from acoustic_template_engine.errors import ConfigError
from acoustic_template_engine.history import HistoryTracker
from acoustic_template_engine.models import DetectionRule

logger = logging.getLogger(__name__)


def validate_rules(
    rules: Sequence[DetectionRule],
    kernel_count: Optional[int] = None,
    history_depth: Optional[int] = None,
) -> None:
    """Check that every rule only reads history values that will exist.

    Raises:
        ConfigError: If a rule reads a negative index, a kernel at or beyond
            `kernel_count`, or a position at or beyond `history_depth`
    """
    for rule in rules:
        for pos in rule.positions():
            if pos.kernel < 0 or pos.position < 0:
                raise ConfigError(f"[{rule.name}] Negative index {pos}")
            if kernel_count is not None and pos.kernel >= kernel_count:
                raise ConfigError(
                    f"[{rule.name}] Kernel {pos.kernel} out of range ({kernel_count} kernels)"
                )
            if history_depth is not None and pos.position >= history_depth:
                raise ConfigError(
                    f"[{rule.name}] Position {pos.position} exceeds history depth {history_depth}"
                )


class EventClassifier:
    """Decides whether an event variant has just completed.

    Each rule normalizes a set of history values by one reference value and
    compares the ratios against fitted expectations. Rules are evaluated in
    declaration order and the first rule whose checks all pass wins, so
    overlapping rules are resolved by their position in the table.
    """

    def __init__(
        self,
        rules: Sequence[DetectionRule],
        kernel_count: Optional[int] = None,
        history_depth: Optional[int] = None,
    ):
        """Initialize with an ordered rule table.

        Args:
            rules: Rules in priority order
            kernel_count: If given, every referenced kernel index must be below it
            history_depth: If given, every referenced position must be below it

        Raises:
            ConfigError: If a rule reads outside the configured traces
        """
        self.rules = list(rules)
        validate_rules(self.rules, kernel_count=kernel_count, history_depth=history_depth)

    def classify(self, traces: Sequence[HistoryTracker]) -> Optional[DetectionRule]:
        """Evaluate the rule table against the current histories.

        Args:
            traces: One HistoryTracker per kernel, in kernel order

        Returns:
            The first rule that fires, or None when no event is recognized
            (including when any history is not yet full)
        """
        if not traces or not all(t.is_ready() for t in traces):
            return None

        for rule in self.rules:
            if self._fires(rule, traces):
                logger.debug(f"[{rule.name}] Rule fired")
                return rule

        return None

    def _fires(self, rule: DetectionRule, traces: Sequence[HistoryTracker]) -> bool:
        floor = rule.floor_position
        if not traces[floor.kernel][floor.position] > rule.min_magnitude:
            return False

        denominator = traces[rule.reference.kernel][rule.reference.position]
        if denominator == 0:
            return False

        for check in rule.checks:
            if not check.passes(traces[check.kernel][check.position], denominator):
                return False

        return True


def classify(
    traces: Sequence[HistoryTracker], rules: Sequence[DetectionRule]
) -> Optional[DetectionRule]:
    """Classify with an ad-hoc rule table.

    Raises:
        ConfigError: If a rule reads outside the given traces
    """
    if not traces:
        return None
    classifier = EventClassifier(
        rules,
        kernel_count=len(traces),
        history_depth=min(t.capacity for t in traces),
    )
    return classifier.classify(traces)
