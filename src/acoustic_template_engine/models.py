"""Data models for detection rules and detection results."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class TracePosition:
    """A single value inside the correlation history of one kernel.

    Attributes:
        kernel: Index of the kernel in the template bank
        position: Index into that kernel's history (0 = most recent score)
    """

    kernel: int
    position: int

    def __str__(self) -> str:
        return f"k{self.kernel}[{self.position}]"


@dataclass(frozen=True)
class RatioCheck:
    """Expected ratio between one history value and the rule's denominator.

    Attributes:
        kernel: Index of the kernel whose history is read
        position: Index into that history (0 = most recent score)
        expected_ratio: Target value of history[position] / denominator
        tolerance: Maximum (exclusive) absolute deviation from expected_ratio
    """

    kernel: int
    position: int
    expected_ratio: float
    tolerance: float = 0.15

    def passes(self, value: float, denominator: float) -> bool:
        """Check a history value against the denominator."""
        return abs(value / denominator - self.expected_ratio) < self.tolerance

    def __str__(self) -> str:
        return f"k{self.kernel}[{self.position}]~{self.expected_ratio:+.2f}±{self.tolerance}"


@dataclass
class DetectionRule:
    """Declarative description of one detectable event variant.

    Attributes:
        variant: Identifier reported when the rule fires
        reference: History value used as the denominator for every check
        min_magnitude: Noise floor; the floor value must exceed it
        checks: Ratio checks that must all pass
        floor: Value compared against min_magnitude (defaults to reference)
        name: Human readable label (defaults to "variant_<n>")
    """

    variant: int
    reference: TracePosition
    min_magnitude: float
    checks: List[RatioCheck] = field(default_factory=list)
    floor: Optional[TracePosition] = None
    name: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = f"variant_{self.variant}"

    @property
    def floor_position(self) -> TracePosition:
        return self.floor if self.floor is not None else self.reference

    def positions(self) -> List[TracePosition]:
        """All history positions this rule reads."""
        positions = [self.reference, self.floor_position]
        positions.extend(TracePosition(c.kernel, c.position) for c in self.checks)
        return positions

    def __repr__(self) -> str:
        return (
            f"DetectionRule('{self.name}', ref={self.reference}, "
            f"floor>{self.min_magnitude}, {len(self.checks)} checks)"
        )


@dataclass
class Detection:
    """A fired detection.

    Attributes:
        variant: Variant identifier of the rule that fired
        name: Name of the rule that fired
        timestamp: Elapsed stream time in seconds at the start of the matched window
        sample_offset: Number of samples consumed before the matched window
    """

    variant: int
    name: str
    timestamp: float
    sample_offset: int

    def __str__(self) -> str:
        return f"{self.timestamp:.3f}s {self.name}"
