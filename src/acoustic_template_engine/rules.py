"""Detection rule tables: built-in defaults and YAML loading.

A rule file looks like:

```yaml
rules:
  - name: flash_3
    variant: 3
    reference: {kernel: 2, position: 39}
    min_magnitude: 200.0
    tolerance: 0.15          # default for every check below
    checks:
      - {kernel: 0, position: 39, ratio: 0.03}
      - {kernel: 1, position: 50, ratio: 0.13, tolerance: 0.1}
```

Rules are evaluated in file order; the first rule that fires wins.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from acoustic_template_engine.errors import ConfigError
from acoustic_template_engine.models import DetectionRule, RatioCheck, TracePosition

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.15


# Fitted against one set of recordings at 48 kHz stereo with a hop of 24
# samples. Kernel order is (template 1, template 2, template 3). The list
# order is the evaluation priority.
DEFAULT_RULES: List[DetectionRule] = [
    DetectionRule(
        variant=3,
        name="flash_3",
        reference=TracePosition(2, 39),
        min_magnitude=200.0,
        checks=[
            RatioCheck(0, 39, 0.03),
            RatioCheck(1, 50, 0.13),
            RatioCheck(0, 20, -0.18),
            RatioCheck(1, 11, -0.23),
            RatioCheck(2, 0, -0.4),
        ],
    ),
    DetectionRule(
        variant=1,
        name="flash_1",
        reference=TracePosition(0, 10),
        min_magnitude=100.0,
        checks=[
            RatioCheck(1, 0, 0.53),
            RatioCheck(2, 30, -0.25),
            RatioCheck(0, 48, -0.21),
            RatioCheck(1, 38, -0.22),
            RatioCheck(2, 29, -0.26),
        ],
    ),
    DetectionRule(
        variant=2,
        name="flash_2",
        reference=TracePosition(1, 10),
        # The noise floor of this variant is read two scores further back
        # than its denominator.
        floor=TracePosition(1, 12),
        min_magnitude=100.0,
        checks=[
            RatioCheck(0, 22, 0.56),
            RatioCheck(2, 0, 0.21),
            RatioCheck(0, 53, -0.16),
            RatioCheck(1, 42, -0.23),
            RatioCheck(2, 40, -0.33),
        ],
    ),
]


def _parse_position(data: Any, what: str) -> TracePosition:
    if isinstance(data, dict):
        return TracePosition(kernel=int(data["kernel"]), position=int(data["position"]))
    if isinstance(data, (list, tuple)) and len(data) == 2:
        return TracePosition(kernel=int(data[0]), position=int(data[1]))
    raise ConfigError(f"Invalid {what} position: {data!r}")


def parse_rule(data: Dict[str, Any]) -> DetectionRule:
    """Parse a single rule from a dictionary."""
    try:
        default_tol = float(data.get("tolerance", DEFAULT_TOLERANCE))
        checks = [
            RatioCheck(
                kernel=int(c["kernel"]),
                position=int(c["position"]),
                expected_ratio=float(c["ratio"]),
                tolerance=float(c.get("tolerance", default_tol)),
            )
            for c in data.get("checks", [])
        ]
        floor = data.get("floor")
        return DetectionRule(
            variant=int(data["variant"]),
            name=str(data.get("name", "")),
            reference=_parse_position(data["reference"], "reference"),
            floor=_parse_position(floor, "floor") if floor is not None else None,
            min_magnitude=float(data["min_magnitude"]),
            checks=checks,
        )
    except ConfigError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid detection rule {data!r}: {e}") from e


def rule_to_dict(rule: DetectionRule) -> Dict[str, Any]:
    """Convert a rule back into its YAML dictionary form."""
    data: Dict[str, Any] = {
        "name": rule.name,
        "variant": rule.variant,
        "reference": {"kernel": rule.reference.kernel, "position": rule.reference.position},
        "min_magnitude": rule.min_magnitude,
        "checks": [
            {
                "kernel": c.kernel,
                "position": c.position,
                "ratio": c.expected_ratio,
                "tolerance": c.tolerance,
            }
            for c in rule.checks
        ],
    }
    if rule.floor is not None:
        data["floor"] = {"kernel": rule.floor.kernel, "position": rule.floor.position}
    return data


def parse_rules(items: List[Dict[str, Any]]) -> List[DetectionRule]:
    return [parse_rule(item) for item in items]


def load_rules_from_yaml(path: Union[str, Path]) -> List[DetectionRule]:
    """Load an ordered rule table from a YAML file.

    The file may contain either a top-level list of rules or a mapping
    with a `rules` key.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rule file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or []

    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ConfigError(f"{path}: expected a list of rules")

    rules = parse_rules(data)
    logger.info(f"Loaded {len(rules)} rule(s) from {path.name}: {[r.name for r in rules]}")
    return rules


def save_rules_to_yaml(rules: List[DetectionRule], path: Union[str, Path]) -> None:
    """Write a rule table to a YAML file, preserving order."""
    with open(path, "w") as f:
        yaml.safe_dump({"rules": [rule_to_dict(r) for r in rules]}, f, sort_keys=False)
