"""Exception types raised by the template engine."""


class EngineError(Exception):
    """Base class for all engine errors."""


class ConfigError(EngineError, ValueError):
    """Invalid construction-time configuration (templates, rules, sizes)."""


class InsufficientDataError(EngineError, LookupError):
    """A window larger than the buffered sample count was requested."""

    def __init__(self, requested: int, available: int):
        super().__init__(f"Requested {requested} samples but only {available} buffered")
        self.requested = requested
        self.available = available
