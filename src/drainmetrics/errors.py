"""Exception types raised inside the drain pipeline.

Every error here is recovered locally by its caller; only ConfigError is
allowed to stop the process (at startup).
"""


class DrainError(Exception):
    """Base class for drainmetrics errors."""


class LogDecodeError(DrainError):
    """A line matched the drain grammar but one of its fields is invalid."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class UnsupportedUnitError(DrainError, ValueError):
    """A metric value could not be parsed under any supported unit."""

    def __init__(self, value: str) -> None:
        super().__init__(f"found unsupported metric unit in {value!r}")
        self.value = value


class MissingAppNameError(DrainError):
    """The drain request does not carry exactly one non-empty app_name."""

    def __init__(self, values: list[str] | None) -> None:
        super().__init__(
            f"app_name parameter takes exactly one value. current value: {values}"
        )
        self.values = values


class ConfigError(DrainError):
    """The service configuration is incomplete or invalid."""
