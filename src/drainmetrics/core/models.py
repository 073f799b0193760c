"""Core domain models for drain metrics."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple


@dataclass(frozen=True)
class LogLine:
    """Fields extracted from one syslog frame of a Heroku log drain.

    Attributes:
        priority: Syslog PRI value (facility * 8 + severity).
        version: Syslog protocol version, always 1 for Heroku drains.
        timestamp: Time the line was emitted.
        hostname: Sending host.
        app_name: Process group name (e.g. "heroku", "app").
        proc_id: Process id, e.g. "router" or "web.1".
        message: Free text remainder of the line.
    """

    priority: int
    version: int
    timestamp: datetime
    hostname: str
    app_name: str
    proc_id: str
    message: str


class MetricKind(Enum):
    """Semantic type of a metric."""

    GAUGE = "gauge"
    RESETTABLE_COUNTER = "counter"
    CUMULATIVE_COUNTER = "cumulative_counter"


@dataclass(frozen=True)
class MetricSample:
    """A single metric value extracted from a log message.

    Attributes:
        name: Metric name after prefix stripping and renaming.
        kind: How the registry aggregates the value.
        value: Parsed numeric value.
    """

    name: str
    kind: MetricKind
    value: float


class SeriesID(NamedTuple):
    """Canonical identity of a series: metric name plus sorted dimensions."""

    name: str
    dimensions: tuple[tuple[str, str], ...]

    @classmethod
    def of(cls, name: str, dimensions: Mapping[str, str]) -> "SeriesID":
        """Build the id for name and dimensions, independent of key order."""
        return cls(name, tuple(sorted(dimensions.items())))

    def dimension_map(self) -> dict[str, str]:
        return dict(self.dimensions)


@dataclass(frozen=True)
class Datapoint:
    """A collected series value ready for dispatch.

    Attributes:
        name: Metric name.
        kind: Metric kind of the series.
        value: Current value (gauge, cumulative) or delta since the
            previous collection (resettable counter).
        dimensions: Dimension key-value pairs of the series.
        timestamp: Unix timestamp in seconds of the collection.
    """

    name: str
    kind: MetricKind
    value: float
    dimensions: dict[str, str] = field(default_factory=dict)
    timestamp: float = 0.0
