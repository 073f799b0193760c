"""Per-series aggregation state.

Each aggregator guards its value with its own lock so value updates to
different series never contend with each other.
"""

import threading

from drainmetrics.core.models import MetricKind


class GaugeAggregator:
    """Tracks the latest value of a gauge."""

    kind = MetricKind.GAUGE

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0.0

    def apply(self, value: float) -> None:
        with self._lock:
            self._latest = value

    def read(self) -> float:
        with self._lock:
            return self._latest


class ResettableCounterAggregator:
    """Accumulates a delta between collections.

    Reading returns the delta accumulated since the previous read and
    resets it to zero.
    """

    kind = MetricKind.RESETTABLE_COUNTER

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0.0

    def apply(self, value: float) -> None:
        with self._lock:
            self._count += value

    def read(self) -> float:
        with self._lock:
            value, self._count = self._count, 0.0
            return value


class CumulativeCounterAggregator:
    """Tracks an ever-increasing running total."""

    kind = MetricKind.CUMULATIVE_COUNTER

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0.0

    def apply(self, value: float) -> None:
        with self._lock:
            self._total += value

    def read(self) -> float:
        with self._lock:
            return self._total


Aggregator = GaugeAggregator | ResettableCounterAggregator | CumulativeCounterAggregator

AGGREGATOR_TYPES: dict[MetricKind, type[Aggregator]] = {
    MetricKind.GAUGE: GaugeAggregator,
    MetricKind.RESETTABLE_COUNTER: ResettableCounterAggregator,
    MetricKind.CUMULATIVE_COUNTER: CumulativeCounterAggregator,
}

_missing = set(MetricKind) - AGGREGATOR_TYPES.keys()
if _missing:  # pragma: no cover
    raise RuntimeError(f"no aggregator registered for {sorted(k.name for k in _missing)}")
del _missing
