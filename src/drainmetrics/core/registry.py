"""Metric registry with time-based eviction of idle series."""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping

from drainmetrics.core.access import AccessOrder
from drainmetrics.core.aggregators import AGGREGATOR_TYPES, Aggregator
from drainmetrics.core.models import Datapoint, MetricKind, MetricSample, SeriesID

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 300.0


class _Series:
    __slots__ = ("aggregator", "dimensions", "id")

    def __init__(
        self, series_id: SeriesID, dimensions: dict[str, str], aggregator: Aggregator
    ) -> None:
        self.id = series_id
        self.dimensions = dimensions
        self.aggregator = aggregator


class MetricRegistry:
    """Aggregates metric samples per series and evicts idle series.

    A series is keyed by metric name and dimensions. It is created on its
    first update, refreshed on every later update and removed by the
    eviction sweep once it has not been updated for expiry_seconds. A
    removed series is never revived: a later update starts a new one.

    The registry lock guards the series stores and the access order; each
    aggregator carries its own lock for value updates.

    Example:
        ```python
        registry = MetricRegistry(expiry_seconds=300)
        registry.update(MetricSample("jobs", MetricKind.GAUGE, 3.0), {"app": "a"})
        datapoints = registry.collect()
        ```
    """

    def __init__(
        self,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty registry.

        Args:
            expiry_seconds: Idle time after which a series is evicted.
            clock: Monotonic time source used for access times.
            wall_clock: Time source for datapoint timestamps.
        """
        self._lock = threading.Lock()
        self._expiry = expiry_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        # one store per kind, so a series can only ever live in one of them
        self._stores: dict[MetricKind, dict[SeriesID, _Series]] = {
            kind: {} for kind in MetricKind
        }
        self._kinds: dict[SeriesID, MetricKind] = {}
        self._access = AccessOrder()

    @property
    def expiry_seconds(self) -> float:
        return self._expiry

    def __len__(self) -> int:
        with self._lock:
            return len(self._kinds)

    def __contains__(self, series_id: object) -> bool:
        with self._lock:
            return series_id in self._kinds

    def update(self, sample: MetricSample, dimensions: Mapping[str, str]) -> None:
        """Apply one sample to its series, creating the series if needed.

        Unsupported kinds and samples whose kind conflicts with the existing
        series are logged and dropped.
        """
        # @tra: Registry.Update.KindConflict
        aggregator_type = AGGREGATOR_TYPES.get(sample.kind)
        if aggregator_type is None:
            logger.warning(
                "Unsupported metric type %r for metric %s", sample.kind, sample.name
            )
            return

        series_id = SeriesID.of(sample.name, dimensions)
        with self._lock:
            existing_kind = self._kinds.get(series_id)
            if existing_kind is None:
                series = _Series(series_id, dict(dimensions), aggregator_type())
                self._stores[sample.kind][series_id] = series
                self._kinds[series_id] = sample.kind
            elif existing_kind is not sample.kind:
                logger.warning(
                    "Metric %s is tracked as %s, dropping %s sample",
                    sample.name,
                    existing_kind.value,
                    sample.kind.value,
                )
                return
            else:
                series = self._stores[existing_kind][series_id]
            self._access.touch(series_id, self._clock())

        series.aggregator.apply(sample.value)

    def update_many(
        self, samples: Iterable[MetricSample], dimensions: Mapping[str, str]
    ) -> None:
        """Apply samples in order, all with the same dimensions."""
        # @tra: Registry.Update.Many
        for sample in samples:
            self.update(sample, dimensions)

    def sweep(self) -> int:
        """Evict every series idle for longer than the expiry timeout.

        Returns:
            Number of evicted series.
        """
        # @tra: Registry.Eviction.Sweep
        with self._lock:
            now = self._clock()
            expired = list(self._access.expired(now, self._expiry))
            for series_id in expired:
                self._remove(series_id)
        if expired:
            logger.debug("Evicted %d idle series", len(expired))
        return len(expired)

    def collect(self) -> list[Datapoint]:
        """Evict idle series, then return one datapoint per live series.

        Resettable counters are consumed: their datapoint holds the delta
        since the previous collect and the counter restarts from zero.
        Gauges and cumulative counters are returned unchanged.
        """
        # @tra: Registry.Collect.ResettableCounter
        self.sweep()
        timestamp = self._wall_clock()
        with self._lock:
            live = [
                (kind, series)
                for kind, store in self._stores.items()
                for series in store.values()
            ]
            # read under the registry lock so a concurrent sweep cannot
            # drop a counter delta between snapshot and read
            return [
                Datapoint(
                    name=series.id.name,
                    kind=kind,
                    value=series.aggregator.read(),
                    dimensions=dict(series.dimensions),
                    timestamp=timestamp,
                )
                for kind, series in live
            ]

    def tracked_counts(self) -> dict[MetricKind, int]:
        """Return the number of live series per kind."""
        with self._lock:
            return {kind: len(store) for kind, store in self._stores.items()}

    def _remove(self, series_id: SeriesID) -> None:
        kind = self._kinds.pop(series_id, None)
        if kind is not None:
            del self._stores[kind][series_id]
        self._access.remove(series_id)
