"""Exclusion filter applied to collected datapoints before dispatch."""

from collections.abc import Iterable

from drainmetrics.core.models import Datapoint


class ExclusionFilter:
    """Drops datapoints by metric name or by dimension key-value pair.

    Args:
        metric_names: Metric names never dispatched.
        dimension_pairs: (key, value) pairs; a datapoint carrying any of
            them is never dispatched.
    """

    def __init__(
        self,
        metric_names: Iterable[str] = (),
        dimension_pairs: Iterable[tuple[str, str]] = (),
    ) -> None:
        self.metric_names = frozenset(metric_names)
        self.dimension_pairs = frozenset(dimension_pairs)

    def __bool__(self) -> bool:
        return bool(self.metric_names or self.dimension_pairs)

    def allows(self, datapoint: Datapoint) -> bool:
        # @tra: Dispatch.Filter.DimensionPair
        if datapoint.name in self.metric_names:
            return False
        return self.dimension_pairs.isdisjoint(datapoint.dimensions.items())

    def apply(self, datapoints: Iterable[Datapoint]) -> list[Datapoint]:
        return [dp for dp in datapoints if self.allows(dp)]
