"""Drain listener: feeds drain request bodies into the registry."""

import logging
import threading
import time
from collections.abc import Iterable, Mapping

from drainmetrics.core.extractor import MetricExtractor
from drainmetrics.core.models import Datapoint, MetricKind
from drainmetrics.core.parser import LineParser
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.errors import LogDecodeError

logger = logging.getLogger(__name__)

TRACKED_METRICS = "sfx_heroku.tracked_metrics"
TOTAL_DRAIN_REQUESTS = "sfx_heroku.total_drain_requests"
INTERNAL_SOURCE = "signalfx-heroku-collector"


class DrainListener:
    """Parses drain lines and records their metrics in a registry.

    One listener is shared by all request handlers; the registry is the
    only mutable state they share besides the request counter.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        parser: LineParser | None = None,
        extractor: MetricExtractor | None = None,
        internal_dimensions: Mapping[str, str] | None = None,
    ) -> None:
        self.registry = registry
        self.parser = parser or LineParser()
        self.extractor = extractor or MetricExtractor()
        # source always names the collector
        self.internal_dimensions = {
            **(internal_dimensions or {}),
            "source": INTERNAL_SOURCE,
        }
        self._requests_lock = threading.Lock()
        self._total_requests = 0

    @property
    def total_requests(self) -> int:
        return self._total_requests

    def count_request(self) -> None:
        with self._requests_lock:
            self._total_requests += 1

    def process_lines(
        self, lines: Iterable[str], dimensions: Mapping[str, str]
    ) -> int:
        """Record the metrics of every drain line, in order.

        Lines not in drain format are skipped silently; lines that fail to
        decode are logged and skipped.

        Args:
            lines: Raw lines without trailing newlines.
            dimensions: Request level dimensions (query parameters).

        Returns:
            Number of samples handed to the registry.
        """
        # @tra: Listener.ProcessLines
        recorded = 0
        for line in lines:
            try:
                log_line = self.parser.parse(line)
            except LogDecodeError as e:
                logger.error("Error processing supported log line: %s", e)
                continue
            if log_line is None:
                continue

            samples, dims = self.extractor.extract(log_line, dimensions)
            self.registry.update_many(samples, dims)
            recorded += len(samples)
        return recorded

    def internal_metrics(self) -> list[Datapoint]:
        """Return datapoints describing the collector itself.

        Every datapoint carries internal_dimensions, which identify the
        collector dyno.
        """
        # @tra: Listener.InternalMetrics
        timestamp = time.time()
        datapoints = [
            Datapoint(
                name=TRACKED_METRICS,
                kind=MetricKind.GAUGE,
                value=float(count),
                dimensions={"type": kind.value, **self.internal_dimensions},
                timestamp=timestamp,
            )
            for kind, count in self.registry.tracked_counts().items()
        ]
        datapoints.append(
            Datapoint(
                name=TOTAL_DRAIN_REQUESTS,
                kind=MetricKind.CUMULATIVE_COUNTER,
                value=float(self.total_requests),
                dimensions=dict(self.internal_dimensions),
                timestamp=timestamp,
            )
        )
        return datapoints
