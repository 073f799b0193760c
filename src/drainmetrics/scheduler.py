"""Periodic collection of registry snapshots."""

import asyncio
import logging
from collections.abc import Callable

from drainmetrics.core.filter import ExclusionFilter
from drainmetrics.core.models import Datapoint
from drainmetrics.core.ports import SinkPort
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.logs import log_exception

logger = logging.getLogger(__name__)


class CollectionScheduler:
    """Collects the registry every interval and hands the result to a sink.

    Collection is single-flight: a tick that fires while the previous
    cycle is still running is skipped, not queued, since only the latest
    aggregated state matters.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        sink: SinkPort,
        interval_seconds: float,
        exclusion_filter: ExclusionFilter | None = None,
        internal_metrics: Callable[[], list[Datapoint]] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            registry: Registry to collect from.
            sink: Destination of every filtered snapshot.
            interval_seconds: Time between ticks.
            exclusion_filter: Filter applied before dispatch (optional).
            internal_metrics: Extra datapoints appended to every snapshot
                after filtering, e.g. DrainListener.internal_metrics
                (optional).
        """
        self.registry = registry
        self.sink = sink
        self.interval_seconds = interval_seconds
        self.exclusion_filter = exclusion_filter or ExclusionFilter()
        self.internal_metrics = internal_metrics
        self.skipped_ticks = 0
        self._task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._stopped: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_cycle(self) -> list[Datapoint]:
        """Collect, filter and dispatch one snapshot.

        The exclusion filter applies to drained series only; internal
        metrics are always sent.

        Returns:
            The datapoints handed to the sink.
        """
        # @tra: Scheduler.Cycle
        collected = await asyncio.to_thread(self.registry.collect)
        datapoints = self.exclusion_filter.apply(collected)
        if self.internal_metrics is not None:
            datapoints.extend(self.internal_metrics())
        try:
            await self.sink.write(datapoints)
        except Exception:
            log_exception("Failed to dispatch datapoints", __name__)
        return datapoints

    def tick(self) -> bool:
        """Start a cycle unless one is still running.

        Returns:
            True if a cycle was started, False if the tick was skipped.
        """
        # @tra: Scheduler.SingleFlight
        if self._inflight is not None and not self._inflight.done():
            self.skipped_ticks += 1
            logger.debug("Previous collection still running, skipping tick")
            return False
        self._inflight = asyncio.get_running_loop().create_task(self._cycle())
        return True

    async def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Setting up datapoint collector, interval %ss", self.interval_seconds
        )
        self._stopped = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(self._stopped))

    async def stop(self) -> None:
        """Stop ticking and wait for the in-flight cycle to finish."""
        if self._stopped is not None:
            self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None
        if self._inflight is not None:
            await self._inflight
            self._inflight = None

    async def _run(self, stopped: asyncio.Event) -> None:
        while not stopped.is_set():
            try:
                await asyncio.wait_for(stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                self.tick()

    async def _cycle(self) -> None:
        try:
            await self.run_cycle()
        except Exception:
            log_exception("Collection cycle failed", __name__)
