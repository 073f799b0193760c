"""Port interfaces for datapoint sinks.

The scheduler depends only on this protocol, not on a concrete sink.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from drainmetrics.core.models import Datapoint


@runtime_checkable
class SinkPort(Protocol):
    """Port for dispatching collected datapoints.

    Sinks own delivery semantics (batching, retries) towards the metrics
    backend. Examples: InMemorySink, LoggingSink, SignalFxSink.
    """

    async def write(self, datapoints: Sequence[Datapoint]) -> None:
        """Dispatch one collected snapshot."""
        ...
