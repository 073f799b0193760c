"""In-memory sink adapter."""

from collections import deque
from collections.abc import Sequence

from drainmetrics.core.models import Datapoint


class InMemorySink:
    """In-memory implementation of SinkPort.

    Keeps dispatched snapshots in a deque. When max_batches is set the
    buffer is bounded and the oldest snapshot is evicted to make room.
    Suitable for testing and for embedding the collector.

    Args:
        max_batches: Maximum number of snapshots to keep (optional).
    """

    def __init__(self, max_batches: int | None = None) -> None:
        self._batches: deque[list[Datapoint]] = deque(maxlen=max_batches)

    async def write(self, datapoints: Sequence[Datapoint]) -> None:
        """Store one snapshot."""
        self._batches.append(list(datapoints))

    @property
    def batches(self) -> list[list[Datapoint]]:
        return list(self._batches)

    @property
    def latest(self) -> list[Datapoint]:
        """The most recent snapshot, empty if nothing was written yet."""
        return self._batches[-1] if self._batches else []
