"""Dry-run sink that logs snapshots instead of sending them."""

import logging
from collections.abc import Sequence

from drainmetrics.core.encoding.ndjson import encode_datapoints
from drainmetrics.core.models import Datapoint

logger = logging.getLogger(__name__)


class LoggingSink:
    """SinkPort implementation writing each snapshot to the log as NDJSON."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    async def write(self, datapoints: Sequence[Datapoint]) -> None:
        if not logger.isEnabledFor(self._level):
            return
        logger.log(
            self._level,
            "Dry run, %d datapoints not sent:\n%s",
            len(datapoints),
            encode_datapoints(datapoints),
        )
