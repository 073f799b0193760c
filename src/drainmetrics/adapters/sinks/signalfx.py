"""SignalFx ingest sink.

Posts each snapshot once to the SignalFx datapoint API; see
https://dev.splunk.com/observability/reference/api/ingest_data/latest.
Failed deliveries are logged and not retried.
"""

import logging
import math
from collections.abc import Sequence
from typing import Any

import httpx

from drainmetrics.core.models import Datapoint, MetricKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

_KIND_KEYS = {
    MetricKind.GAUGE: "gauge",
    MetricKind.RESETTABLE_COUNTER: "counter",
    MetricKind.CUMULATIVE_COUNTER: "cumulative_counter",
}


def build_payload(datapoints: Sequence[Datapoint]) -> dict[str, list[dict[str, Any]]]:
    """Group datapoints into the SignalFx /v2/datapoint JSON body.

    Non-finite values cannot be encoded as JSON and are left out.
    """
    payload: dict[str, list[dict[str, Any]]] = {}
    for dp in datapoints:
        if not math.isfinite(dp.value):
            logger.warning("Skipping non-finite datapoint %s=%r", dp.name, dp.value)
            continue
        payload.setdefault(_KIND_KEYS[dp.kind], []).append(
            {
                "metric": dp.name,
                "value": dp.value,
                "dimensions": dp.dimensions,
                "timestamp": int(dp.timestamp * 1000),
            }
        )
    return payload


class SignalFxSink:
    """SinkPort implementation sending snapshots to SignalFx over HTTP.

    Args:
        endpoint: Full datapoint endpoint URL.
        access_token: SignalFx org access token.
        client: httpx client to use; one is created when omitted.
    """

    def __init__(
        self,
        endpoint: str,
        access_token: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._headers = {"X-SF-Token": access_token}
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS)
        self._owns_client = client is None

    async def write(self, datapoints: Sequence[Datapoint]) -> None:
        payload = build_payload(datapoints)
        if not payload:
            return
        try:
            response = await self._client.post(
                self.endpoint, json=payload, headers=self._headers
            )
        except httpx.HTTPError as e:
            logger.error("Failed to dispatch datapoints to SignalFx: %s", e)
            return
        if response.is_error:
            logger.error(
                "Failed to dispatch datapoints to SignalFx: HTTP %d %s",
                response.status_code,
                response.text,
            )
            return
        logger.debug("Dispatched %d datapoints to SignalFx", len(datapoints))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
