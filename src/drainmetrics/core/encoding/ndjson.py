"""NDJSON encoder for datapoints."""

import json
from collections.abc import Iterable

from drainmetrics.core.models import Datapoint


def encode_datapoints(datapoints: Iterable[Datapoint]) -> str:
    """Encode datapoints to newline-delimited JSON.

    Args:
        datapoints: An iterable of Datapoint objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no datapoints.
    """
    lines = []
    for dp in datapoints:
        obj = {
            "name": dp.name,
            "kind": dp.kind.value,
            "value": dp.value,
            "dimensions": dp.dimensions,
            "timestamp": dp.timestamp,
        }
        lines.append(json.dumps(obj))

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
