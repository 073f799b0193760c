"""Metric and dimension extraction from drain log messages.

Messages carry metrics and dimensions as space separated key=value pairs:

    source=web.1 dyno=heroku.1.259625dd-... sample#memory_total=99.74MB

Router lines use a fixed vocabulary, see
https://devcenter.heroku.com/articles/http-routing#heroku-router-log-format
and runtime metrics use the sample# prefix, see
https://devcenter.heroku.com/articles/log-runtime-metrics.
"""

import logging
import re
from collections.abc import Mapping

from drainmetrics.core.models import LogLine, MetricKind, MetricSample
from drainmetrics.core.units import parse_value
from drainmetrics.errors import MissingAppNameError, UnsupportedUnitError

logger = logging.getLogger(__name__)

COUNTER_PREFIX = "counter#"
CUMULATIVE_PREFIX = "cumulative#"
SAMPLE_PREFIX = "sample#"
GAUGE_PREFIX = "gauge#"
DIMENSION_PREFIX = "sfxdimension#"

HEROKU_METRIC_PREFIX = "heroku."
ROUTER_PROCESS_TYPE = "router"

ROUTER_DIMENSION_KEYS = frozenset(
    {"status", "method", "dyno", "protocol", "host", "code"}
)
ROUTER_METRIC_KEYS = frozenset({"connect", "service", "bytes"})

ROUTER_METRIC_NAMES = {
    "connect": "heroku.router_request_connect_time_millis",
    "service": "heroku.router_request_service_time_millis",
    "bytes": "heroku.router_response_bytes",
}

# https://devcenter.heroku.com/articles/platform-api-reference#custom-types
HEROKU_OBJECT_ID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

APP_NAME_PARAM = "app_name"


def dimensions_from_params(params: Mapping[str, list[str]]) -> dict[str, str]:
    """Turn drain request query parameters into dimensions.

    Only the first non-empty value of a parameter is used. The app_name
    parameter is required and must carry exactly one non-empty value.

    Args:
        params: Parsed query string (as returned by urllib.parse.parse_qs).

    Raises:
        MissingAppNameError: app_name is absent, empty or repeated.
    """
    # @tra: Core.Extractor.Params
    app_names = params.get(APP_NAME_PARAM)
    if not app_names or len(app_names) != 1 or not app_names[0]:
        raise MissingAppNameError(app_names)

    dims: dict[str, str] = {}
    for key, values in params.items():
        first = next((v for v in values if v), None)
        if first is not None:
            dims[key] = first
    return dims


def classify_key(key: str) -> tuple[str, MetricKind]:
    """Return the metric name and kind encoded by a message key."""
    # @tra: Core.Extractor.Classification
    if key.startswith(COUNTER_PREFIX):
        return key.removeprefix(COUNTER_PREFIX), MetricKind.RESETTABLE_COUNTER
    if key.startswith(CUMULATIVE_PREFIX):
        return key.removeprefix(CUMULATIVE_PREFIX), MetricKind.CUMULATIVE_COUNTER
    # runtime metrics get a "heroku." prefix to keep them easy to find
    if key.startswith(SAMPLE_PREFIX):
        return HEROKU_METRIC_PREFIX + key.removeprefix(SAMPLE_PREFIX), MetricKind.GAUGE
    return key.removeprefix(GAUGE_PREFIX), MetricKind.GAUGE


def is_metric_key(key: str) -> bool:
    return key in ROUTER_METRIC_KEYS or key.startswith(
        (COUNTER_PREFIX, CUMULATIVE_PREFIX, SAMPLE_PREFIX, GAUGE_PREFIX)
    )


def is_dimension_key(key: str) -> bool:
    return key in ROUTER_DIMENSION_KEYS or key.startswith(DIMENSION_PREFIX)


def process_type_of(proc_id: str) -> str:
    """Return the process type of a dyno name ("web.1" -> "web")."""
    return proc_id.split(".", 1)[0]


def dyno_id_of(dyno: str) -> str | None:
    """Return the dyno UUID of values like "heroku.155370883.<uuid>"."""
    parts = dyno.split(".")
    if len(parts) == 3 and HEROKU_OBJECT_ID.match(parts[2]):
        return parts[2]
    return None


class MetricExtractor:
    """Extracts typed metric samples and dimensions from a LogLine."""

    def extract(
        self,
        log_line: LogLine,
        params: Mapping[str, str] | None = None,
    ) -> tuple[list[MetricSample], dict[str, str]]:
        """Extract metrics and dimensions from a parsed line.

        Args:
            log_line: The parsed drain line.
            params: Dimensions supplied outside the log line, typically the
                drain request query parameters. They win over dimensions
                found in the message on key collision.

        Returns:
            The samples in message order and the dimensions shared by all
            of them.
        """
        samples, dims = self._evaluate_pairs(log_line)
        if params:
            dims.update(params)

        process_type = process_type_of(log_line.proc_id)
        if process_type == ROUTER_PROCESS_TYPE:
            samples = self._fix_up_router_metrics(samples)
        else:
            self._fix_up_dyno_dimensions(dims, process_type)
        return samples, dims

    def _evaluate_pairs(
        self, log_line: LogLine
    ) -> tuple[list[MetricSample], dict[str, str]]:
        # @tra: Core.Extractor.Tokenization
        samples: list[MetricSample] = []
        dims = {"source": log_line.proc_id}

        for pair in log_line.message.split(" "):
            parts = pair.split("=")
            if len(parts) != 2:
                continue
            key, raw_value = parts

            if is_metric_key(key):
                try:
                    value = parse_value(raw_value)
                except UnsupportedUnitError as e:
                    logger.debug("Dropping metric %r: %s", pair, e)
                    continue
                name, kind = classify_key(key)
                samples.append(MetricSample(name=name, kind=kind, value=value))
            elif is_dimension_key(key):
                dims[key.removeprefix(DIMENSION_PREFIX)] = raw_value

        return samples, dims

    def _fix_up_router_metrics(
        self, samples: list[MetricSample]
    ) -> list[MetricSample]:
        # @tra: Core.Extractor.Router
        return [
            MetricSample(
                name=ROUTER_METRIC_NAMES[s.name], kind=s.kind, value=s.value
            )
            if s.name in ROUTER_METRIC_NAMES
            else s
            for s in samples
        ]

    def _fix_up_dyno_dimensions(self, dims: dict[str, str], process_type: str) -> None:
        # @tra: Core.Extractor.Dyno
        # Router and dyno series both end up with a "dyno" dimension naming
        # the dyno, so they can be filtered together.
        dims["process_type"] = process_type
        raw_dyno = dims.pop("dyno", "")
        if raw_dyno:
            dyno_id = dyno_id_of(raw_dyno)
            if dyno_id is not None:
                dims["dyno_id"] = dyno_id
        if dims.get("source"):
            dims["dyno"] = dims["source"]
