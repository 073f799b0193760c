"""drainmetrics: metrics from Heroku log drains.

Parses Heroku drain lines, extracts the metrics embedded in their messages
and aggregates them per series in a registry that evicts idle series.
"""

from drainmetrics.adapters.frameworks.asgi import create_drain_app
from drainmetrics.adapters.sinks import InMemorySink, LoggingSink, SignalFxSink
from drainmetrics.config import DrainConfig
from drainmetrics.core.extractor import MetricExtractor, dimensions_from_params
from drainmetrics.core.filter import ExclusionFilter
from drainmetrics.core.models import (
    Datapoint,
    LogLine,
    MetricKind,
    MetricSample,
    SeriesID,
)
from drainmetrics.core.parser import LineParser
from drainmetrics.core.ports import SinkPort
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.core.units import parse_value
from drainmetrics.listener import DrainListener
from drainmetrics.scheduler import CollectionScheduler

__all__ = [
    "CollectionScheduler",
    "Datapoint",
    "DrainConfig",
    "DrainListener",
    "ExclusionFilter",
    "InMemorySink",
    "LineParser",
    "LogLine",
    "LoggingSink",
    "MetricExtractor",
    "MetricKind",
    "MetricRegistry",
    "MetricSample",
    "SeriesID",
    "SignalFxSink",
    "SinkPort",
    "create_drain_app",
    "dimensions_from_params",
    "parse_value",
]
