"""Sink adapters for collected datapoints."""

from drainmetrics.adapters.sinks.in_memory import InMemorySink
from drainmetrics.adapters.sinks.logging import LoggingSink
from drainmetrics.adapters.sinks.signalfx import SignalFxSink

__all__ = [
    "InMemorySink",
    "LoggingSink",
    "SignalFxSink",
]
