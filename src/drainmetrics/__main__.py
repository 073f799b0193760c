"""Run the drain collector.

Run with:
    python -m drainmetrics

Configuration is read from the environment, see drainmetrics.config.
"""

import logging
import sys

import uvicorn

from drainmetrics.adapters.frameworks.asgi import (
    ASGIApp,
    ShutdownHook,
    create_drain_app,
)
from drainmetrics.adapters.sinks import LoggingSink, SignalFxSink
from drainmetrics.config import DrainConfig
from drainmetrics.core.filter import ExclusionFilter
from drainmetrics.core.ports import SinkPort
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.errors import ConfigError
from drainmetrics.listener import DrainListener
from drainmetrics.logs import configure_logging
from drainmetrics.scheduler import CollectionScheduler

logger = logging.getLogger("drainmetrics")


def build_app(config: DrainConfig) -> ASGIApp:
    """Wire registry, listener, sink and scheduler into an ASGI app."""
    registry = MetricRegistry(expiry_seconds=config.expiry_seconds)
    listener = DrainListener(registry, internal_dimensions=config.internal_dimensions)

    on_shutdown: list[ShutdownHook] = []
    sink: SinkPort
    if config.dry_run:
        logger.info("Dry run mode on, no datapoints will be emitted to SignalFx")
        sink = LoggingSink()
    else:
        signalfx = SignalFxSink(config.datapoint_endpoint, config.access_token)
        logger.info("Sending datapoints to %s", signalfx.endpoint)
        on_shutdown.append(signalfx.close)
        sink = signalfx

    scheduler = CollectionScheduler(
        registry,
        sink,
        interval_seconds=config.interval_seconds,
        exclusion_filter=ExclusionFilter(
            config.metrics_to_exclude, config.dimension_pairs_to_exclude
        ),
        internal_metrics=listener.internal_metrics
        if config.send_internal_metrics
        else None,
    )
    return create_drain_app(listener, scheduler, on_shutdown)


def main() -> int:
    config = DrainConfig.from_env()
    configure_logging(config.debug)
    try:
        config.validate()
    except ConfigError as e:
        logger.error("Config was invalid: %s", e)
        return 1

    app = build_app(config)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
