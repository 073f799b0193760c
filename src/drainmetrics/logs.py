"""Process logging setup."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Send records to stderr, at DEBUG level when debug is set else INFO."""
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
    logging.getLogger(__name__).info(
        "Using log level %s", "debug" if debug else "info"
    )


def log_exception(message: str, logger_name: str = "drainmetrics") -> None:
    """Log message with the exception being handled at ERROR level."""
    logging.getLogger(logger_name).exception(message)
