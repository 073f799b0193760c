"""Numeric value parsing for metric values that carry units."""

import math
import re

from drainmetrics.errors import UnsupportedUnitError

# Binary multipliers, matching docker's go-units RAMInBytes.
_BYTE_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
    "p": 1024**5,
}

# A unit is required; plain numbers fall through to float parsing so
# fractional values are not truncated to whole bytes.
_BYTE_SIZE = re.compile(
    r"^(?P<number>\d+(?:\.\d+)?) ?(?:(?P<prefix>[kKmMgGtTpP])[iI]?[bB]?|[bB])$"
)

_DURATION_MILLIS = {
    "ns": 1e-6,
    "us": 1e-3,
    "µs": 1e-3,  # U+00B5 micro sign
    "μs": 1e-3,  # U+03BC greek mu
    "ms": 1.0,
    "s": 1000.0,
    "m": 60_000.0,
    "h": 3_600_000.0,
}

_DURATION_SEGMENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION = re.compile(
    r"^[-+]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+$"
)

_PAGES_SUFFIX = "pages"


def parse_byte_size(value: str) -> float | None:
    """Return the whole-byte count for sizes like "99.74MB", else None.

    Sizes too large for a float are not byte sizes either.
    """
    # @tra: Core.Units.Bytes
    match = _BYTE_SIZE.match(value)
    if match is None:
        return None
    prefix = (match["prefix"] or "").lower()
    size = float(match["number"]) * _BYTE_MULTIPLIERS[prefix]
    if not math.isfinite(size):
        return None
    return float(int(size))


def parse_duration_millis(value: str) -> float | None:
    """Return milliseconds for durations like "30000ms" or "1m30s", else None."""
    # @tra: Core.Units.Duration
    if value in ("0", "+0", "-0"):
        return 0.0
    if _DURATION.match(value) is None:
        return None
    total = sum(
        float(number) * _DURATION_MILLIS[unit]
        for number, unit in _DURATION_SEGMENT.findall(value)
    )
    return -total if value.startswith("-") else total


def parse_value(value: str) -> float:
    """Parse a metric value, stripping any supported unit.

    Tried in order, first success wins: byte sizes, durations (in
    milliseconds), page counts ("355603pages") and plain floats.

    Only finite values are accepted; "nan", "inf" and values overflowing
    a float are unsupported.

    Raises:
        UnsupportedUnitError: No supported format matched.
    """
    # @tra: Core.Units.Unsupported
    result = parse_byte_size(value)
    if result is None:
        result = parse_duration_millis(value)
    if result is None:
        # memory_pgpgin and memory_pgpgout are reported in pages
        number = value.removesuffix(_PAGES_SUFFIX)
        try:
            result = float(number)
        except ValueError:
            raise UnsupportedUnitError(value) from None

    if not math.isfinite(result):
        raise UnsupportedUnitError(value)
    return result
