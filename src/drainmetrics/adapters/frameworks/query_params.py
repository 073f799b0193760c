"""Shared query parameter parsing utilities for framework adapters."""

import logging
from collections.abc import Iterable
from urllib.parse import parse_qs

from drainmetrics.core.extractor import dimensions_from_params
from drainmetrics.errors import MissingAppNameError

logger = logging.getLogger(__name__)


def _parse_query_string(query_string: bytes | str) -> dict[str, list[str]]:
    """Parse a raw query string into a parameter dictionary.

    Invalid UTF-8 bytes are replaced rather than rejected.
    """
    if isinstance(query_string, bytes):
        query_string = query_string.decode(errors="replace")
    return parse_qs(query_string)


def _group_params(items: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Group (key, value) pairs into the parse_qs dictionary shape."""
    # @tra: Adapter.QueryParameter.Group
    params: dict[str, list[str]] = {}
    for key, value in items:
        if value:
            params.setdefault(key, []).append(value)
    return params


def _parse_request_dimensions(params: dict[str, list[str]]) -> dict[str, str] | None:
    """Return the request dimensions, or None after logging a rejection."""
    # @tra: Adapter.QueryParameter.Dimensions
    try:
        return dimensions_from_params(params)
    except MissingAppNameError as e:
        logger.error("Unable to get app name from request params %s: %s", params, e)
        return None
