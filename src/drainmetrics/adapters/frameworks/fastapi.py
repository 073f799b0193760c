"""FastAPI adapter for the log drain endpoint."""

import asyncio

from fastapi import APIRouter, Request, Response

from drainmetrics.adapters.frameworks.lines import LineSplitter
from drainmetrics.adapters.frameworks.query_params import (
    _group_params,
    _parse_request_dimensions,
)
from drainmetrics.core.encoding.ndjson import encode_datapoints
from drainmetrics.listener import DrainListener


def create_drain_router(listener: DrainListener) -> APIRouter:
    """Create a FastAPI router with the drain and /metrics endpoints.

    Args:
        listener: Listener recording drain lines into its registry.

    Returns:
        APIRouter with POST / and GET /metrics configured.
    """
    router = APIRouter()

    @router.post("/")
    async def drain(request: Request) -> Response:
        """Record the metrics found in a Heroku drain body."""
        listener.count_request()
        dims = _parse_request_dimensions(
            _group_params(request.query_params.multi_items())
        )
        if dims is None:
            return Response(
                content="app_name parameter takes exactly one value",
                status_code=400,
                media_type="text/plain",
            )

        splitter = LineSplitter()
        lines: list[str] = []
        async for chunk in request.stream():
            lines.extend(splitter.feed(chunk))
        lines.extend(splitter.flush())
        await asyncio.to_thread(listener.process_lines, lines, dims)
        return Response(content="OK", media_type="text/plain")

    @router.get("/metrics")
    async def get_metrics() -> Response:
        """Return collector internal metrics in NDJSON format."""
        body = encode_datapoints(listener.internal_metrics())
        return Response(content=body, media_type="application/x-ndjson")

    return router
