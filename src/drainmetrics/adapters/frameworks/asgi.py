"""ASGI adapter for the log drain endpoint.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI.

Routes:
    POST /        Heroku log drain; requires the app_name query parameter.
    GET /metrics  Collector internal metrics as NDJSON.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any

from drainmetrics.adapters.frameworks.lines import LineSplitter
from drainmetrics.adapters.frameworks.query_params import (
    _parse_query_string,
    _parse_request_dimensions,
)
from drainmetrics.core.encoding.ndjson import encode_datapoints
from drainmetrics.listener import DrainListener
from drainmetrics.logs import log_exception
from drainmetrics.scheduler import CollectionScheduler

logger = logging.getLogger(__name__)

# ASGI type aliases
# @tra: Adapter.ASGI.SendResponse.Headers
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

ShutdownHook = Callable[[], Awaitable[None]]


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Returns an empty dict if query_string is missing or empty.
    """
    # @tra: Adapter.ASGI.QueryParameter.Parser
    return _parse_query_string(scope.get("query_string", b""))


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body."""
    # @tra: Adapter.ASGI.SendResponse.Body
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _handle_endpoint(
    send: Send,
    endpoint_func: Callable[[], str],
    content_type: str,
    log_message: str,
) -> None:
    """Execute an endpoint function with error handling and send response."""
    # @tra: Adapter.ASGI.Endpoint.Error
    try:
        body = endpoint_func()
        await _send_response(send, 200, content_type, body)
    except Exception:
        log_exception(log_message, __name__)
        error_body = json.dumps({"error": "Internal Server Error"})
        await _send_response(send, 500, "application/json", error_body)


async def _stream_lines(
    receive: Receive,
    handle: Callable[[list[str]], Awaitable[object]],
) -> bool:
    """Read the request body and pass complete lines to handle, in order.

    Returns:
        False if the client disconnected before the body was complete.
    """
    # @tra: Adapter.ASGI.Body.Disconnect
    splitter = LineSplitter()
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return False
        lines = splitter.feed(message.get("body", b""))
        if lines:
            await handle(lines)
        if not message.get("more_body", False):
            break
    trailing = splitter.flush()
    if trailing:
        await handle(trailing)
    return True


async def _handle_lifespan(
    receive: Receive,
    send: Send,
    scheduler: CollectionScheduler | None,
    on_shutdown: Sequence[ShutdownHook],
) -> None:
    # @tra: Adapter.ASGI.Lifespan
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            try:
                if scheduler is not None:
                    await scheduler.start()
            except Exception as e:
                log_exception("Failed to start collection scheduler", __name__)
                await send({"type": "lifespan.startup.failed", "message": str(e)})
                return
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            if scheduler is not None:
                await scheduler.stop()
            for hook in on_shutdown:
                await hook()
            logger.info("Shutting down")
            await send({"type": "lifespan.shutdown.complete"})
            return


def create_drain_app(
    listener: DrainListener,
    scheduler: CollectionScheduler | None = None,
    on_shutdown: Sequence[ShutdownHook] = (),
) -> ASGIApp:
    """Create an ASGI app serving the log drain and internal metrics.

    Args:
        listener: Listener recording drain lines into its registry.
        scheduler: Collection scheduler started and stopped with the
            ASGI lifespan (optional).
        on_shutdown: Coroutines awaited after the scheduler stopped.

    Returns:
        ASGI application callable.
    """

    async def drain(scope: Scope, receive: Receive, send: Send) -> None:
        # @tra: Adapter.ASGI.Drain.AppName
        listener.count_request()
        dims = _parse_request_dimensions(_parse_query_params(scope))
        if dims is None:
            await _send_response(
                send, 400, "text/plain", "app_name parameter takes exactly one value"
            )
            return

        async def handle(lines: list[str]) -> int:
            return await asyncio.to_thread(listener.process_lines, lines, dims)

        if await _stream_lines(receive, handle):
            await _send_response(send, 200, "text/plain", "OK")

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await _handle_lifespan(receive, send, scheduler, on_shutdown)
            return
        if scope["type"] != "http":
            return

        # @tra: Adapter.ASGI.Routing.NotFound
        path = scope["path"]
        method = scope["method"]

        if path == "/":
            if method == "POST":
                await drain(scope, receive, send)
            else:
                await _send_response(send, 405, "text/plain", "Method Not Allowed")
        elif path == "/metrics" and method == "GET":
            await _handle_endpoint(
                send,
                lambda: encode_datapoints(listener.internal_metrics()),
                "application/x-ndjson",
                "Error encoding metrics endpoint",
            )
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
