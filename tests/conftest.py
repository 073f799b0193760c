"""Shared test fixtures for all test modules."""

import pytest

try:
    import httpx
except ImportError:
    httpx = None

from drainmetrics.core.registry import MetricRegistry
from drainmetrics.listener import DrainListener


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at t=100s."""
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> MetricRegistry:
    """Provide a registry with a 5 minute expiry driven by the fake clock."""
    return MetricRegistry(expiry_seconds=300, clock=clock, wall_clock=lambda: 1000.0)


@pytest.fixture
def listener(registry: MetricRegistry) -> DrainListener:
    """Provide a drain listener recording into the registry fixture."""
    return DrainListener(registry)


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_drain_app(listener)
            async with asgi_test_client(app) as client:
                response = await client.post("/?app_name=test", content=body)
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
