"""BDD step definitions for drain ingestion features."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from pytest_bdd import given, parsers, then, when

from drainmetrics.adapters.frameworks.asgi import create_drain_app
from drainmetrics.adapters.sinks import InMemorySink
from drainmetrics.core.models import Datapoint, MetricKind
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.listener import DrainListener
from drainmetrics.scheduler import CollectionScheduler
from tests.conftest import FakeClock
from tests.samples import DYNO_MEMORY_LINE


@dataclass
class DrainScenarioContext:
    """Shared state between steps in a drain scenario."""

    clock: FakeClock = field(default_factory=FakeClock)
    sink: InMemorySink = field(default_factory=InMemorySink)
    app: Any = None
    scheduler: CollectionScheduler | None = None
    status_code: int | None = None
    collected: list[Datapoint] = field(default_factory=list)


def app_line(message: str) -> str:
    """Build a drain line logged by a worker dyno."""
    return f"120 <190>1 2019-12-11T22:30:00.000000+00:00 host app worker.1 - {message}"


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


async def post_drain(app: Any, query: str, body: str) -> int:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(f"/{query}", content=body.encode())
    return response.status_code


@pytest.fixture
def ctx() -> DrainScenarioContext:
    """Fresh scenario context for each test."""
    return DrainScenarioContext()


@given(parsers.parse("a drain service with a {expiry:d} second expiry"))
def given_drain_service(ctx: DrainScenarioContext, expiry: int) -> None:
    registry = MetricRegistry(expiry_seconds=expiry, clock=ctx.clock)
    listener = DrainListener(registry)
    ctx.app = create_drain_app(listener)
    ctx.scheduler = CollectionScheduler(registry, ctx.sink, interval_seconds=10)


@when(parsers.parse('the dyno memory line is drained for app "{app_name}"'))
def when_dyno_line_drained(ctx: DrainScenarioContext, app_name: str) -> None:
    ctx.status_code = run_async(
        post_drain(ctx.app, f"?app_name={app_name}", DYNO_MEMORY_LINE)
    )


@when("the dyno memory line is drained without an app name")
def when_dyno_line_drained_without_app(ctx: DrainScenarioContext) -> None:
    ctx.status_code = run_async(post_drain(ctx.app, "", DYNO_MEMORY_LINE))


@when(parsers.parse('an app line with "{pair}" is drained for app "{app_name}"'))
def when_app_line_drained(ctx: DrainScenarioContext, pair: str, app_name: str) -> None:
    ctx.status_code = run_async(
        post_drain(ctx.app, f"?app_name={app_name}", app_line(pair))
    )


@when(parsers.parse("{seconds:d} seconds pass"))
def when_time_passes(ctx: DrainScenarioContext, seconds: int) -> None:
    ctx.clock.advance(seconds)


@then(parsers.parse("the drain answers {code:d}"))
def then_drain_answers(ctx: DrainScenarioContext, code: int) -> None:
    assert ctx.status_code == code


def _collect(ctx: DrainScenarioContext) -> list[Datapoint]:
    assert ctx.scheduler is not None
    ctx.collected = run_async(ctx.scheduler.run_cycle())
    return ctx.collected


@then(parsers.parse("the next collection contains {count:d} gauges"))
def then_collection_contains_gauges(ctx: DrainScenarioContext, count: int) -> None:
    datapoints = _collect(ctx)
    assert len(datapoints) == count
    assert all(dp.kind is MetricKind.GAUGE for dp in datapoints)


@then(parsers.parse('the next collection reports "{name}" = {value:d}'))
def then_collection_reports(ctx: DrainScenarioContext, name: str, value: int) -> None:
    by_name = {dp.name: dp.value for dp in _collect(ctx)}
    assert by_name[name] == value


@then("the next collection is empty")
def then_collection_empty(ctx: DrainScenarioContext) -> None:
    assert _collect(ctx) == []


@then(parsers.parse('every collected datapoint has dimension "{key}" = "{value}"'))
def then_every_datapoint_has_dimension(
    ctx: DrainScenarioContext, key: str, value: str
) -> None:
    assert ctx.collected
    assert all(dp.dimensions.get(key) == value for dp in ctx.collected)
