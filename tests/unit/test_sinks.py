"""Tests for datapoint sink adapters."""

import json
import logging
import math

import httpx
import pytest

from drainmetrics.adapters.sinks import InMemorySink, LoggingSink, SignalFxSink
from drainmetrics.adapters.sinks.signalfx import build_payload
from drainmetrics.core.models import Datapoint, MetricKind, MetricSample
from drainmetrics.core.ports import SinkPort
from drainmetrics.core.registry import MetricRegistry
from drainmetrics.scheduler import CollectionScheduler

pytestmark = [pytest.mark.sink]

ENDPOINT = "https://ingest.us1.signalfx.com/v2/datapoint"

DATAPOINTS = [
    Datapoint("heroku.memory_rss", MetricKind.GAUGE, 42.0, {"dyno": "web.1"}, 1702300000.5),
    Datapoint("jobs", MetricKind.RESETTABLE_COUNTER, 3.0, {}, 1702300000.5),
    Datapoint("bytes_sent", MetricKind.CUMULATIVE_COUNTER, 1024.0, {}, 1702300000.5),
]


@pytest.mark.tier(0)
@pytest.mark.parametrize(
    "make_sink",
    [InMemorySink, LoggingSink, lambda: SignalFxSink(ENDPOINT, "token")],
)
async def test_sinks_implement_sink_port(make_sink) -> None:
    sink = make_sink()
    assert isinstance(sink, SinkPort)
    if isinstance(sink, SignalFxSink):
        await sink.close()


class TestInMemorySink:
    """Tests for InMemorySink."""

    @pytest.mark.tier(1)
    async def test_keeps_batches_in_order(self) -> None:
        sink = InMemorySink()

        await sink.write(DATAPOINTS[:1])
        await sink.write(DATAPOINTS[1:])

        assert sink.batches == [DATAPOINTS[:1], DATAPOINTS[1:]]
        assert sink.latest == DATAPOINTS[1:]

    @pytest.mark.tier(1)
    async def test_bounded_buffer_drops_oldest(self) -> None:
        sink = InMemorySink(max_batches=2)

        for dp in DATAPOINTS:
            await sink.write([dp])

        assert sink.batches == [[DATAPOINTS[1]], [DATAPOINTS[2]]]

    @pytest.mark.tier(1)
    def test_latest_is_empty_before_first_write(self) -> None:
        assert InMemorySink().latest == []


class TestLoggingSink:
    """Tests for LoggingSink."""

    @pytest.mark.tier(1)
    async def test_logs_snapshot_as_ndjson(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="drainmetrics.adapters.sinks.logging")

        await LoggingSink().write(DATAPOINTS)

        assert "Dry run, 3 datapoints not sent" in caplog.text
        assert '"name": "heroku.memory_rss"' in caplog.text


class TestSignalFxSink:
    """Tests for SignalFxSink."""

    @pytest.mark.tier(1)
    def test_payload_groups_by_kind(self) -> None:
        payload = build_payload(DATAPOINTS)

        assert payload == {
            "gauge": [
                {
                    "metric": "heroku.memory_rss",
                    "value": 42.0,
                    "dimensions": {"dyno": "web.1"},
                    "timestamp": 1702300000500,
                }
            ],
            "counter": [
                {"metric": "jobs", "value": 3.0, "dimensions": {}, "timestamp": 1702300000500}
            ],
            "cumulative_counter": [
                {
                    "metric": "bytes_sent",
                    "value": 1024.0,
                    "dimensions": {},
                    "timestamp": 1702300000500,
                }
            ],
        }

    @pytest.mark.tier(1)
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_payload_skips_non_finite_values(
        self, value: float, caplog: pytest.LogCaptureFixture
    ) -> None:
        payload = build_payload(
            [Datapoint("a", MetricKind.GAUGE, value), Datapoint("b", MetricKind.GAUGE, 1.0)]
        )

        assert [item["metric"] for item in payload["gauge"]] == ["b"]
        assert "Skipping non-finite datapoint a" in caplog.text

    @pytest.mark.tier(2)
    async def test_posts_payload_with_token(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text='"OK"')

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = SignalFxSink(ENDPOINT, "secret", client=client)
            await sink.write(DATAPOINTS)

        assert len(requests) == 1
        assert str(requests[0].url) == ENDPOINT
        assert requests[0].headers["X-SF-Token"] == "secret"
        assert json.loads(requests[0].content) == build_payload(DATAPOINTS)

    @pytest.mark.tier(2)
    async def test_empty_snapshot_is_not_sent(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SignalFxSink(ENDPOINT, "secret", client=client).write([])

        assert requests == []

    @pytest.mark.tier(2)
    async def test_error_response_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="invalid token")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SignalFxSink(ENDPOINT, "bad", client=client).write(DATAPOINTS)

        assert "HTTP 401 invalid token" in caplog.text

    @pytest.mark.tier(2)
    async def test_transport_error_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SignalFxSink(ENDPOINT, "secret", client=client).write(DATAPOINTS)

        assert "Failed to dispatch datapoints to SignalFx" in caplog.text
        assert "connection refused" in caplog.text

    @pytest.mark.tier(2)
    async def test_close_keeps_injected_client_open(self) -> None:
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200))
        ) as client:
            await SignalFxSink(ENDPOINT, "secret", client=client).close()

            assert not client.is_closed

    @pytest.mark.tier(2)
    async def test_non_finite_datapoint_does_not_block_snapshot(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SignalFxSink(ENDPOINT, "secret", client=client).write(
                [
                    Datapoint("a", MetricKind.GAUGE, math.nan),
                    Datapoint("b", MetricKind.GAUGE, 1.0),
                ]
            )

        assert len(requests) == 1
        body = json.loads(requests[0].content)
        assert [item["metric"] for item in body["gauge"]] == ["b"]

    @pytest.mark.tier(2)
    async def test_only_non_finite_datapoints_sends_nothing(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await SignalFxSink(ENDPOINT, "secret", client=client).write(
                [Datapoint("a", MetricKind.GAUGE, math.inf)]
            )

        assert requests == []

    @pytest.mark.tier(2)
    async def test_unexpected_client_error_is_logged_by_scheduler(
        self, registry: MetricRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("client misconfigured")
            return httpx.Response(200)

        registry.update(MetricSample("g", MetricKind.GAUGE, 1.0), {"app_name": "a"})
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = SignalFxSink(ENDPOINT, "secret", client=client)
            scheduler = CollectionScheduler(registry, sink, interval_seconds=10)

            first = await scheduler.run_cycle()
            second = await scheduler.run_cycle()

        assert "Failed to dispatch datapoints" in caplog.text
        assert "client misconfigured" in caplog.text
        assert len(first) == len(second) == 1
        assert len(calls) == 2
