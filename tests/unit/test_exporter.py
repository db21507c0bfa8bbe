import asyncio
import json
import time

import httpx
import pytest

from pizza_metrics.metrics.exporter import ExportOutcome, MetricsExporter

URL = "https://otlp.example.com/otlp/v1/metrics"


def _exporter(handler) -> MetricsExporter:
    return MetricsExporter(URL, "secret-token", timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_successful_export_is_delivered(encoder, collector):
    exporter = MetricsExporter(URL, "secret-token", transport=collector.transport)
    payload = encoder.encode("total_requests", 4)

    result = await exporter.export(payload)
    await exporter.aclose()

    assert result.outcome is ExportOutcome.DELIVERED
    assert result.delivered
    assert result.status_code == 200
    request = collector.requests[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == payload


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 401, 429, 500, 503])
async def test_non_success_status_is_rejected(encoder, status_code):
    exporter = _exporter(lambda request: httpx.Response(status_code, text="nope"))

    result = await exporter.export(encoder.encode("revenue", 1))
    await exporter.aclose()

    assert result.outcome is ExportOutcome.REJECTED
    assert result.status_code == status_code
    assert result.detail == "nope"
    assert not result.delivered


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timed out")],
)
async def test_transport_errors_are_reported_not_raised(encoder, error):
    def handler(request):
        raise error

    exporter = _exporter(handler)

    result = await exporter.export(encoder.encode("active_sessions", 2))
    await exporter.aclose()

    assert result.outcome is ExportOutcome.TRANSPORT_FAILURE
    assert result.status_code is None
    assert result.detail


@pytest.mark.asyncio
async def test_failed_export_is_not_retried(encoder):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    exporter = _exporter(handler)
    await exporter.export(encoder.encode("cpu_usage", 10))
    await exporter.aclose()

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_client_is_reopened_after_close(encoder, collector):
    exporter = MetricsExporter(URL, "secret-token", transport=collector.transport)

    await exporter.export(encoder.encode("orders_success", 1))
    await exporter.aclose()
    result = await exporter.export(encoder.encode("orders_success", 1))
    await exporter.aclose()

    assert result.delivered
    assert len(collector.requests) == 2


@pytest.mark.asyncio
async def test_slow_response_is_cut_at_export_timeout(encoder):
    async def handler(request):
        await asyncio.sleep(2.0)
        return httpx.Response(200)

    exporter = MetricsExporter(URL, "secret-token", timeout=0.05, transport=httpx.MockTransport(handler))

    started = time.perf_counter()
    result = await exporter.export(encoder.encode("memory_usage", 40))
    elapsed = time.perf_counter() - started
    await exporter.aclose()

    assert result.outcome is ExportOutcome.TRANSPORT_FAILURE
    assert "timed out" in result.detail
    assert elapsed < 1.0
