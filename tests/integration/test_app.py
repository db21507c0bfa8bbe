from fastapi.testclient import TestClient

from pizza_metrics.main import build_pipeline, create_app
from pizza_metrics.metrics.pipeline import MetricsPipeline
from pizza_metrics.metrics.store import HttpMethod, RequestKey
from pizza_metrics.metrics.tracking import UNMATCHED_ENDPOINT


def test_health_requests_are_counted(settings):
    client = TestClient(create_app(settings), raise_server_exceptions=False)

    for _ in range(3):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.headers.get("X-Request-ID")

    payload = client.get("/metrics").json()

    assert payload["exporting"] is False
    assert payload["http_requests"]["GET"] == 3
    assert payload["total_requests"] == 3
    assert {"method": "GET", "endpoint": "/health", "count": 3} in payload["endpoint_requests"]
    assert payload["latency_samples"] == {"get": 3}


def test_metrics_endpoint_does_not_reset_interval(settings):
    app = create_app(settings)
    client = TestClient(app)

    client.get("/health")
    client.get("/metrics")

    snapshot = app.state.metrics.store.snapshot()
    assert snapshot.total_requests == 2
    assert client.get("/metrics").json()["total_requests"] == 2


def test_request_id_is_echoed(settings):
    client = TestClient(create_app(settings))

    response = client.get("/health", headers={"X-Request-ID": "rid-42"})

    assert response.headers["X-Request-ID"] == "rid-42"


def test_unconfigured_export_falls_back_to_local_pipeline(settings):
    enabled = settings.model_copy(update={"metrics_enabled": True})

    pipeline = build_pipeline(enabled)

    assert pipeline.scheduler is None


def test_scheduler_runs_for_app_lifetime(settings, metrics_config, fixed_sampler, collector):
    pipeline = MetricsPipeline(metrics_config, sampler=fixed_sampler, transport=collector.transport)
    app = create_app(settings, pipeline=pipeline)

    with TestClient(app) as client:
        assert client.get("/metrics").json()["exporting"] is True

    assert pipeline.scheduler is not None
    assert not pipeline.scheduler.running


def test_unrouted_paths_share_one_endpoint_series(settings):
    app = create_app(settings)
    client = TestClient(app)

    for i in range(200):
        assert client.get(f"/nope/{i}").status_code == 404

    store = app.state.metrics.store
    flushed = store.snapshot_and_reset()
    assert flushed.endpoint_requests == {RequestKey(HttpMethod.GET, UNMATCHED_ENDPOINT): 200}
    assert flushed.total_requests == 200
    assert store.snapshot_and_reset().endpoint_requests == {}


def test_unhandled_error_returns_request_id(settings):
    app = create_app(settings)

    @app.get("/boom")
    async def boom() -> dict:
        raise RuntimeError("kitchen on fire")

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/boom", headers={"X-Request-ID": "rid-500"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "internal_error",
        "message": "Something unexpected happened. Please try again later.",
        "request_id": "rid-500",
    }
    assert app.state.metrics.store.snapshot().http_requests["GET"] == 1
