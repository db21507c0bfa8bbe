"""FastAPI application entry point wiring the metrics pipeline."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request

from pizza_metrics import __version__
from pizza_metrics.core.config import Settings, get_settings
from pizza_metrics.core.errors import MetricsConfigError, unhandled_exception_handler
from pizza_metrics.core.logging import configure_logging, request_id_middleware
from pizza_metrics.metrics.pipeline import MetricsPipeline
from pizza_metrics.metrics.store import MetricSnapshot

logger = logging.getLogger("pizza.app")


def build_pipeline(settings: Settings) -> MetricsPipeline:
    """Return a pipeline exporting to the collector, or a local-only one."""

    if not settings.metrics_enabled:
        return MetricsPipeline()
    try:
        return MetricsPipeline(settings.metrics_config)
    except MetricsConfigError as exc:
        logger.warning("Metrics export disabled: %s", exc)
        return MetricsPipeline()


def snapshot_to_dict(snapshot: MetricSnapshot) -> dict[str, Any]:
    return {
        "http_requests": {method.value: count for method, count in snapshot.http_requests.items()},
        "total_requests": snapshot.total_requests,
        "endpoint_requests": [
            {"method": key.method.value, "endpoint": key.endpoint, "count": count}
            for key, count in snapshot.endpoint_requests.items()
        ],
        "active_sessions": snapshot.active_sessions,
        "auth_attempts": snapshot.auth_attempts._asdict(),
        "orders": snapshot.order_outcomes._asdict(),
        "revenue": str(snapshot.revenue),
        "latency_samples": {name: len(samples) for name, samples in snapshot.latency.items()},
    }


def create_app(settings: Settings | None = None, pipeline: MetricsPipeline | None = None) -> FastAPI:
    settings = settings or get_settings()
    pipeline = pipeline or build_pipeline(settings)

    app = FastAPI(title=settings.app_name, version=__version__, docs_url="/docs")
    app.state.settings = settings
    app.state.metrics = pipeline

    # Registered last so it runs first and times the whole request.
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(pipeline.tracker.http_middleware())

    @app.on_event("startup")
    async def startup() -> None:
        level = configure_logging(settings.log_level)
        logger.info(
            "Logging configured at %s level for %s environment",
            logging.getLevelName(level),
            settings.environment,
        )
        pipeline.start()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await pipeline.shutdown()

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Return basic service status for monitoring."""

        return {"status": "ok"}

    @app.get("/metrics", tags=["metrics"])
    async def metrics_endpoint(request: Request) -> dict[str, Any]:
        """Current counters, read without resetting the export interval."""

        current: MetricsPipeline = request.app.state.metrics
        return {
            "exporting": current.scheduler is not None and current.scheduler.running,
            **snapshot_to_dict(current.store.snapshot()),
        }

    app.add_exception_handler(Exception, unhandled_exception_handler)
    return app


app = create_app()
