from __future__ import annotations

import httpx
import pytest

from pizza_metrics.core.config import MetricsConfig, Settings
from pizza_metrics.metrics.sampler import ResourceSample


class FixedSampler:
    def __init__(self, cpu: float = 12.5, memory: float = 40.0) -> None:
        self.sample_value = ResourceSample(cpu_usage_percent=cpu, memory_usage_percent=memory)

    def sample(self) -> ResourceSample:
        return self.sample_value


class RecordingCollector:
    """httpx handler standing in for the OTLP collector."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, metrics_enabled=False, metrics_url=None, metrics_api_key=None)


@pytest.fixture
def metrics_config() -> MetricsConfig:
    return MetricsConfig(
        collector_url="https://otlp.example.com/otlp/v1/metrics",
        bearer_token="secret-token",
        source_label="pizza-test",
        flush_interval=60.0,
        export_timeout=1.0,
    )


@pytest.fixture
def fixed_sampler() -> FixedSampler:
    return FixedSampler()


@pytest.fixture
def collector() -> RecordingCollector:
    return RecordingCollector()


@pytest.fixture
def rejecting_collector() -> RecordingCollector:
    return RecordingCollector(status_code=503)
