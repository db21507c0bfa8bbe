"""Metrics package exports."""

from .encoder import MetricPoint, OtlpEncoder
from .exporter import ExportOutcome, ExportResult, MetricsExporter
from .pipeline import MetricsPipeline
from .sampler import HostSampler, ResourceSample, Sampler
from .scheduler import MetricsScheduler, build_points
from .store import HttpMethod, MetricSnapshot, MetricsStore, RequestKey
from .tracking import MetricsTracker

__all__ = [
    "ExportOutcome",
    "ExportResult",
    "HostSampler",
    "HttpMethod",
    "MetricPoint",
    "MetricSnapshot",
    "MetricsExporter",
    "MetricsPipeline",
    "MetricsScheduler",
    "MetricsStore",
    "MetricsTracker",
    "OtlpEncoder",
    "RequestKey",
    "ResourceSample",
    "Sampler",
    "build_points",
]
