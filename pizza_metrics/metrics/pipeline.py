"""Wiring of store, tracker and exporter into one owned unit."""

from __future__ import annotations

import logging

import httpx

from pizza_metrics.core.config import MetricsConfig

from .encoder import OtlpEncoder
from .exporter import MetricsExporter
from .sampler import HostSampler, Sampler
from .scheduler import MetricsScheduler
from .store import MetricsStore
from .tracking import MetricsTracker

logger = logging.getLogger("pizza.metrics")


class MetricsPipeline:
    """Store and tracker always exist; the scheduler only when export is configured."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        *,
        store: MetricsStore | None = None,
        sampler: Sampler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.store = store or MetricsStore()
        self.tracker = MetricsTracker(self.store)
        self.scheduler: MetricsScheduler | None = None

        if config is not None:
            exporter = MetricsExporter(
                str(config.collector_url),
                config.bearer_token,
                timeout=config.export_timeout,
                transport=transport,
            )
            self.scheduler = MetricsScheduler(
                self.store,
                OtlpEncoder(config.source_label),
                exporter,
                sampler if sampler is not None else HostSampler(),
                interval=config.flush_interval,
            )

    def start(self) -> None:
        if self.scheduler is None:
            logger.info("Metrics export not configured; counters stay local")
            return
        self.scheduler.start()

    async def shutdown(self) -> None:
        if self.scheduler is None:
            return
        await self.scheduler.stop()
        await self.scheduler.exporter.aclose()
