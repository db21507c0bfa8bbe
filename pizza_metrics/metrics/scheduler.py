"""Periodic flush of the counter store to the collector."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Iterator

from .encoder import OtlpEncoder
from .exporter import ExportResult, MetricsExporter
from .sampler import Sampler
from .store import MetricSnapshot, MetricsStore

logger = logging.getLogger("pizza.metrics.scheduler")

NAME_SEPARATOR = "_"
EMPTY_LATENCY_SENTINEL = 0

MetricTriple = tuple[str, Any, dict[str, str]]


def join_name(parent: str, child: str) -> str:
    return f"{parent}{NAME_SEPARATOR}{child}"


def mean_latency(samples: tuple[float, ...]) -> float | int:
    if not samples:
        return EMPTY_LATENCY_SENTINEL
    return sum(samples) / len(samples)


def build_points(snapshot: MetricSnapshot) -> Iterator[MetricTriple]:
    """Yield ``(name, value, attributes)`` for every exported metric."""

    for method, count in snapshot.http_requests.items():
        yield join_name("http_requests", method.value.lower()), count, {"method": method.value}
    yield "total_requests", snapshot.total_requests, {}

    for key, count in snapshot.endpoint_requests.items():
        yield "endpoint_requests", count, {"method": key.method.value, "endpoint": key.endpoint}

    yield "active_sessions", snapshot.active_sessions, {}

    yield join_name("auth_attempts", "success"), snapshot.auth_attempts.successful, {}
    yield join_name("auth_attempts", "failed"), snapshot.auth_attempts.failed, {}
    yield join_name("orders", "success"), snapshot.order_outcomes.success, {}
    yield join_name("orders", "failed"), snapshot.order_outcomes.failure, {}
    yield "revenue", snapshot.revenue, {}

    for operation, samples in snapshot.latency.items():
        yield join_name("request_latency", operation), mean_latency(samples), {"operation": operation}

    if snapshot.resources is not None:
        yield "cpu_usage", snapshot.resources.cpu_usage_percent, {}
        yield "memory_usage", snapshot.resources.memory_usage_percent, {}


class MetricsScheduler:
    """Own the background task that exports the store every ``interval`` seconds.

    Each tick resets the per-interval counters, samples host resources and
    sends one request per metric, all metrics concurrently. A tick never runs
    longer than the interval: exports still pending at that point are
    cancelled. Ticks are scheduled against a monotonic deadline so a slow
    collector does not stretch the period. ``stop`` ends the loop without a
    final flush.
    """

    def __init__(
        self,
        store: MetricsStore,
        encoder: OtlpEncoder,
        exporter: MetricsExporter,
        sampler: Sampler | None = None,
        *,
        interval: float = 10.0,
    ) -> None:
        if interval <= 0:
            raise ValueError("flush interval must be positive")
        self.store = store
        self.encoder = encoder
        self.exporter = exporter
        self.sampler = sampler
        self.interval = interval
        self.ticks = 0
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        # A fresh event binds to the loop the task runs on.
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="metrics-scheduler")
        logger.info("Metrics export every %.1fs started", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Metrics export stopped after %d ticks", self.ticks)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.interval
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=max(0.0, deadline - loop.time()))
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self.tick()
            except Exception:  # noqa: BLE001
                logger.exception("Metrics tick failed")

            deadline += self.interval
            now = loop.time()
            if deadline <= now:
                missed = int((now - deadline) // self.interval) + 1
                logger.warning("Metrics tick overran; skipping %d period(s)", missed)
                deadline += missed * self.interval

    async def tick(self) -> list[ExportResult]:
        """Run one flush cycle and return the export result of each metric delivered or refused."""

        self.ticks += 1
        snapshot = self.store.snapshot_and_reset()
        if self.sampler is not None:
            try:
                snapshot = dataclasses.replace(snapshot, resources=self.sampler.sample())
            except Exception:  # noqa: BLE001
                logger.exception("Resource sampling failed; skipping cpu/memory metrics")

        payloads: list[tuple[str, dict[str, Any]]] = []
        for name, value, attributes in build_points(snapshot):
            try:
                payloads.append((name, self.encoder.encode(name, value, attributes)))
            except Exception:  # noqa: BLE001
                logger.exception("Error encoding metric %s", name)
        if not payloads:
            return []

        tasks = [asyncio.ensure_future(self.exporter.export(payload)) for _, payload in payloads]
        _, pending = await asyncio.wait(tasks, timeout=self.interval)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Tick %d cancelled %d export(s) still pending after %.1fs",
                self.ticks,
                len(pending),
                self.interval,
            )

        results: list[ExportResult] = []
        for (name, _), task in zip(payloads, tasks):
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.error("Error sending metric %s", name, exc_info=error)
                continue
            results.append(task.result())

        delivered = sum(1 for result in results if result.delivered)
        logger.debug("Tick %d delivered %d/%d metrics", self.ticks, delivered, len(results))
        return results
