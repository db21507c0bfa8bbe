"""Instrumentation API used by request handlers.

Everything here is a synchronous in-memory update on the store. Hooks never
touch the network and never let an instrumentation failure escape into the
request; the wrapped block's own exceptions propagate unchanged.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Callable, Iterator

from fastapi import Request

from .store import HttpMethod, MetricsStore

logger = logging.getLogger("pizza.metrics.tracking")

UNMATCHED_ENDPOINT = "unmatched"


class MetricsTracker:
    """Facade over ``MetricsStore`` handed to route and auth code."""

    def __init__(self, store: MetricsStore, *, clock: Callable[[], float] = time.perf_counter) -> None:
        self.store = store
        self._clock = clock

    def http_request(self, method: str, endpoint: str | None = None) -> None:
        self._guard(self.store.increment_http_request, method, endpoint)

    def session_started(self, n: int = 1) -> None:
        self._guard(self.store.increment_active_sessions, n)

    def session_ended(self, n: int = 1) -> None:
        self._guard(self.store.decrement_active_sessions, n)

    def auth_attempt(self, success: bool) -> None:
        self._guard(self.store.record_auth_attempt, success)

    def order_completed(self, revenue: int | float | Decimal | str = 0) -> None:
        self._guard(self.store.record_order_outcome, True)
        self._guard(self.store.record_revenue, revenue)

    def order_failed(self) -> None:
        self._guard(self.store.record_order_outcome, False)

    def latency(self, operation: str, duration_ms: float) -> None:
        self._guard(self.store.record_latency, operation, duration_ms)

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        started = self._clock()
        try:
            yield
        finally:
            self.latency(operation, self._elapsed_ms(started))

    @contextmanager
    def track_request(self, method: str, endpoint: str | None = None) -> Iterator[None]:
        """Count the request and its latency once the wrapped handling finishes."""

        started = self._clock()
        try:
            yield
        finally:
            self._record_request(method, endpoint, started)

    @contextmanager
    def session(self) -> Iterator[None]:
        self.session_started()
        try:
            yield
        finally:
            self.session_ended()

    @contextmanager
    def track_auth(self) -> Iterator[None]:
        """Record a successful attempt, or a failed one if the block raises."""

        try:
            yield
        except Exception:
            self.auth_attempt(False)
            raise
        self.auth_attempt(True)

    @contextmanager
    def track_order(self, amount: int | float | Decimal | str) -> Iterator[None]:
        try:
            yield
        except Exception:
            self.order_failed()
            raise
        self.order_completed(amount)

    def http_middleware(self) -> Callable:
        """Return an ``http`` middleware counting every request by method and route."""

        tracker = self

        async def metrics_middleware(request: Request, call_next: Callable):
            started = tracker._clock()
            try:
                return await call_next(request)
            finally:
                tracker._record_request(request.method, _route_path(request), started)

        return metrics_middleware

    def _record_request(self, method: str, endpoint: str | None, started: float) -> None:
        self.http_request(method, endpoint)
        if HttpMethod.parse(method) is not None:
            self.latency(str(method).lower(), self._elapsed_ms(started))

    def _elapsed_ms(self, started: float) -> float:
        return max(0.0, (self._clock() - started) * 1000)

    @staticmethod
    def _guard(func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Metrics update %s failed", getattr(func, "__name__", func))


def _route_path(request: Request) -> str:
    # Only route templates become series; raw paths are client-controlled.
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT
