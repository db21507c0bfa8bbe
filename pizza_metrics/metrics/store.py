"""Thread-safe in-memory counter store for service telemetry.

Request counters and latency samples are per-interval: they are zeroed by
``snapshot_and_reset``. Auth attempts, order outcomes, revenue and the active
session gauge are totals since process start and survive every flush.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple

from .sampler import ResourceSample

logger = logging.getLogger("pizza.metrics.store")


class HttpMethod(str, Enum):
    """HTTP methods counted by the store."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: str | HttpMethod) -> HttpMethod | None:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


class RequestKey(NamedTuple):
    """Per-endpoint breakdown key."""

    method: HttpMethod
    endpoint: str


class AuthAttempts(NamedTuple):
    successful: int = 0
    failed: int = 0


class OrderOutcomes(NamedTuple):
    success: int = 0
    failure: int = 0


@dataclass(frozen=True, slots=True)
class MetricSnapshot:
    """Point-in-time copy of the store, safe to read without the lock."""

    http_requests: Mapping[HttpMethod, int]
    total_requests: int
    endpoint_requests: Mapping[RequestKey, int]
    active_sessions: int
    auth_attempts: AuthAttempts
    order_outcomes: OrderOutcomes
    revenue: Decimal
    latency: Mapping[str, tuple[float, ...]]
    resources: ResourceSample | None = None


class MetricsStore:
    """Aggregates counters written by request handlers and read by the scheduler."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._http_requests: dict[HttpMethod, int] = {method: 0 for method in HttpMethod}
        self._total_requests = 0
        self._endpoint_requests: dict[RequestKey, int] = {}
        self._active_sessions = 0
        self._auth_successful = 0
        self._auth_failed = 0
        self._orders_success = 0
        self._orders_failure = 0
        self._revenue = Decimal(0)
        self._latency: dict[str, list[float]] = {}

    def increment_http_request(self, method: str | HttpMethod, endpoint: str | None = None) -> bool:
        parsed = HttpMethod.parse(method)
        if parsed is None:
            logger.debug("Ignoring request with untracked method %r", method)
            return False

        with self._lock:
            self._http_requests[parsed] += 1
            self._total_requests += 1
            if endpoint:
                key = RequestKey(parsed, endpoint)
                self._endpoint_requests[key] = self._endpoint_requests.get(key, 0) + 1
        return True

    def increment_active_sessions(self, n: int = 1) -> bool:
        if n < 0:
            logger.debug("Ignoring negative session increment %d", n)
            return False
        with self._lock:
            self._active_sessions += n
        return True

    def decrement_active_sessions(self, n: int = 1) -> bool:
        if n < 0:
            logger.debug("Ignoring negative session decrement %d", n)
            return False
        with self._lock:
            self._active_sessions = max(0, self._active_sessions - n)
        return True

    def record_auth_attempt(self, success: bool) -> None:
        with self._lock:
            if success:
                self._auth_successful += 1
            else:
                self._auth_failed += 1

    def record_order_outcome(self, success: bool) -> None:
        with self._lock:
            if success:
                self._orders_success += 1
            else:
                self._orders_failure += 1

    def record_revenue(self, amount: int | float | Decimal | str) -> bool:
        """Add ``amount`` to the revenue total.

        Negative, non-finite or unparsable amounts are ignored and logged; the
        call returns ``False`` in that case and never raises.
        """

        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            logger.warning("Ignoring unparsable revenue amount %r", amount)
            return False
        if not value.is_finite() or value < 0:
            logger.warning("Ignoring invalid revenue amount %r", amount)
            return False

        with self._lock:
            self._revenue += value
        return True

    def record_latency(self, operation: str, duration_ms: float) -> bool:
        # New operation names are admitted on first use.
        if not operation or not math.isfinite(duration_ms) or duration_ms < 0:
            logger.debug("Ignoring latency sample %r for %r", duration_ms, operation)
            return False
        with self._lock:
            self._latency.setdefault(operation, []).append(float(duration_ms))
        return True

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return self._copy()

    def snapshot_and_reset(self) -> MetricSnapshot:
        """Copy the current values and zero the per-interval counters atomically."""

        with self._lock:
            snapshot = self._copy()
            for method in self._http_requests:
                self._http_requests[method] = 0
            self._total_requests = 0
            # Endpoints are re-admitted when next hit so the map stays bounded.
            self._endpoint_requests.clear()
            for samples in self._latency.values():
                samples.clear()
        return snapshot

    def _copy(self) -> MetricSnapshot:
        return MetricSnapshot(
            http_requests=MappingProxyType(dict(self._http_requests)),
            total_requests=self._total_requests,
            endpoint_requests=MappingProxyType(dict(self._endpoint_requests)),
            active_sessions=self._active_sessions,
            auth_attempts=AuthAttempts(self._auth_successful, self._auth_failed),
            order_outcomes=OrderOutcomes(self._orders_success, self._orders_failure),
            revenue=self._revenue,
            latency=MappingProxyType({name: tuple(samples) for name, samples in self._latency.items()}),
        )
