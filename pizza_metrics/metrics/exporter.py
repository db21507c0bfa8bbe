"""Delivery of encoded metrics to the remote collector."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx


class ExportOutcome(str, Enum):
    """Terminal result of a single export call."""

    DELIVERED = "delivered"
    REJECTED = "rejected"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(slots=True)
class ExportResult:
    outcome: ExportOutcome
    status_code: int | None = None
    detail: str = ""

    @property
    def delivered(self) -> bool:
        return self.outcome is ExportOutcome.DELIVERED


class MetricsExporter:
    """POST one OTLP payload per call; failures are reported, never retried."""

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = str(url)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._timeout_seconds = timeout
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = logging.getLogger("pizza.metrics.exporter")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def export(self, payload: dict[str, Any]) -> ExportResult:
        name = _metric_name(payload)
        try:
            # httpx limits each phase separately; this caps the whole call.
            response = await asyncio.wait_for(
                self._get_client().post(self.url, headers=self._headers, json=payload),
                timeout=self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            self._logger.warning("Error pushing metric %s: %s", name, exc)
            return ExportResult(ExportOutcome.TRANSPORT_FAILURE, detail=str(exc) or type(exc).__name__)
        except asyncio.TimeoutError:
            self._logger.warning("Error pushing metric %s: no response within %.1fs", name, self._timeout_seconds)
            return ExportResult(ExportOutcome.TRANSPORT_FAILURE, detail=f"timed out after {self._timeout_seconds}s")

        if not response.is_success:
            self._logger.warning(
                "Failed to push metric %s: collector answered %d",
                name,
                response.status_code,
            )
            return ExportResult(
                ExportOutcome.REJECTED,
                status_code=response.status_code,
                detail=response.text[:200],
            )

        self._logger.debug("Pushed %s", name)
        return ExportResult(ExportOutcome.DELIVERED, status_code=response.status_code)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _metric_name(payload: dict[str, Any]) -> str:
    try:
        return payload["resourceMetrics"][0]["scopeMetrics"][0]["metrics"][0]["name"]
    except (KeyError, IndexError, TypeError):
        return "<unknown>"
